# tests/provision/test_step_executor.py
import pytest

from provision.errors import BootstrapError, InstallError
from provision.step_executor import execute_step


def test_returns_step_result(app_settings, mock_logger):
    assert execute_step("demo", "Demo step", lambda: 42, app_settings, mock_logger) == 42
    assert mock_logger.info.call_count == 2


def test_bootstrap_error_is_tagged_with_step(app_settings, mock_logger):
    def fail():
        raise InstallError("no network")

    with pytest.raises(InstallError) as excinfo:
        execute_step("prerequisites", "Install packages", fail, app_settings, mock_logger)

    assert excinfo.value.step == "prerequisites"
    mock_logger.error.assert_called()


def test_existing_step_tag_is_kept(app_settings, mock_logger):
    def fail():
        raise InstallError("no network", step="inner")

    with pytest.raises(InstallError) as excinfo:
        execute_step("outer", "Outer", fail, app_settings, mock_logger)

    assert excinfo.value.step == "inner"


def test_unexpected_error_is_wrapped(app_settings, mock_logger):
    def fail():
        raise KeyError("missing")

    with pytest.raises(BootstrapError) as excinfo:
        execute_step("ssh", "SSH access", fail, app_settings, mock_logger)

    assert type(excinfo.value) is BootstrapError
    assert excinfo.value.step == "ssh"
    assert isinstance(excinfo.value.__cause__, KeyError)
