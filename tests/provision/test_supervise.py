# tests/provision/test_supervise.py
import pytest

from provision.errors import PreconditionError
from provision.supervise import main


@pytest.fixture
def supervise(mocker, app_settings, fake_runtime, debian_profile, mock_logger):
    mocker.patch("provision.supervise.setup_logging", return_value=mock_logger)
    mocker.patch("provision.supervise.load_app_settings", return_value=app_settings)
    mocker.patch("provision.supervise.DockerRuntime", return_value=fake_runtime)
    return mocker.patch("provision.supervise.detect_host_profile", return_value=debian_profile)


def test_start_runs_container(supervise, fake_runtime):
    assert main(["start"]) == 0

    assert fake_runtime.running == {"device_manager"}
    assert fake_runtime.run_calls[0]["image"] == "collabro/iotdevicemanager:1.0.0-amd64"


def test_start_leaves_running_container(supervise, fake_runtime):
    fake_runtime.images.add("collabro/iotdevicemanager:1.0.0-amd64")
    fake_runtime.running.add("device_manager")

    assert main(["start"]) == 0
    assert fake_runtime.run_calls == []


def test_start_failure(supervise, fake_runtime, app_settings):
    app_settings.container.start_attempts = 2
    fake_runtime.failing_starts = 5

    assert main(["start"]) == 1
    assert len(fake_runtime.run_calls) == 2


def test_start_on_unsupported_host(supervise):
    supervise.side_effect = PreconditionError("Unsupported architecture: mips")

    assert main(["start"]) == 2


def test_stop(supervise, fake_runtime):
    fake_runtime.running.add("device_manager")

    assert main(["stop"]) == 0
    assert "device_manager" in fake_runtime.stopped
    supervise.assert_not_called()


def test_status(supervise, fake_runtime):
    assert main(["status"]) == 1
    fake_runtime.running.add("device_manager")
    assert main(["status"]) == 0
