# tests/common/test_package_managers.py
import subprocess
from unittest.mock import MagicMock

import pytest

from common.alpine.apk_manager import ApkManager
from common.debian.apt_manager import AptManager
from common.redhat.rpm_manager import RpmManager
from provision import config as static_config


@pytest.fixture
def apt_manager(mocker, app_settings, mock_logger):
    """Fixture to initialize AptManager with mocked dependencies."""
    mocker.patch("common.debian.apt_manager.command_exists", return_value=True)
    mock_run_cmd = mocker.patch("common.debian.apt_manager.run_command")
    return AptManager(app_settings, mock_logger), mock_run_cmd


def test_apt_manager_requires_apt_get(mocker, app_settings, mock_logger):
    mocker.patch("common.debian.apt_manager.command_exists", return_value=False)

    with pytest.raises(FileNotFoundError):
        AptManager(app_settings, mock_logger)


def test_apt_is_installed(apt_manager):
    manager, mock_run_cmd = apt_manager
    mock_run_cmd.return_value = MagicMock(stdout="installed")
    assert manager.is_installed("openssl") is True

    mock_run_cmd.return_value = MagicMock(stdout="config-files")
    assert manager.is_installed("openssl") is False

    mock_run_cmd.side_effect = subprocess.CalledProcessError(1, "dpkg-query")
    assert manager.is_installed("openssl") is False


def test_apt_install_is_noninteractive_without_recommends(apt_manager, app_settings, mock_logger):
    manager, mock_run_cmd = apt_manager

    manager.install(["docker.io", "gzip"])

    args, kwargs = mock_run_cmd.call_args
    assert args == (
        ["apt-get", "install", "-yq", "--no-install-recommends", "docker.io", "gzip"],
        app_settings,
    )
    assert kwargs["env"]["DEBIAN_FRONTEND"] == "noninteractive"
    mock_logger.info.assert_any_call("Committing installation for: docker.io, gzip")


def test_apt_missing_logs_each_package(apt_manager, mock_logger):
    manager, mock_run_cmd = apt_manager
    mock_run_cmd.side_effect = [
        MagicMock(stdout="installed"),
        subprocess.CalledProcessError(1, "dpkg-query"),
    ]

    assert manager.missing(["gzip", "network-manager"]) == ["network-manager"]
    mock_logger.info.assert_any_call("Package 'gzip' is already installed. Skipping.")
    mock_logger.info.assert_any_call("Marking package for installation: network-manager")


@pytest.fixture
def apk_manager(mocker, app_settings, mock_logger, tmp_path):
    mocker.patch("common.alpine.apk_manager.command_exists", return_value=True)
    mock_run_cmd = mocker.patch("common.alpine.apk_manager.run_command")
    repositories = tmp_path / "repositories"
    return ApkManager(app_settings, mock_logger, str(repositories)), mock_run_cmd, repositories


def test_apk_commands(apk_manager, app_settings, mock_logger):
    manager, mock_run_cmd, _ = apk_manager
    mock_run_cmd.return_value = MagicMock(returncode=1)

    assert manager.is_installed("docker") is False
    manager.refresh_index()
    manager.install(["docker", "networkmanager"])

    mock_run_cmd.assert_any_call(
        ["apk", "info", "-e", "docker"],
        app_settings,
        capture_output=True,
        check=False,
        current_logger=mock_logger,
    )
    mock_run_cmd.assert_any_call(["apk", "update"], app_settings, current_logger=mock_logger)
    mock_run_cmd.assert_any_call(
        ["apk", "add", "--no-cache", "docker", "networkmanager"],
        app_settings,
        current_logger=mock_logger,
    )


def test_apk_enables_commented_community_line(apk_manager):
    manager, _, repositories = apk_manager
    repositories.write_text(
        "http://dl-cdn.alpinelinux.org/alpine/v3.19/main\n"
        "#http://dl-cdn.alpinelinux.org/alpine/v3.19/community\n"
    )

    manager.prepare_repositories()
    first = repositories.read_text()
    manager.prepare_repositories()

    assert first == (
        "http://dl-cdn.alpinelinux.org/alpine/v3.19/main\n"
        "http://dl-cdn.alpinelinux.org/alpine/v3.19/community\n"
    )
    assert repositories.read_text() == first


def test_apk_derives_community_from_main(apk_manager):
    manager, _, repositories = apk_manager
    repositories.write_text("https://mirror.example/alpine/v3.18/main/\n")

    manager.prepare_repositories()

    assert repositories.read_text().splitlines() == [
        "https://mirror.example/alpine/v3.18/main/",
        "https://mirror.example/alpine/v3.18/community",
    ]


def test_apk_interrupted_rewrite_keeps_repositories(apk_manager, mocker):
    manager, _, repositories = apk_manager
    original = "https://mirror.example/alpine/v3.18/main/\n"
    repositories.write_text(original)
    mocker.patch("common.file_utils.os.replace", side_effect=OSError("interrupted"))

    with pytest.raises(OSError):
        manager.prepare_repositories()

    assert repositories.read_text() == original


def test_apk_without_main_line_fails(apk_manager):
    manager, _, repositories = apk_manager
    repositories.write_text("# nothing here\n")

    with pytest.raises(OSError):
        manager.prepare_repositories()


@pytest.fixture
def rpm_manager(mocker, app_settings, mock_logger, tmp_path):
    mocker.patch(
        "common.redhat.rpm_manager.command_exists",
        side_effect=lambda name: name == "dnf",
    )
    mock_run_cmd = mocker.patch("common.redhat.rpm_manager.run_command")
    repo_file = tmp_path / "docker-ce.repo"
    return RpmManager(app_settings, mock_logger, str(repo_file)), mock_run_cmd, repo_file


def test_rpm_prefers_dnf(rpm_manager):
    manager, _, _ = rpm_manager
    assert manager.kind == "dnf"


def test_rpm_falls_back_to_yum(mocker, app_settings, mock_logger):
    mocker.patch(
        "common.redhat.rpm_manager.command_exists",
        side_effect=lambda name: name == "yum",
    )
    assert RpmManager(app_settings, mock_logger).kind == "yum"


def test_rpm_prepare_repositories_adds_epel_and_docker_repo(rpm_manager, app_settings, mock_logger):
    manager, mock_run_cmd, _ = rpm_manager
    mock_run_cmd.return_value = MagicMock(returncode=1)

    manager.prepare_repositories()

    mock_run_cmd.assert_any_call(
        ["dnf", "install", "-y", "epel-release"], app_settings, current_logger=mock_logger
    )
    mock_run_cmd.assert_any_call(
        ["dnf", "install", "-y", "dnf-plugins-core"], app_settings, current_logger=mock_logger
    )
    mock_run_cmd.assert_any_call(
        ["dnf", "config-manager", "--add-repo", static_config.DOCKER_CE_REPO_URL],
        app_settings,
        current_logger=mock_logger,
    )


def test_rpm_prepare_repositories_is_idempotent(rpm_manager):
    manager, mock_run_cmd, repo_file = rpm_manager
    repo_file.write_text("[docker-ce-stable]\n")
    mock_run_cmd.return_value = MagicMock(returncode=0)

    manager.prepare_repositories()

    commands = [call.args[0] for call in mock_run_cmd.call_args_list]
    assert commands == [["rpm", "-q", "epel-release"]]
