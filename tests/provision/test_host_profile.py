# tests/provision/test_host_profile.py
import pytest

from common.alpine.apk_manager import ApkManager
from common.debian.apt_manager import AptManager
from common.init_systems import OpenRCInit, SystemdInit
from common.redhat.rpm_manager import RpmManager
from provision.config_models import Architecture, HostFamily
from provision.errors import PreconditionError
from provision.host_profile import (
    HostProfile,
    build_init_system,
    build_package_manager,
    detect_host_profile,
    resolve_architecture,
)


@pytest.fixture
def no_init_commands(mocker):
    return mocker.patch("provision.host_profile.command_exists", return_value=False)


def _detect(app_settings, mock_logger, machine="x86_64", os_release=None):
    return detect_host_profile(
        app_settings,
        mock_logger,
        machine_reader=lambda: machine,
        os_release_reader=lambda: os_release or {},
    )


@pytest.mark.parametrize(
    "machine,expected",
    [
        ("x86_64", Architecture.AMD64),
        ("aarch64", Architecture.ARM64),
        ("armv7l", Architecture.ARM),
        ("AMD64", Architecture.AMD64),
    ],
)
def test_resolve_architecture(machine, expected):
    assert resolve_architecture(machine) is expected


def test_unsupported_architecture_is_precondition():
    with pytest.raises(PreconditionError) as excinfo:
        resolve_architecture("riscv64")

    assert "riscv64" in excinfo.value.message


def test_debian_from_os_release(app_settings, mock_logger, no_init_commands):
    profile = _detect(app_settings, mock_logger, os_release={"ID": "raspbian", "ID_LIKE": "debian"})

    assert profile == HostProfile(Architecture.AMD64, HostFamily.DEBIAN, "apt", "systemd")


def test_alpine_defaults_to_openrc(app_settings, mock_logger, no_init_commands):
    profile = _detect(app_settings, mock_logger, machine="aarch64", os_release={"ID": "alpine"})

    assert profile.family is HostFamily.ALPINE
    assert profile.package_manager_kind == "apk"
    assert profile.init_system_kind == "openrc"


def test_installed_systemctl_wins(app_settings, mock_logger, mocker):
    mocker.patch(
        "provision.host_profile.command_exists",
        side_effect=lambda name: name == "systemctl",
    )

    profile = _detect(app_settings, mock_logger, os_release={"ID": "alpine"})

    assert profile.init_system_kind == "systemd"


def test_configured_family_skips_os_release(app_settings, mock_logger, no_init_commands):
    app_settings.host_family = HostFamily.REDHAT

    def os_release_reader():
        raise AssertionError("os-release must not be read")

    profile = detect_host_profile(
        app_settings, mock_logger, machine_reader=lambda: "x86_64", os_release_reader=os_release_reader
    )

    assert profile.family is HostFamily.REDHAT
    assert profile.package_manager_kind == "rpm"


def test_unknown_distribution_is_precondition(app_settings, mock_logger, no_init_commands):
    with pytest.raises(PreconditionError) as excinfo:
        _detect(app_settings, mock_logger, os_release={"ID": "gentoo", "PRETTY_NAME": "Gentoo Linux"})

    assert "Gentoo Linux" in excinfo.value.message


@pytest.mark.parametrize(
    "family,expected",
    [(HostFamily.DEBIAN, AptManager), (HostFamily.ALPINE, ApkManager), (HostFamily.REDHAT, RpmManager)],
)
def test_build_package_manager(app_settings, mock_logger, mocker, family, expected):
    for module in ("common.debian.apt_manager", "common.alpine.apk_manager", "common.redhat.rpm_manager"):
        mocker.patch(f"{module}.command_exists", return_value=True)
    profile = HostProfile(Architecture.AMD64, family, "x", "systemd")

    assert isinstance(build_package_manager(profile, app_settings, mock_logger), expected)


def test_build_init_system(app_settings, debian_profile, alpine_profile, mock_logger):
    assert isinstance(build_init_system(debian_profile, app_settings, mock_logger), SystemdInit)
    assert isinstance(build_init_system(alpine_profile, app_settings, mock_logger), OpenRCInit)
