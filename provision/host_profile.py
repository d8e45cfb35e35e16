# provision/host_profile.py
# -*- coding: utf-8 -*-
"""
Host profile detection.

The profile is computed once at the start of a run and selects the package
manager and init system collaborators used by every component. Nothing
downstream branches on the distribution again.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from common.command_utils import command_exists, log_setup
from common.init_systems import InitSystem, OpenRCInit, SystemdInit
from common.package_manager import PackageManager
from common.system_utils import (
    detect_distribution_family,
    get_machine_architecture,
    normalize_architecture,
    read_os_release,
)
from provision.config_models import AppSettings, Architecture, HostFamily
from provision.errors import PreconditionError

module_logger = logging.getLogger(__name__)

FAMILY_PACKAGE_MANAGERS: Dict[HostFamily, str] = {
    HostFamily.DEBIAN: "apt",
    HostFamily.ALPINE: "apk",
    HostFamily.REDHAT: "rpm",
}
FAMILY_INIT_SYSTEMS: Dict[HostFamily, str] = {
    HostFamily.DEBIAN: "systemd",
    HostFamily.ALPINE: "openrc",
    HostFamily.REDHAT: "systemd",
}


@dataclass(frozen=True)
class HostProfile:
    """Architecture and host family of the machine being provisioned."""

    architecture: Architecture
    family: HostFamily
    package_manager_kind: str
    init_system_kind: str


def resolve_architecture(machine: str) -> Architecture:
    """
    Normalize `machine`, raising PreconditionError when it is unsupported.
    """
    architecture = normalize_architecture(machine)
    if architecture is None:
        raise PreconditionError(
            f"Unsupported architecture: {machine}",
            hint="Supported architectures are amd64 (x86_64), arm64 (aarch64) and arm (armv7l).",
        )
    return Architecture(architecture)


def _detect_init_system(family: HostFamily) -> str:
    # Prefer what is actually installed; fall back to the family default.
    if command_exists("systemctl"):
        return "systemd"
    if command_exists("openrc") or command_exists("rc-update"):
        return "openrc"
    return FAMILY_INIT_SYSTEMS[family]


def detect_host_profile(
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
    machine_reader: Callable[[], str] = get_machine_architecture,
    os_release_reader: Callable[[], Dict[str, str]] = read_os_release,
) -> HostProfile:
    """
    Detect the architecture and host family.

    The family comes from app_settings.host_family when set, otherwise from
    /etc/os-release.

    Raises:
        PreconditionError: unsupported architecture or unknown distribution.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols

    architecture = resolve_architecture(machine_reader())

    family = app_settings.host_family
    if family is None:
        os_release = os_release_reader()
        detected = detect_distribution_family(os_release)
        if detected is None:
            raise PreconditionError(
                f"Unsupported distribution: {os_release.get('PRETTY_NAME') or os_release.get('ID') or 'unknown'}",
                hint="Set host_family (debian, alpine or redhat) in the configuration or pass --host-family.",
            )
        family = HostFamily(detected)

    profile = HostProfile(
        architecture=architecture,
        family=family,
        package_manager_kind=FAMILY_PACKAGE_MANAGERS[family],
        init_system_kind=_detect_init_system(family),
    )
    log_setup(
        f"{symbols.get('info', 'ℹ️')} Detected host: family={profile.family.value} "
        f"architecture={profile.architecture.value} package manager={profile.package_manager_kind} "
        f"init={profile.init_system_kind}",
        "info",
        logger_to_use,
        app_settings,
    )
    return profile


def build_package_manager(
    profile: HostProfile,
    app_settings: AppSettings,
    logger: Optional[logging.Logger] = None,
) -> PackageManager:
    """Instantiate the package manager matching the profile."""
    if profile.family is HostFamily.DEBIAN:
        from common.debian.apt_manager import AptManager

        return AptManager(app_settings, logger)
    if profile.family is HostFamily.ALPINE:
        from common.alpine.apk_manager import ApkManager

        return ApkManager(app_settings, logger)
    from common.redhat.rpm_manager import RpmManager

    return RpmManager(app_settings, logger)


def build_init_system(
    profile: HostProfile,
    app_settings: AppSettings,
    logger: Optional[logging.Logger] = None,
) -> InitSystem:
    """Instantiate the init system matching the profile."""
    if profile.init_system_kind == "openrc":
        return OpenRCInit(app_settings, logger)
    return SystemdInit(app_settings, logger)
