# common/system_utils.py
# -*- coding: utf-8 -*-
"""
System-level utility functions for the device manager bootstrap.

This module includes architecture normalization, distribution detection from
/etc/os-release, privilege checks and a few read-only host queries.
"""

import logging
import os
import platform
import socket
from pathlib import Path
from typing import Dict, Optional

from common.command_utils import get_symbols, log_setup, run_command
from provision.config_models import AppSettings

module_logger = logging.getLogger(__name__)

OS_RELEASE_PATH = "/etc/os-release"

# Raw machine strings (uname -m, dpkg/apk print-arch) to image suffixes.
ARCHITECTURE_ALIASES: Dict[str, str] = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "x64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
    "armv8": "arm64",
    "armv8l": "arm64",
    "armv7l": "arm",
    "armv7": "arm",
    "armhf": "arm",
    "armv6l": "arm",
    "arm": "arm",
}

# os-release ID / ID_LIKE tokens to host families.
DISTRO_FAMILIES: Dict[str, str] = {
    "debian": "debian",
    "ubuntu": "debian",
    "raspbian": "debian",
    "linuxmint": "debian",
    "alpine": "alpine",
    "centos": "redhat",
    "rhel": "redhat",
    "fedora": "redhat",
    "rocky": "redhat",
    "almalinux": "redhat",
    "ol": "redhat",
    "amzn": "redhat",
}


def normalize_architecture(machine: str) -> Optional[str]:
    """
    Map a raw machine string to one of amd64, arm64 or arm.

    Returns:
        The normalized name, or None for an unsupported architecture.
    """
    return ARCHITECTURE_ALIASES.get(machine.strip().lower())


def get_machine_architecture() -> str:
    """The raw machine string as reported by uname."""
    return platform.machine()


def read_os_release(path: str = OS_RELEASE_PATH) -> Dict[str, str]:
    """
    Parse an os-release file into a dictionary.

    Quotes are stripped from values; comments and malformed lines are ignored.
    A missing file yields an empty dictionary.
    """
    release: Dict[str, str] = {}
    os_release = Path(path)
    if not os_release.is_file():
        return release
    for raw_line in os_release.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        release[key.strip()] = value.strip().strip('"').strip("'")
    return release


def detect_distribution_family(os_release: Dict[str, str]) -> Optional[str]:
    """
    Work out the host family from os-release ID and ID_LIKE.

    ID wins over ID_LIKE; the first ID_LIKE token with a known family is used.
    """
    candidates = [os_release.get("ID", "")]
    candidates.extend(os_release.get("ID_LIKE", "").split())
    for candidate in candidates:
        family = DISTRO_FAMILIES.get(candidate.lower())
        if family:
            return family
    return None


def is_root() -> bool:
    """True when running with an effective uid of 0."""
    return os.geteuid() == 0


def get_hostname() -> str:
    return socket.gethostname()


def get_primary_ip_address(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """
    Get the primary IP address of the machine.

    A UDP socket is "connected" to an external address (no packet is sent) and
    the local address chosen by the kernel is returned.

    Returns:
        The primary IP address as a string, or None if it cannot be determined.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as s:
            s.connect(("8.8.8.8", 80))
            return str(s.getsockname()[0])
    except OSError as e:
        log_setup(
            f"{symbols.get('warning', '!')} Could not determine primary IP address: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None


def reboot_host(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """Schedule an immediate reboot."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_settings.symbols
    log_setup(
        f"{symbols.get('warning', '!')} Rebooting the host now...",
        "warning",
        logger_to_use,
        app_settings,
    )
    run_command(
        ["shutdown", "-r", "now"], app_settings, current_logger=logger_to_use
    )
