# common/network_utils.py
# -*- coding: utf-8 -*-
"""
Network-related utility functions.

Read-only queries against iproute2 and nmcli plus a single ICMP probe. All of
them are best-effort: failures are logged and reported as "unknown" rather
than raised.
"""

import logging
import re
import subprocess
from typing import List, Optional, Tuple

from provision.config_models import AppSettings

from .command_utils import get_symbols, log_setup, run_command

module_logger = logging.getLogger(__name__)

_DEFAULT_ROUTE_RE = re.compile(
    r"^default\s+via\s+(?P<gateway>\S+)(?:.*?\sdev\s+(?P<dev>\S+))?"
)
_INET_ADDR_RE = re.compile(r"\sinet\s+(?P<addr>\d{1,3}(?:\.\d{1,3}){3})(?:/\d+)?")


def parse_default_route(output: str) -> Tuple[Optional[str], Optional[str]]:
    """
    Extract gateway and device from `ip -4 route show default` output.

    Returns:
        (gateway, interface); either may be None.
    """
    for line in output.splitlines():
        match = _DEFAULT_ROUTE_RE.match(line.strip())
        if match:
            return match.group("gateway"), match.group("dev")
    return None, None


def parse_interface_address(output: str) -> Optional[str]:
    """Extract the first IPv4 address from `ip -4 -o addr show` output."""
    match = _INET_ADDR_RE.search(output)
    return match.group("addr") if match else None


def parse_nmcli_device_status(output: str) -> List[Tuple[str, str]]:
    """
    Parse `nmcli -t -f DEVICE,STATE device status` into (device, state) pairs.

    Terse nmcli output escapes literal colons as "\\:"; only the last
    unescaped colon separates the fields.
    """
    devices: List[Tuple[str, str]] = []
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        parts = re.split(r"(?<!\\):", line)
        if len(parts) < 2:
            continue
        device = ":".join(parts[:-1]).replace("\\:", ":")
        devices.append((device, parts[-1].strip()))
    return devices


def get_default_route(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Tuple[Optional[str], Optional[str]]:
    """Current default gateway and interface, (None, None) when unknown."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["ip", "-4", "route", "show", "default"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        log_setup(
            f"{symbols.get('warning', '!')} Could not read default route: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None, None
    return parse_default_route(result.stdout or "")


def get_interface_address(
    interface: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[str]:
    """IPv4 address currently assigned to `interface`, or None."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["ip", "-4", "-o", "addr", "show", "dev", interface],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        log_setup(
            f"{symbols.get('warning', '!')} Could not read address of {interface}: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    return parse_interface_address(result.stdout or "")


def get_nmcli_device_status(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[List[Tuple[str, str]]]:
    """Device states reported by NetworkManager, or None if nmcli failed."""
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    try:
        result = run_command(
            ["nmcli", "-t", "-f", "DEVICE,STATE", "device", "status"],
            app_settings,
            capture_output=True,
            check=True,
            current_logger=logger_to_use,
        )
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        log_setup(
            f"{symbols.get('warning', '!')} nmcli device status failed: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return None
    return parse_nmcli_device_status(result.stdout or "")


def probe_connectivity(
    host: str,
    timeout: int,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """Send one ICMP echo to `host`. True on reply."""
    logger_to_use = current_logger if current_logger else module_logger
    try:
        result = run_command(
            ["ping", "-c", "1", "-W", str(timeout), host],
            app_settings,
            capture_output=True,
            check=False,
            current_logger=logger_to_use,
        )
    except FileNotFoundError:
        return False
    return result.returncode == 0
