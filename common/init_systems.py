# common/init_systems.py
# -*- coding: utf-8 -*-
"""
Command surfaces of the supported init systems.

SystemdInit drives systemctl, OpenRCInit drives rc-update and rc-service.
Mutating calls raise subprocess.CalledProcessError on failure; is_active never
raises.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from typing import List, Optional

from common.command_utils import log_setup, run_command
from provision.config_models import AppSettings


class InitSystem(ABC):
    """Service registration and lifecycle operations."""

    kind: str = ""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def _run(self, command: List[str], check: bool = True) -> subprocess.CompletedProcess:
        return run_command(
            command,
            self.app_settings,
            check=check,
            capture_output=True,
            current_logger=self.logger,
        )

    @abstractmethod
    def enable(self, service: str, runlevel: Optional[str] = None) -> None:
        """Register `service` for automatic start at boot."""

    @abstractmethod
    def disable(self, service: str) -> None:
        """Deregister `service` from automatic start. Does not stop it."""

    @abstractmethod
    def start(self, service: str) -> None:
        ...

    @abstractmethod
    def stop(self, service: str) -> None:
        ...

    @abstractmethod
    def restart(self, service: str) -> None:
        ...

    @abstractmethod
    def is_active(self, service: str) -> bool:
        """True if `service` is currently running."""

    def reload_units(self) -> None:
        """Make the init system re-read service definitions."""


class SystemdInit(InitSystem):
    kind = "systemd"

    def enable(self, service: str, runlevel: Optional[str] = None) -> None:
        self._run(["systemctl", "enable", service])

    def disable(self, service: str) -> None:
        self._run(["systemctl", "disable", service])

    def start(self, service: str) -> None:
        self._run(["systemctl", "start", service])

    def stop(self, service: str) -> None:
        self._run(["systemctl", "stop", service])

    def restart(self, service: str) -> None:
        self._run(["systemctl", "restart", service])

    def is_active(self, service: str) -> bool:
        try:
            result = self._run(
                ["systemctl", "is-active", "--quiet", service], check=False
            )
        except FileNotFoundError:
            return False
        return result.returncode == 0

    def reload_units(self) -> None:
        symbols = self.app_settings.symbols
        log_setup(
            f"{symbols.get('gear', '⚙️')} Reloading systemd daemon...",
            "info",
            self.logger,
            self.app_settings,
        )
        self._run(["systemctl", "daemon-reload"])


class OpenRCInit(InitSystem):
    kind = "openrc"

    def enable(self, service: str, runlevel: Optional[str] = None) -> None:
        command = ["rc-update", "add", service, runlevel or "default"]
        result = self._run(command, check=False)
        output = f"{result.stdout or ''}{result.stderr or ''}"
        # Re-adding an already registered service is not an error.
        if result.returncode != 0 and "already installed" not in output:
            raise subprocess.CalledProcessError(
                result.returncode, command, result.stdout, result.stderr
            )

    def disable(self, service: str) -> None:
        self._run(["rc-update", "-a", "del", service])

    def start(self, service: str) -> None:
        self._run(["rc-service", service, "start"])

    def stop(self, service: str) -> None:
        self._run(["rc-service", service, "stop"])

    def restart(self, service: str) -> None:
        self._run(["rc-service", service, "restart"])

    def is_active(self, service: str) -> bool:
        try:
            result = self._run(["rc-service", service, "status"], check=False)
        except FileNotFoundError:
            return False
        return result.returncode == 0
