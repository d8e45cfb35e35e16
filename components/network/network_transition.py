# components/network/network_transition.py
# -*- coding: utf-8 -*-
"""
Hand network control over to NetworkManager without cutting the operator off.

The transition is a small state machine:

    Unmanaged -> BackedUp -> Configuring -> Starting -> Adopting -> Verifying
              -> Managed | Degraded

If NetworkManager is already active on entry the machine goes straight to
Managed and nothing on the host is touched. Every step that could drop a
connection comes after the backup, and the legacy services are only removed
from auto-start (never stopped) once NetworkManager has adopted a device.
Failures end in Degraded, which the orchestrator reports as a warning. The
backup is kept for manual recovery and is never restored automatically.
"""

import datetime
import logging
import subprocess
import time
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from common.command_utils import log_setup
from common.file_utils import backup_paths, write_file_if_absent
from common.init_systems import InitSystem
from common.network_utils import (
    get_default_route,
    get_interface_address,
    get_nmcli_device_status,
    probe_connectivity,
)
from common.retry import RetryPolicy
from components.base_component import BaseComponent
from components.registry import ComponentRegistry
from provision import config as static_config
from provision.config_models import AppSettings
from provision.errors import NetworkTransitionDegraded


class NetworkState(str, Enum):
    SKIPPED = "Skipped"
    UNMANAGED = "Unmanaged"
    BACKED_UP = "BackedUp"
    CONFIGURING = "Configuring"
    STARTING = "Starting"
    ADOPTING = "Adopting"
    VERIFYING = "Verifying"
    MANAGED = "Managed"
    DEGRADED = "Degraded"


@dataclass(frozen=True)
class NetworkSnapshot:
    """Routing and addressing observed before anything was changed."""

    current_ip: Optional[str]
    current_gateway: Optional[str]
    current_interface: Optional[str]
    backup_path: Optional[str]
    taken_at: str

    def render(self) -> str:
        return (
            f"taken_at={self.taken_at}\n"
            f"interface={self.current_interface or 'unknown'}\n"
            f"ip={self.current_ip or 'unknown'}\n"
            f"gateway={self.current_gateway or 'unknown'}\n"
        )


@dataclass
class NetworkTransitionResult:
    state: NetworkState
    visited: List[NetworkState] = field(default_factory=list)
    snapshot: Optional[NetworkSnapshot] = None
    reason: Optional[str] = None

    @property
    def degraded(self) -> bool:
        return self.state is NetworkState.DEGRADED


def render_nm_config(
    unmanaged_devices: List[str], autoconnect_retries: int
) -> str:
    """NetworkManager drop-in written during the Configuring state."""
    devices = ";".join(f"interface-name:{dev}" for dev in ["lo"] + list(unmanaged_devices))
    return (
        "# Managed by device-manager-setup. Not rewritten once present.\n"
        "[main]\n"
        "plugins=keyfile\n"
        "\n"
        "[keyfile]\n"
        f"unmanaged-devices={devices}\n"
        "\n"
        "[ifupdown]\n"
        "managed=false\n"
        "\n"
        "[device]\n"
        "wifi.scan-rand-mac-address=no\n"
        "\n"
        "[connection]\n"
        f"connection.autoconnect-retries={autoconnect_retries}\n"
    )


class NetworkTransitionManager:
    """Runs the transition once and reports where it ended."""

    def __init__(
        self,
        app_settings: AppSettings,
        init_system: InitSystem,
        logger: Optional[logging.Logger] = None,
        sleep: Callable[[float], None] = time.sleep,
        probe: Callable[..., bool] = probe_connectivity,
        device_status: Callable[..., Optional[List[Tuple[str, str]]]] = get_nmcli_device_status,
        now: Callable[[], datetime.datetime] = datetime.datetime.now,
    ):
        self.app_settings = app_settings
        self.settings = app_settings.network
        self.init_system = init_system
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.sleep = sleep
        self.probe = probe
        self.device_status = device_status
        self.now = now
        self.nm_service = static_config.NM_SERVICE_NAMES.get(
            init_system.kind, "NetworkManager"
        )
        self.legacy_services = (
            self.settings.legacy_services
            if self.settings.legacy_services is not None
            else static_config.LEGACY_NETWORK_SERVICES.get(init_system.kind, [])
        )
        self._result = NetworkTransitionResult(state=NetworkState.UNMANAGED)

    def _enter(self, state: NetworkState) -> None:
        self._result.state = state
        self._result.visited.append(state)
        log_setup(
            f"{self.app_settings.symbols.get('network', '🌐')} Network transition: {state.value}",
            "info",
            self.logger,
            self.app_settings,
        )

    def _degrade(self, reason: str) -> NetworkTransitionResult:
        self._result.reason = reason
        self._enter(NetworkState.DEGRADED)
        backup = self._result.snapshot.backup_path if self._result.snapshot else None
        log_setup(
            f"{self.app_settings.symbols.get('warning', '!')} Network transition degraded: {reason}"
            + (f" Backup of the previous configuration: {backup}" if backup else ""),
            "warning",
            self.logger,
            self.app_settings,
        )
        return self._result

    def transition(self) -> NetworkTransitionResult:
        self._result = NetworkTransitionResult(state=NetworkState.UNMANAGED)
        self._enter(NetworkState.UNMANAGED)

        if self.init_system.is_active(self.nm_service):
            log_setup(
                f"{self.app_settings.symbols.get('info', 'ℹ️')} {self.nm_service} is already active. Nothing to transition.",
                "info",
                self.logger,
                self.app_settings,
            )
            self._enter(NetworkState.MANAGED)
            return self._result

        self._backup()

        self._enter(NetworkState.CONFIGURING)
        try:
            write_file_if_absent(
                self.settings.nm_conf_path,
                render_nm_config(
                    self.settings.extra_unmanaged_devices,
                    self.settings.autoconnect_retries,
                ),
                mode=0o644,
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
        except OSError as e:
            return self._degrade(f"Could not write {self.settings.nm_conf_path}: {e}")

        self._enter(NetworkState.STARTING)
        try:
            self.init_system.enable(self.nm_service)
        except (subprocess.CalledProcessError, OSError) as e:
            return self._degrade(f"Could not enable {self.nm_service}: {e}")

        self._enter(NetworkState.ADOPTING)
        try:
            self.init_system.start(self.nm_service)
        except (subprocess.CalledProcessError, OSError) as e:
            return self._degrade(f"Could not start {self.nm_service}: {e}")
        self.sleep(self.settings.settle_seconds)

        self._enter(NetworkState.VERIFYING)
        if not self._devices_adopted():
            return self._degrade(f"{self.nm_service} did not adopt any network device.")

        self._deregister_legacy_services()

        if not self._probe():
            return self._degrade(
                f"No connectivity to {self.settings.probe_host} after "
                f"{self.settings.probe_attempts} attempt(s)."
            )

        self._enter(NetworkState.MANAGED)
        return self._result

    def _backup(self) -> None:
        """Record the current routing and copy the network configuration."""
        symbols = self.app_settings.symbols
        taken_at = self.now()
        gateway, interface = get_default_route(self.app_settings, self.logger)
        address = (
            get_interface_address(interface, self.app_settings, self.logger)
            if interface
            else None
        )
        backup_dir: Optional[Path] = None
        try:
            backup_dir = backup_paths(
                self.settings.config_paths,
                self.settings.backup_root,
                app_settings=self.app_settings,
                current_logger=self.logger,
                now=taken_at,
            )
        except OSError as e:
            log_setup(
                f"{symbols.get('warning', '!')} Could not create network backup: {e}",
                "warning",
                self.logger,
                self.app_settings,
            )

        snapshot = NetworkSnapshot(
            current_ip=address,
            current_gateway=gateway,
            current_interface=interface,
            backup_path=str(backup_dir) if backup_dir else None,
            taken_at=taken_at.isoformat(timespec="seconds"),
        )
        if backup_dir is not None:
            try:
                (backup_dir / "snapshot.txt").write_text(snapshot.render(), encoding="utf-8")
            except OSError as e:
                log_setup(
                    f"{symbols.get('warning', '!')} Could not write network snapshot: {e}",
                    "warning",
                    self.logger,
                    self.app_settings,
                )
        log_setup(
            f"{symbols.get('info', 'ℹ️')} Network before transition: interface={interface} ip={address} gateway={gateway}",
            "info",
            self.logger,
            self.app_settings,
        )
        self._result.snapshot = snapshot
        self._enter(NetworkState.BACKED_UP)

    def _devices_adopted(self) -> bool:
        devices = self.device_status(self.app_settings, self.logger)
        if not devices:
            return False
        return any(
            device != "lo" and state.startswith("connected")
            for device, state in devices
        )

    def _deregister_legacy_services(self) -> None:
        for service in self.legacy_services:
            try:
                self.init_system.disable(service)
                log_setup(
                    f"{self.app_settings.symbols.get('info', 'ℹ️')} Removed legacy service '{service}' from auto-start.",
                    "info",
                    self.logger,
                    self.app_settings,
                )
            except (subprocess.CalledProcessError, OSError) as e:
                log_setup(
                    f"{self.app_settings.symbols.get('warning', '!')} Could not deregister legacy service '{service}': {e}",
                    "warning",
                    self.logger,
                    self.app_settings,
                )

    def _probe(self) -> bool:
        policy = RetryPolicy(
            max_attempts=self.settings.probe_attempts,
            delay_seconds=self.settings.probe_interval,
            sleep=self.sleep,
        )
        for attempt in policy.attempts():
            if self.probe(
                self.settings.probe_host,
                self.settings.probe_timeout,
                self.app_settings,
                self.logger,
            ):
                return True
            self.logger.info(
                f"Connectivity probe {attempt}/{policy.max_attempts} to {self.settings.probe_host} failed."
            )
        return False


@ComponentRegistry.register(
    name="network",
    metadata={
        "dependencies": ["prerequisites"],
        "description": "Transition network management to NetworkManager",
    },
)
class NetworkComponent(BaseComponent):
    """Runs the NetworkManager transition on hosts that need one."""

    def transition_enabled(self) -> bool:
        configured = self.app_settings.network.transition_enabled
        if configured is not None:
            return configured
        return (
            self.context.profile.family.value
            in static_config.NETWORK_TRANSITION_FAMILIES
        )

    def is_satisfied(self) -> bool:
        if not self.transition_enabled():
            return True
        init_system = self.context.init_system
        nm_service = static_config.NM_SERVICE_NAMES.get(init_system.kind, "NetworkManager")
        return init_system.is_active(nm_service)

    def ensure(self) -> NetworkTransitionResult:
        if not self.transition_enabled():
            log_setup(
                f"{self.app_settings.symbols.get('info', 'ℹ️')} Network transition is not enabled for "
                f"{self.context.profile.family.value} hosts. Leaving networking untouched.",
                "info",
                self.logger,
                self.app_settings,
            )
            return NetworkTransitionResult(
                state=NetworkState.SKIPPED, visited=[NetworkState.SKIPPED]
            )

        manager = NetworkTransitionManager(
            self.app_settings,
            self.context.init_system,
            self.logger,
            sleep=self.context.sleep,
        )
        result = manager.transition()
        if result.degraded:
            self.warnings.append(
                NetworkTransitionDegraded(
                    result.reason or "Network transition degraded.",
                    hint="The previous network configuration is still in place; restore from the backup manually if needed.",
                    context={
                        "backup": result.snapshot.backup_path if result.snapshot else "",
                    },
                )
            )
        return result
