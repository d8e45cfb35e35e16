# components/service/unit_generator.py
# -*- coding: utf-8 -*-
"""
Init-system registration of the device manager service.

A helper script runs `python -m provision.supervise <verb>` from the project
root, so on every boot the init system runs the same reconciliation as the
bootstrap whether or not the project is installed as a package.
Unit files are written once and never rewritten; enabling and starting the
service is repeated on every run.
"""

import logging
import shlex
import subprocess
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple, Union

from common.command_utils import log_setup
from common.file_utils import write_file_if_absent
from common.init_systems import InitSystem
from components.base_component import BaseComponent
from components.registry import ComponentRegistry
from provision import config as static_config
from provision.config_models import AppSettings
from provision.errors import BootstrapIOError

SUPERVISE_MODULE = "provision.supervise"


@dataclass(frozen=True)
class ServiceDescriptor:
    name: str
    description: str
    depends_on: Tuple[str, ...]
    start_command: str
    stop_command: str
    restart_policy: str = "on-failure"
    restart_sec: int = 30

    @classmethod
    def from_settings(cls, app_settings: AppSettings) -> "ServiceDescriptor":
        service = app_settings.service
        return cls(
            name=service.name,
            description=service.description,
            depends_on=("docker", "NetworkManager"),
            start_command=f"{service.helper_script_path} start",
            stop_command=f"{service.helper_script_path} stop",
            restart_sec=service.restart_sec,
        )


def render_helper_script(
    python_executable: str,
    project_root: Union[str, Path],
    module: str = SUPERVISE_MODULE,
) -> str:
    """
    Shell wrapper run by the init system: `<helper> start|stop|status`.

    The project root is put on PYTHONPATH and made the working directory,
    since init systems start services from / with a bare environment.
    """
    root = shlex.quote(str(project_root))
    python = shlex.quote(python_executable)
    return (
        "#!/bin/sh\n"
        "# Managed by device-manager-setup.\n"
        f"cd {root} || exit 1\n"
        f"PYTHONPATH={root}" + "${PYTHONPATH:+:$PYTHONPATH}\n"
        "export PYTHONPATH\n"
        f"exec {python} -m {module} " + '"${1:-start}"\n'
    )


def render_systemd_unit(descriptor: ServiceDescriptor) -> str:
    """systemd unit for a one-shot start with the container left running."""
    units = " ".join(f"{dep}.service" for dep in descriptor.depends_on)
    wanted = " ".join(f"{dep}.service" for dep in descriptor.depends_on[1:])
    return (
        "[Unit]\n"
        f"Description={descriptor.description}\n"
        f"After={units} network-online.target\n"
        f"Requires={descriptor.depends_on[0]}.service\n"
        f"Wants={wanted} network-online.target\n"
        "\n"
        "[Service]\n"
        "Type=oneshot\n"
        "RemainAfterExit=yes\n"
        f"ExecStart={descriptor.start_command}\n"
        f"ExecStop={descriptor.stop_command}\n"
        f"Restart={descriptor.restart_policy}\n"
        f"RestartSec={descriptor.restart_sec}\n"
        "\n"
        "[Install]\n"
        "WantedBy=multi-user.target\n"
    )


def render_openrc_script(descriptor: ServiceDescriptor) -> str:
    after = " ".join(dep.lower() for dep in descriptor.depends_on)
    return (
        "#!/sbin/openrc-run\n"
        "\n"
        f'description="{descriptor.description}"\n'
        "\n"
        "depend() {\n"
        f"    need {descriptor.depends_on[0].lower()}\n"
        f"    after {after}\n"
        "}\n"
        "\n"
        "start() {\n"
        '    ebegin "Starting ${RC_SVCNAME}"\n'
        f"    {descriptor.start_command}\n"
        "    eend $?\n"
        "}\n"
        "\n"
        "stop() {\n"
        '    ebegin "Stopping ${RC_SVCNAME}"\n'
        f"    {descriptor.stop_command}\n"
        "    eend $?\n"
        "}\n"
    )


class ServiceUnitGenerator:
    """Writes the helper script and unit file, then registers the service."""

    def __init__(
        self,
        app_settings: AppSettings,
        init_system: InitSystem,
        logger: Optional[logging.Logger] = None,
        python_executable: Optional[str] = None,
        project_root: Optional[Union[str, Path]] = None,
    ):
        self.app_settings = app_settings
        self.settings = app_settings.service
        self.init_system = init_system
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.python_executable = python_executable or sys.executable
        self.project_root = project_root or static_config.PROJECT_ROOT

    def unit_path(self, descriptor: ServiceDescriptor) -> Path:
        if self.init_system.kind == "openrc":
            return Path(self.settings.openrc_init_dir) / descriptor.name
        return Path(self.settings.systemd_unit_dir) / f"{descriptor.name}.service"

    def render_unit(self, descriptor: ServiceDescriptor) -> str:
        if self.init_system.kind == "openrc":
            return render_openrc_script(descriptor)
        return render_systemd_unit(descriptor)

    def ensure_registered(self, descriptor: ServiceDescriptor) -> bool:
        """
        Make sure the service is defined, enabled at boot and started.

        Returns:
            True if the helper script or the unit file was created.

        Raises:
            BootstrapIOError: a file could not be written or the init system
                rejected the registration.
        """
        unit_path = self.unit_path(descriptor)
        unit_mode = 0o755 if self.init_system.kind == "openrc" else 0o644
        try:
            helper_created = write_file_if_absent(
                self.settings.helper_script_path,
                render_helper_script(self.python_executable, self.project_root),
                mode=0o755,
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
            unit_created = write_file_if_absent(
                unit_path,
                self.render_unit(descriptor),
                mode=unit_mode,
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
            if unit_created:
                self.init_system.reload_units()
            self.init_system.enable(descriptor.name)
            if not self.init_system.is_active(descriptor.name):
                self.init_system.start(descriptor.name)
        except (subprocess.CalledProcessError, OSError) as e:
            raise BootstrapIOError(
                f"Could not register service '{descriptor.name}': {e}",
                context={"unit": str(unit_path)},
            ) from e

        log_setup(
            f"{self.app_settings.symbols.get('success', '✅')} Service '{descriptor.name}' registered with {self.init_system.kind}.",
            "success",
            self.logger,
            self.app_settings,
        )
        return helper_created or unit_created


@ComponentRegistry.register(
    name="service",
    metadata={
        "dependencies": ["container"],
        "description": "Register the device manager service with the init system",
    },
)
class ServiceComponent(BaseComponent):
    def _generator(self) -> ServiceUnitGenerator:
        return ServiceUnitGenerator(
            self.app_settings, self.context.init_system, self.logger
        )

    def is_satisfied(self) -> bool:
        generator = self._generator()
        descriptor = ServiceDescriptor.from_settings(self.app_settings)
        return (
            Path(self.app_settings.service.helper_script_path).exists()
            and generator.unit_path(descriptor).exists()
            and self.context.init_system.is_active(descriptor.name)
        )

    def ensure(self) -> bool:
        generator = self._generator()
        return generator.ensure_registered(
            ServiceDescriptor.from_settings(self.app_settings)
        )
