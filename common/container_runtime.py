# common/container_runtime.py
# -*- coding: utf-8 -*-
"""
Thin wrapper over the docker CLI.

Queries return booleans and never raise for a non-zero exit; mutations raise
subprocess.CalledProcessError so the caller can decide whether to retry.
"""

import logging
import subprocess
from typing import Iterable, List, Optional

from common.command_utils import run_command
from provision.config_models import AppSettings


class DockerRuntime:
    """Image and container operations for a single runtime binary."""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        command: Optional[str] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.command = command or app_settings.container.runtime_command

    def _run(
        self, args: List[str], check: bool = True
    ) -> subprocess.CompletedProcess:
        return run_command(
            [self.command] + args,
            self.app_settings,
            check=check,
            capture_output=True,
            current_logger=self.logger,
        )

    def image_exists(self, image: str) -> bool:
        return self._run(["image", "inspect", image], check=False).returncode == 0

    def pull(self, image: str) -> None:
        self._run(["pull", image])

    def _list_names(self, name: str, include_stopped: bool) -> List[str]:
        args = ["ps"]
        if include_stopped:
            args.append("-a")
        args += ["--filter", f"name=^{name}$", "--format", "{{.Names}}"]
        result = self._run(args, check=False)
        if result.returncode != 0:
            return []
        return [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]

    def is_running(self, name: str) -> bool:
        """True if a running container is named exactly `name`."""
        return name in self._list_names(name, include_stopped=False)

    def exists(self, name: str) -> bool:
        """True if any container, running or not, is named exactly `name`."""
        return name in self._list_names(name, include_stopped=True)

    def remove(self, name: str) -> None:
        self._run(["rm", "-f", name])

    def stop(self, name: str) -> None:
        self._run(["stop", name])

    def run_detached(
        self,
        name: str,
        image: str,
        restart_policy: str,
        network_mode: str,
        volumes: Iterable[str],
    ) -> str:
        """
        Start a detached container.

        Returns:
            The container id printed by the runtime.
        """
        args = [
            "run",
            "-d",
            "--name",
            name,
            "--restart",
            restart_policy,
            "--network",
            network_mode,
        ]
        for volume in volumes:
            args += ["-v", volume]
        args.append(image)
        result = self._run(args)
        return (result.stdout or "").strip()
