# components/docker/container_supervisor.py
# -*- coding: utf-8 -*-
"""
Keeps exactly one device manager container running.

The supervisor holds no state between invocations: every call inspects the
runtime and acts on what it finds. Both the bootstrap and the init system's
service unit (through provision.supervise) go through ensure_running.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Tuple

from common.command_utils import log_setup
from common.container_runtime import DockerRuntime
from common.retry import RetryPolicy
from components.base_component import BaseComponent
from components.registry import ComponentRegistry
from provision.config_models import AppSettings, Architecture, Mount
from provision.errors import SupervisionError


class SupervisionOutcome(str, Enum):
    ALREADY_RUNNING = "already_running"
    STARTED = "started"


@dataclass(frozen=True)
class ContainerInstance:
    """Desired container: image, name, mounts and runtime options."""

    image_reference: str
    container_name: str
    mounts: Tuple[Mount, ...]
    restart_policy: str = "unless-stopped"
    network_mode: str = "host"

    @classmethod
    def from_settings(
        cls, app_settings: AppSettings, architecture: Architecture
    ) -> "ContainerInstance":
        """
        Build the instance for this host.

        The image tag is `<version>-<arch>` and the device directory is always
        mounted read-write at the same path inside the container.
        """
        container = app_settings.container
        device_dir = str(Path(app_settings.device.directory))
        mounts = [m for m in container.mounts if m.container_path != device_dir]
        mounts.append(Mount(host_path=device_dir, container_path=device_dir))
        return cls(
            image_reference=f"{container.image_prefix}:{container.image_version}-{Architecture(architecture).value}",
            container_name=container.container_name,
            mounts=tuple(mounts),
            restart_policy=container.restart_policy,
            network_mode=container.network_mode,
        )

    def volume_args(self) -> Tuple[str, ...]:
        return tuple(mount.as_volume_arg() for mount in self.mounts)


class ContainerSupervisor:
    def __init__(
        self,
        runtime: DockerRuntime,
        retry_policy: RetryPolicy,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.runtime = runtime
        self.retry_policy = retry_policy
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def ensure_running(self, instance: ContainerInstance) -> SupervisionOutcome:
        """
        Reconcile the runtime to exactly one running `instance`.

        Raises:
            SupervisionError: the image could not be pulled or every start
                attempt failed.
        """
        symbols = self.app_settings.symbols
        name = instance.container_name
        self._ensure_image(instance.image_reference)

        if self.runtime.is_running(name):
            log_setup(
                f"{symbols.get('info', 'ℹ️')} Container '{name}' is already running.",
                "info",
                self.logger,
                self.app_settings,
            )
            return SupervisionOutcome.ALREADY_RUNNING

        last_error: Optional[Exception] = None
        for attempt in self.retry_policy.attempts():
            # Another invoker may have started it since the last attempt.
            if attempt > 1 and self.runtime.is_running(name):
                log_setup(
                    f"{symbols.get('info', 'ℹ️')} Container '{name}' was started concurrently. Leaving it running.",
                    "info",
                    self.logger,
                    self.app_settings,
                )
                return SupervisionOutcome.ALREADY_RUNNING
            try:
                self._remove_stale(name)
                container_id = self.runtime.run_detached(
                    name,
                    instance.image_reference,
                    instance.restart_policy,
                    instance.network_mode,
                    instance.volume_args(),
                )
            except (subprocess.CalledProcessError, OSError) as e:
                last_error = e
                log_setup(
                    f"{symbols.get('warning', '!')} Start attempt {attempt}/{self.retry_policy.max_attempts} "
                    f"for container '{name}' failed: {e}",
                    "warning",
                    self.logger,
                    self.app_settings,
                )
                continue

            log_setup(
                f"{symbols.get('rocket', '🚀')} Started container '{name}' ({container_id[:12] or 'no id'}) "
                f"from {instance.image_reference}.",
                "success",
                self.logger,
                self.app_settings,
            )
            return SupervisionOutcome.STARTED

        raise SupervisionError(
            f"Container '{name}' did not start after {self.retry_policy.max_attempts} attempt(s).",
            hint="Inspect the runtime with 'docker logs' and 'docker ps -a'.",
            context={"last_error": str(last_error) if last_error else ""},
        )

    def stop(self, name: str) -> bool:
        """
        Stop the container if it is running.

        Returns:
            True if a running container was stopped.
        """
        if not self.runtime.is_running(name):
            log_setup(
                f"{self.app_settings.symbols.get('info', 'ℹ️')} Container '{name}' is not running.",
                "info",
                self.logger,
                self.app_settings,
            )
            return False
        try:
            self.runtime.stop(name)
        except (subprocess.CalledProcessError, OSError) as e:
            raise SupervisionError(f"Could not stop container '{name}': {e}") from e
        return True

    def _ensure_image(self, image: str) -> None:
        try:
            if self.runtime.image_exists(image):
                return
            log_setup(
                f"{self.app_settings.symbols.get('package', '📦')} Pulling image {image}...",
                "info",
                self.logger,
                self.app_settings,
            )
            self.runtime.pull(image)
        except (subprocess.CalledProcessError, OSError) as e:
            raise SupervisionError(
                f"Could not pull image {image}: {e}",
                hint="Check registry access and that the image exists for this architecture.",
            ) from e

    def _remove_stale(self, name: str) -> None:
        """Remove a created or exited container. A running one is never touched."""
        if self.runtime.exists(name) and not self.runtime.is_running(name):
            log_setup(
                f"{self.app_settings.symbols.get('gear', '⚙️')} Removing stale container '{name}'.",
                "info",
                self.logger,
                self.app_settings,
            )
            self.runtime.remove(name)


def build_supervisor(
    app_settings: AppSettings,
    runtime: DockerRuntime,
    logger: Optional[logging.Logger] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ContainerSupervisor:
    """Supervisor with the retry policy taken from the container settings."""
    container = app_settings.container
    policy = RetryPolicy(container.start_attempts, container.start_retry_delay, sleep)
    return ContainerSupervisor(runtime, policy, app_settings, logger)


@ComponentRegistry.register(
    name="container",
    metadata={
        "dependencies": ["ssh"],
        "description": "Start the device manager container",
    },
)
class ContainerComponent(BaseComponent):
    def instance(self) -> ContainerInstance:
        return ContainerInstance.from_settings(
            self.app_settings, self.context.profile.architecture
        )

    def is_satisfied(self) -> bool:
        return self.context.container_runtime.is_running(
            self.app_settings.container.container_name
        )

    def ensure(self) -> SupervisionOutcome:
        supervisor = build_supervisor(
            self.app_settings,
            self.context.container_runtime,
            self.logger,
            sleep=self.context.sleep,
        )
        return supervisor.ensure_running(self.instance())
