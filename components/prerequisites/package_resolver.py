# components/prerequisites/package_resolver.py
# -*- coding: utf-8 -*-
"""
Dependency installation for the device manager host.

PackageResolver checks each package against the host's package database and
installs only what is missing. The prerequisites component wraps it with the
host-family preparation (extra repositories), the runtime services that must
be up before the container can start, and the docker-compose shim.
"""

import logging
import subprocess
from typing import Iterable, List, Optional, Tuple

from common.command_utils import command_exists, log_setup
from common.file_utils import write_file_if_absent
from common.package_manager import PackageManager
from components.base_component import BaseComponent
from components.registry import ComponentRegistry
from provision import config as static_config
from provision.config_models import AppSettings, HostFamily
from provision.errors import InstallError

COMPOSE_SHIM_CONTENT = '#!/bin/sh\nexec docker compose "$@"\n'


class PackageResolver:
    """
    Ensures a set of packages is present through one package manager.

    A failure to install any package is fatal; there is no partial success.
    """

    def __init__(
        self,
        package_manager: PackageManager,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.package_manager = package_manager
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    def ensure_installed(self, names: Iterable[str]) -> List[str]:
        """
        Install every package in `names` that is not already present.

        The package index is refreshed only when something is missing, so a
        satisfied set costs presence checks only.

        Returns:
            The packages that were installed by this call.

        Raises:
            InstallError: the index refresh or the install failed.
        """
        symbols = self.app_settings.symbols
        wanted = dedupe(names)
        try:
            missing = self.package_manager.missing(wanted)
        except (subprocess.CalledProcessError, OSError) as e:
            raise InstallError(f"Could not query the package database: {e}") from e

        if not missing:
            log_setup(
                f"{symbols.get('success', '✅')} All required packages are already installed.",
                "info",
                self.logger,
                self.app_settings,
            )
            return []

        log_setup(
            f"{symbols.get('package', '📦')} Installing missing packages: {', '.join(missing)}",
            "info",
            self.logger,
            self.app_settings,
        )
        try:
            self.package_manager.refresh_index()
            self.package_manager.install(missing)
        except (subprocess.CalledProcessError, OSError) as e:
            raise InstallError(
                f"Failed to install {', '.join(missing)}: {e}",
                hint="Check network access to the package mirrors and re-run; installed packages are kept.",
            ) from e

        still_missing = [pkg for pkg in missing if not self.package_manager.is_installed(pkg)]
        if still_missing:
            raise InstallError(
                f"Packages reported installed but still missing: {', '.join(still_missing)}"
            )
        return missing


def dedupe(names: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicates and blanks while keeping the first occurrence order."""
    seen = set()
    ordered = []
    for name in names:
        name = name.strip()
        if name and name not in seen:
            seen.add(name)
            ordered.append(name)
    return tuple(ordered)


def dependency_set_for(app_settings: AppSettings, family: HostFamily) -> Tuple[str, ...]:
    """Configured package list, or the family default, plus any extras."""
    package_settings = app_settings.packages
    base = package_settings.packages
    if base is None:
        base = static_config.FAMILY_PACKAGES[family.value]
    return dedupe(list(base) + list(package_settings.extra_packages))


@ComponentRegistry.register(
    name="prerequisites",
    metadata={
        "dependencies": [],
        "description": "Install Docker, Docker Compose, OpenSSH server, openssl, gzip and NetworkManager",
    },
)
class PrerequisitesComponent(BaseComponent):
    """Installs the dependency set of the host family and starts its runtimes."""

    def dependency_set(self) -> Tuple[str, ...]:
        return dependency_set_for(self.app_settings, self.context.profile.family)

    def should_run(self) -> bool:
        return not self.app_settings.skip_packages

    def is_satisfied(self) -> bool:
        package_manager = self.context.package_manager
        return all(package_manager.is_installed(pkg) for pkg in self.dependency_set())

    def ensure(self) -> List[str]:
        symbols = self.app_settings.symbols
        package_manager = self.context.package_manager

        try:
            package_manager.prepare_repositories()
        except (subprocess.CalledProcessError, OSError) as e:
            raise InstallError(f"Failed to prepare package repositories: {e}") from e

        resolver = PackageResolver(package_manager, self.app_settings, self.logger)
        installed = resolver.ensure_installed(self.dependency_set())

        self._start_runtime_services()
        self._ensure_compose_shim()

        log_setup(
            f"{symbols.get('success', '✅')} Prerequisites satisfied.",
            "success",
            self.logger,
            self.app_settings,
        )
        return installed

    def _start_runtime_services(self) -> None:
        """Enable and start docker and the ssh daemon."""
        init_system = self.context.init_system
        family = self.context.profile.family
        docker_runlevel = "boot" if family is HostFamily.ALPINE else None
        services = [
            ("docker", docker_runlevel),
            (static_config.SSH_SERVICE_NAMES[family.value], None),
        ]
        for service, runlevel in services:
            try:
                init_system.enable(service, runlevel)
                if not init_system.is_active(service):
                    init_system.start(service)
            except (subprocess.CalledProcessError, OSError) as e:
                raise InstallError(f"Failed to enable and start {service}: {e}") from e

    def _ensure_compose_shim(self) -> None:
        """Provide `docker-compose` when only the compose plugin is installed."""
        if command_exists("docker-compose") or not command_exists("docker"):
            return
        try:
            write_file_if_absent(
                static_config.COMPOSE_SHIM_PATH,
                COMPOSE_SHIM_CONTENT,
                mode=0o755,
                app_settings=self.app_settings,
                current_logger=self.logger,
            )
        except OSError as e:
            raise InstallError(f"Failed to create docker-compose shim: {e}") from e
