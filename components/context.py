# components/context.py
# -*- coding: utf-8 -*-
"""
Collaborators shared by every component during one run.

Each collaborator is built on first use from the host profile, so a run that
never touches the package database does not require a package manager binary.
Tests pass fakes through the constructor instead.
"""

import logging
import time
from typing import Callable, Optional

from common.container_runtime import DockerRuntime
from common.init_systems import InitSystem
from common.package_manager import PackageManager
from provision.config_models import AppSettings
from provision.host_profile import (
    HostProfile,
    build_init_system,
    build_package_manager,
)


class HostContext:
    """Host profile plus the command surfaces selected for it."""

    def __init__(
        self,
        app_settings: AppSettings,
        profile: HostProfile,
        logger: Optional[logging.Logger] = None,
        package_manager: Optional[PackageManager] = None,
        init_system: Optional[InitSystem] = None,
        container_runtime: Optional[DockerRuntime] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.app_settings = app_settings
        self.profile = profile
        self.logger = logger or logging.getLogger(self.__class__.__name__)
        self.sleep = sleep
        self._package_manager = package_manager
        self._init_system = init_system
        self._container_runtime = container_runtime

    @property
    def package_manager(self) -> PackageManager:
        if self._package_manager is None:
            self._package_manager = build_package_manager(
                self.profile, self.app_settings, self.logger
            )
        return self._package_manager

    @property
    def init_system(self) -> InitSystem:
        if self._init_system is None:
            self._init_system = build_init_system(
                self.profile, self.app_settings, self.logger
            )
        return self._init_system

    @property
    def container_runtime(self) -> DockerRuntime:
        if self._container_runtime is None:
            self._container_runtime = DockerRuntime(
                self.app_settings, self.logger
            )
        return self._container_runtime
