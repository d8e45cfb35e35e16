# common/package_manager.py
# -*- coding: utf-8 -*-
"""
Common interface for the host package managers.

Concrete managers live next to their distribution family (common/debian,
common/alpine, common/redhat). They raise subprocess.CalledProcessError or
FileNotFoundError on failure; translating those into install errors is left
to the caller.
"""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from provision.config_models import AppSettings


class PackageManager(ABC):
    """Presence checks and installs over one package database."""

    kind: str = ""

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = logger or logging.getLogger(self.__class__.__name__)

    @abstractmethod
    def is_installed(self, package: str) -> bool:
        """True if `package` is present in the package database."""

    @abstractmethod
    def refresh_index(self) -> None:
        """Refresh the list of available packages."""

    @abstractmethod
    def install(self, packages: List[str]) -> None:
        """Install every package in `packages` in one transaction."""

    def prepare_repositories(self) -> None:
        """Make sure the repositories carrying the dependency set are enabled."""

    def missing(self, packages: Iterable[str]) -> List[str]:
        """The subset of `packages` that is not installed, order preserved."""
        absent: List[str] = []
        for package in packages:
            if self.is_installed(package):
                self.logger.info(
                    f"Package '{package}' is already installed. Skipping."
                )
            else:
                self.logger.info(f"Marking package for installation: {package}")
                absent.append(package)
        return absent
