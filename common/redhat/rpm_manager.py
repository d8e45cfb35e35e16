# common/redhat/rpm_manager.py
# -*- coding: utf-8 -*-
import logging
from pathlib import Path
from typing import List, Optional

from common.command_utils import command_exists, run_command
from common.package_manager import PackageManager
from provision import config as static_config
from provision.config_models import AppSettings


class RpmManager(PackageManager):
    """
    Package manager for CentOS/RHEL/Fedora hosts. Uses dnf when available and
    falls back to yum; presence is always checked with rpm.
    """

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        docker_repo_file: str = static_config.DOCKER_CE_REPO_FILE,
    ):
        super().__init__(app_settings, logger)
        self.docker_repo_file = Path(docker_repo_file)
        if command_exists("dnf"):
            self.kind = "dnf"
        elif command_exists("yum"):
            self.kind = "yum"
        else:
            self.logger.critical(
                "Neither 'dnf' nor 'yum' found. This manager cannot function."
            )
            raise FileNotFoundError(
                "Neither dnf nor yum found. Is this a CentOS/RHEL system?"
            )

    def is_installed(self, package: str) -> bool:
        result = run_command(
            ["rpm", "-q", package],
            self.app_settings,
            capture_output=True,
            check=False,
            current_logger=self.logger,
        )
        return result.returncode == 0

    def refresh_index(self) -> None:
        self.logger.info(f"Refreshing {self.kind} metadata cache...")
        run_command(
            [self.kind, "makecache", "-y"],
            self.app_settings,
            current_logger=self.logger,
        )

    def install(self, packages: List[str]) -> None:
        if not packages:
            return
        self.logger.info(f"Committing installation for: {', '.join(packages)}")
        run_command(
            [self.kind, "install", "-y"] + list(packages),
            self.app_settings,
            current_logger=self.logger,
        )
        self.logger.info("Packages installed successfully.")

    def prepare_repositories(self) -> None:
        """
        Ensure EPEL and the Docker CE repository are configured.

        Older releases ship docker-compose only through EPEL; docker-ce and
        docker-compose-plugin come from download.docker.com.
        """
        if not self.is_installed("epel-release"):
            self.logger.info("Installing EPEL repository...")
            self.install(["epel-release"])

        if self.docker_repo_file.exists():
            self.logger.info("Docker CE repository already configured.")
            return

        self.logger.info("Adding Docker CE repository...")
        if self.kind == "dnf":
            if not self.is_installed("dnf-plugins-core"):
                self.install(["dnf-plugins-core"])
            command = ["dnf", "config-manager", "--add-repo", static_config.DOCKER_CE_REPO_URL]
        else:
            if not self.is_installed("yum-utils"):
                self.install(["yum-utils"])
            command = ["yum-config-manager", "--add-repo", static_config.DOCKER_CE_REPO_URL]
        run_command(command, self.app_settings, current_logger=self.logger)
