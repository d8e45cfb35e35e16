# common/debian/apt_manager.py
# -*- coding: utf-8 -*-
import logging
import os
import subprocess
from typing import List, Optional

from common.command_utils import command_exists, run_command
from common.package_manager import PackageManager
from provision.config_models import AppSettings


class AptManager(PackageManager):
    """
    Package manager for Debian and Ubuntu hosts using dpkg-query and apt-get.
    """

    kind = "apt"

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the AptManager.
        Args:
            app_settings: The application settings.
            logger: An optional logging object.
        """
        super().__init__(app_settings, logger)
        if not command_exists("apt-get"):
            self.logger.critical(
                "'apt-get' command not found. This manager cannot function."
            )
            raise FileNotFoundError(
                "'apt-get' not found. Is this a Debian-based system?"
            )

    def is_installed(self, package: str) -> bool:
        try:
            result = run_command(
                ["dpkg-query", "-W", "-f=${db:Status-Status}", package],
                self.app_settings,
                capture_output=True,
                check=True,
                current_logger=self.logger,
            )
        except subprocess.CalledProcessError:
            return False
        status = (result.stdout or "").strip()
        return status == "installed"

    def refresh_index(self) -> None:
        self.logger.info("Updating apt package lists via 'apt-get update'...")
        run_command(
            ["apt-get", "update", "-yq"],
            self.app_settings,
            current_logger=self.logger,
            env=self._noninteractive_env(),
        )
        self.logger.info("Apt package lists updated successfully.")

    def install(self, packages: List[str]) -> None:
        """
        Installs packages with 'apt-get install' without recommends.

        Raises:
            subprocess.CalledProcessError: apt-get failed.
        """
        if not packages:
            return
        self.logger.info(f"Committing installation for: {', '.join(packages)}")
        run_command(
            ["apt-get", "install", "-yq", "--no-install-recommends"] + list(packages),
            self.app_settings,
            current_logger=self.logger,
            env=self._noninteractive_env(),
        )
        self.logger.info("Packages installed successfully.")

    @staticmethod
    def _noninteractive_env():
        env = dict(os.environ)
        env["DEBIAN_FRONTEND"] = "noninteractive"
        return env
