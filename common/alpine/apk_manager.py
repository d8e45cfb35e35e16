# common/alpine/apk_manager.py
# -*- coding: utf-8 -*-
import logging
from pathlib import Path
from typing import List, Optional

from common.command_utils import command_exists, run_command
from common.file_utils import replace_file
from common.package_manager import PackageManager
from provision import config as static_config
from provision.config_models import AppSettings


class ApkManager(PackageManager):
    """
    Package manager for Alpine hosts using apk.
    """

    kind = "apk"

    def __init__(
        self,
        app_settings: AppSettings,
        logger: Optional[logging.Logger] = None,
        repositories_file: str = static_config.APK_REPOSITORIES_FILE,
    ):
        super().__init__(app_settings, logger)
        self.repositories_file = Path(repositories_file)
        if not command_exists("apk"):
            self.logger.critical(
                "'apk' command not found. This manager cannot function."
            )
            raise FileNotFoundError("'apk' not found. Is this an Alpine system?")

    def is_installed(self, package: str) -> bool:
        result = run_command(
            ["apk", "info", "-e", package],
            self.app_settings,
            capture_output=True,
            check=False,
            current_logger=self.logger,
        )
        return result.returncode == 0

    def refresh_index(self) -> None:
        self.logger.info("Updating apk indexes via 'apk update'...")
        run_command(["apk", "update"], self.app_settings, current_logger=self.logger)

    def install(self, packages: List[str]) -> None:
        if not packages:
            return
        self.logger.info(f"Committing installation for: {', '.join(packages)}")
        run_command(
            ["apk", "add", "--no-cache"] + list(packages),
            self.app_settings,
            current_logger=self.logger,
        )
        self.logger.info("Packages installed successfully.")

    def prepare_repositories(self) -> None:
        """
        Enable the community repository, where docker-compose and
        networkmanager live.

        A commented community line is uncommented; otherwise one is derived
        from the first active main line. Nothing changes when an active
        community line already exists.
        """
        if not self.repositories_file.is_file():
            self.logger.warning(
                f"{self.repositories_file} not found. Skipping community repository setup."
            )
            return

        lines = self.repositories_file.read_text(encoding="utf-8").splitlines()
        if any(_is_active(line) and _is_community(line) for line in lines):
            self.logger.info("Alpine community repository already enabled.")
            return

        updated: List[str] = []
        enabled = False
        for line in lines:
            stripped = line.strip()
            if not enabled and stripped.startswith("#") and _is_community(stripped):
                updated.append(stripped.lstrip("#").strip())
                enabled = True
            else:
                updated.append(line)

        if not enabled:
            main_line = next(
                (line.strip() for line in lines if _is_active(line) and line.strip().rstrip("/").endswith("/main")),
                None,
            )
            if main_line is None:
                raise OSError(
                    f"No main repository line in {self.repositories_file}"
                )
            updated.append(main_line.rstrip("/")[: -len("main")] + "community")

        replace_file(self.repositories_file, "\n".join(updated) + "\n")
        self.logger.info("Enabled the Alpine community repository.")


def _is_active(line: str) -> bool:
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def _is_community(line: str) -> bool:
    return line.strip().rstrip("/").endswith("/community")
