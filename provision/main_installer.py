# provision/main_installer.py
# -*- coding: utf-8 -*-
"""
Main entry point for the device manager host bootstrap.

Handles argument parsing, logging setup and the precondition checks, then
hands over to the ComponentOrchestrator which runs the prerequisites,
network, ssh, container and service components in order.

Exit codes: 0 success, 1 declined or failed, 2 precondition not met.
"""

import argparse
import logging
import subprocess
import sys
from pathlib import Path
from typing import List, Optional

from common.command_utils import log_setup
from common.file_utils import ensure_directory, set_mode, write_file_if_absent
from common.logging_config import setup_logging
from common.system_utils import is_root, reboot_host
from components.context import HostContext
from components.orchestrator import ComponentOrchestrator
from components.prerequisites.package_resolver import dependency_set_for
from provision import config as static_config
from provision.cli_handler import confirm_installation, view_configuration
from provision.config_loader import load_app_settings
from provision.config_models import AppSettings, HostFamily
from provision.errors import BootstrapError, BootstrapIOError, PreconditionError
from provision.host_profile import HostProfile, detect_host_profile

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_PRECONDITION = 2

SERVICE_NAME = "device-manager-setup"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Boolean flags default to None so that an absent flag does not override
    the YAML file or the environment.
    """
    parser = argparse.ArgumentParser(
        description="Install and start the IoT device manager on this host."
    )
    parser.add_argument(
        "--no-input",
        action="store_true",
        default=None,
        help="Do not ask for confirmation.",
    )
    parser.add_argument(
        "--config",
        default=static_config.CONFIG_FILE_DEFAULT,
        help=f"YAML configuration file (default: {static_config.CONFIG_FILE_DEFAULT}).",
    )
    parser.add_argument(
        "--host-family",
        choices=[family.value for family in HostFamily],
        default=None,
        help="Skip distribution detection and use this host family.",
    )
    parser.add_argument(
        "--skip-packages",
        action="store_true",
        default=None,
        help="Do not install packages; the image already carries them.",
    )
    parser.add_argument(
        "--reboot",
        action="store_true",
        default=None,
        help="Reboot the host after a successful run.",
    )
    parser.add_argument(
        "--network-transition",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Force the NetworkManager transition on or off.",
    )
    parser.add_argument(
        "--image-version",
        default=None,
        help="Device manager image version (tag prefix before the architecture).",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    parser.add_argument(
        "--log-file",
        default=static_config.LOG_FILE_DEFAULT,
        help="Also write JSON log records to this file.",
    )
    parser.add_argument(
        "--view-config",
        action="store_true",
        help="Show the effective configuration and exit.",
    )
    return parser.parse_args(args)


def token_path(app_settings: AppSettings) -> Path:
    return Path(app_settings.device.directory) / app_settings.device.token_filename


def check_token_available(app_settings: AppSettings) -> None:
    """A token must come from the environment unless one is already persisted."""
    if app_settings.encryption_token or token_path(app_settings).is_file():
        return
    raise PreconditionError(
        f"{static_config.TOKEN_ENV_VAR} is not set and no token is stored at {token_path(app_settings)}.",
        hint=f"Run with {static_config.TOKEN_ENV_VAR}=<token> in the environment.",
    )


def persist_device_token(
    app_settings: AppSettings, current_logger: Optional[logging.Logger] = None
) -> str:
    """
    Store the device token once.

    An existing token file is never rewritten. If the supplied token differs
    from the stored one, the stored one stays in effect and a warning is
    logged.

    Returns:
        The token in effect on this host.
    """
    symbols = app_settings.symbols
    path = token_path(app_settings)
    supplied = (app_settings.encryption_token or "").strip()

    try:
        ensure_directory(
            app_settings.device.directory,
            mode=0o700,
            app_settings=app_settings,
            current_logger=current_logger,
        )
        set_mode(app_settings.device.directory, 0o700)
        if supplied:
            write_file_if_absent(
                path,
                supplied + "\n",
                mode=0o600,
                app_settings=app_settings,
                current_logger=current_logger,
            )
        stored = path.read_text(encoding="utf-8").strip()
        set_mode(path, 0o600)
    except OSError as e:
        raise BootstrapIOError(
            f"Could not persist the device token to {path}: {e}"
        ) from e

    if supplied and supplied != stored:
        log_setup(
            f"{symbols.get('warning', '!')} {static_config.TOKEN_ENV_VAR} differs from the token stored in {path}. "
            "The stored token is kept.",
            "warning",
            current_logger,
            app_settings,
        )
    return stored


def run_bootstrap(
    app_settings: AppSettings,
    profile: HostProfile,
    logger: logging.Logger,
) -> str:
    """
    Persist the token and run every component.

    Returns:
        The device token in effect.

    Raises:
        BootstrapError: the first fatal failure.
    """
    token = persist_device_token(app_settings, logger)
    context = HostContext(app_settings, profile, logger)
    orchestrator = ComponentOrchestrator(app_settings, context, logger)
    orchestrator.run()
    if orchestrator.warnings:
        logger.warning(
            f"Completed with {len(orchestrator.warnings)} warning(s). See the messages above."
        )
    return token


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the bootstrap.

    Args:
        args: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code (0 for success, non-zero for failure).
    """
    parsed_args = parse_args(args)

    logger = setup_logging(
        SERVICE_NAME,
        log_level="DEBUG" if parsed_args.verbose else None,
        enable_file=bool(parsed_args.log_file) and not parsed_args.view_config,
        log_file_path=parsed_args.log_file,
        log_prefix=static_config.LOG_PREFIX_DEFAULT,
    )

    try:
        app_settings = load_app_settings(
            parsed_args, parsed_args.config, current_logger=logger
        )
        if parsed_args.view_config:
            view_configuration(app_settings, logger)
            return EXIT_OK

        symbols = app_settings.symbols
        if not is_root():
            raise PreconditionError(
                "This bootstrap must be run as root.",
                hint="Re-run with sudo or from a root shell.",
            )
        profile = detect_host_profile(app_settings, logger)
        check_token_available(app_settings)

        if not app_settings.no_input:
            packages = (
                ()
                if app_settings.skip_packages
                else dependency_set_for(app_settings, profile.family)
            )
            if not confirm_installation(packages, app_settings, logger):
                log_setup(
                    f"{symbols.get('info', 'ℹ️')} Installation cancelled.",
                    "info",
                    logger,
                    app_settings,
                )
                return EXIT_FAILED

        token = run_bootstrap(app_settings, profile, logger)
    except PreconditionError as e:
        logger.error(e.describe())
        if e.hint:
            logger.error(f"Hint: {e.hint}")
        return EXIT_PRECONDITION
    except BootstrapError as e:
        logger.error(e.describe())
        if e.hint:
            logger.error(f"Hint: {e.hint}")
        return EXIT_FAILED
    except Exception as e:
        logger.exception(f"Unexpected error: {str(e)}")
        return EXIT_FAILED

    log_setup(
        f"{symbols.get('sparkles', '✨')} Device manager setup completed.",
        "success",
        logger,
        app_settings,
    )
    print(f"Device encryption token (keep it safe): {token}")

    if app_settings.reboot:
        try:
            reboot_host(app_settings, logger)
        except (subprocess.CalledProcessError, OSError) as e:
            logger.error(f"Reboot failed: {e}. Please reboot the host manually.")
            return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
