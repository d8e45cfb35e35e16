# provision/supervise.py
# -*- coding: utf-8 -*-
"""
Service entry point: `python -m provision.supervise start|stop|status`.

Called by the helper script and the init-system unit. Runs the same
container reconciliation as the bootstrap, nothing else.
"""

import argparse
import sys
from typing import List, Optional

from common.container_runtime import DockerRuntime
from common.logging_config import setup_logging
from components.docker.container_supervisor import (
    ContainerInstance,
    build_supervisor,
)
from provision import config as static_config
from provision.config_loader import load_app_settings
from provision.errors import BootstrapError, PreconditionError
from provision.host_profile import detect_host_profile

SERVICE_NAME = "device-manager-supervise"


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Start, stop or check the device manager container."
    )
    parser.add_argument("action", choices=["start", "stop", "status"])
    parser.add_argument(
        "--config",
        default=static_config.CONFIG_FILE_DEFAULT,
        help="YAML configuration file.",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose output"
    )
    return parser.parse_args(args)


def main(args: Optional[List[str]] = None) -> int:
    """
    Returns:
        0 on success (for status: the container is running), 1 on a
        supervision failure or a stopped container, 2 on a precondition
        failure.
    """
    parsed_args = parse_args(args)
    logger = setup_logging(
        SERVICE_NAME,
        log_level="DEBUG" if parsed_args.verbose else None,
        log_prefix=static_config.LOG_PREFIX_DEFAULT,
    )

    try:
        app_settings = load_app_settings(
            None, parsed_args.config, current_logger=logger
        )
        runtime = DockerRuntime(app_settings, logger)
        supervisor = build_supervisor(app_settings, runtime, logger)
        name = app_settings.container.container_name

        if parsed_args.action == "stop":
            supervisor.stop(name)
            return 0

        if parsed_args.action == "status":
            running = runtime.is_running(name)
            logger.info(f"Container '{name}': {'running' if running else 'not running'}")
            return 0 if running else 1

        profile = detect_host_profile(app_settings, logger)
        supervisor.ensure_running(
            ContainerInstance.from_settings(app_settings, profile.architecture)
        )
        return 0
    except PreconditionError as e:
        logger.error(e.describe())
        return 2
    except BootstrapError as e:
        logger.error(e.describe())
        return 1


if __name__ == "__main__":
    sys.exit(main())
