# provision/cli_handler.py
# -*- coding: utf-8 -*-
"""
Handles Command Line Interface (CLI) interactions for the bootstrap.
"""

import datetime
import logging
from typing import Optional, Sequence

from common.command_utils import log_setup
from provision import config as static_config
from provision.config_models import AppSettings

module_logger = logging.getLogger(__name__)


def cli_prompt_for_confirmation(
    prompt_message: str,
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
) -> bool:
    """
    Ask the operator a yes/no question on the terminal.

    Parameters:
    prompt_message : str
        The message to display in the CLI when prompting the user.
    app_settings : AppSettings
        The application settings object providing the log symbols.
    current_logger_instance : Optional[logging.Logger]
        The logger instance to use for logging.

    Returns:
    bool
        True if the user answers "y" or "yes", otherwise False. End of input
        counts as "no".
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    symbols = app_settings.symbols
    try:
        user_input = (
            input(f"   {symbols.get('info', 'ℹ️')} {prompt_message} (y/N): ")
            .strip()
            .lower()
        )
        return user_input in ("y", "yes")
    except EOFError:
        log_setup(
            f"{symbols.get('warning', '!')} No user input (EOF), defaulting to 'N' for prompt: '{prompt_message}'",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False


def confirm_installation(
    packages: Sequence[str],
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
) -> bool:
    """List what the bootstrap is about to do and ask to go ahead."""
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    symbols = app_settings.symbols
    if packages:
        log_setup(
            f"{symbols.get('package', '📦')} The following packages will be installed if missing: {' '.join(packages)}",
            "info",
            logger_to_use,
            app_settings,
        )
    log_setup(
        f"{symbols.get('info', 'ℹ️')} The device manager container '{app_settings.container.container_name}' "
        f"will be started and registered as service '{app_settings.service.name}'.",
        "info",
        logger_to_use,
        app_settings,
    )
    return cli_prompt_for_confirmation(
        "Do you want to continue?", app_settings, logger_to_use
    )


def view_configuration(
    app_config: AppSettings, current_logger: Optional[logging.Logger] = None
) -> None:
    """
    Log the effective configuration. The encryption token is never shown,
    only whether one was supplied.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = app_config.symbols
    container = app_config.container
    network = app_config.network

    config_text = f"{symbols.get('info', 'ℹ️')} Current effective configuration values (CLI > ENV > YAML > Defaults):\n\n"
    config_text += f"  Host Family Override:          {app_config.host_family.value if app_config.host_family else 'auto'}\n"
    config_text += f"  Skip Packages:                 {app_config.skip_packages}\n"
    config_text += f"  Reboot After Setup:            {app_config.reboot}\n"
    config_text += f"  Log Prefix:                    {app_config.log_prefix}\n"
    config_text += f"  Encryption Token:              {'[SET]' if app_config.encryption_token else '[NOT SET]'}\n\n"

    config_text += "  Device Directory (device.*):\n"
    config_text += f"    Directory:                   {app_config.device.directory}\n"
    config_text += f"    Token File:                  {app_config.device.token_filename}\n\n"

    config_text += "  Container (container.*):\n"
    config_text += f"    Runtime Command:             {container.runtime_command}\n"
    config_text += f"    Image:                       {container.image_prefix}:{container.image_version}-<arch>\n"
    config_text += f"    Name:                        {container.container_name}\n"
    config_text += f"    Restart Policy:              {container.restart_policy}\n"
    config_text += f"    Start Attempts / Delay:      {container.start_attempts} / {container.start_retry_delay}s\n\n"

    config_text += "  Network Transition (network.*):\n"
    config_text += f"    Enabled:                     {'family default' if network.transition_enabled is None else network.transition_enabled}\n"
    config_text += f"    Backup Root:                 {network.backup_root}\n"
    config_text += f"    Probe Host:                  {network.probe_host}\n\n"

    config_text += f"  Service Name:                  {app_config.service.name}\n"
    config_text += f"  SSH Workload Key:              {app_config.ssh.ssh_dir}/{app_config.ssh.key_name}\n\n"

    config_text += (
        f"  Script Version (static):       {static_config.SCRIPT_VERSION}\n"
    )
    config_text += f"  Timestamp (current view):      {datetime.datetime.now().strftime('%Y-%m-%d-%H%M%S')}\n"

    log_setup(
        "Displaying current configuration:", "info", logger_to_use, app_config
    )
    log_setup(f"\n{config_text}\n", "info", logger_to_use, app_config)
