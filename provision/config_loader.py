# provision/config_loader.py
# -*- coding: utf-8 -*-
"""
Configuration loader for the bootstrap.

Handles loading settings from Pydantic model defaults, a YAML file,
environment variables, and command-line arguments, applying this order of
precedence (later wins):
1. Pydantic Model Defaults
2. YAML Configuration File
3. Environment Variables (DEVICE_SETUP_* and ENCRYPTION_TOKEN)
4. Command-Line Arguments
"""

import argparse
import logging
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from provision import config as static_config
from provision.config_models import AppSettings
from provision.errors import PreconditionError

module_logger = logging.getLogger(__name__)

# CLI destination -> dotted settings path. Flags left at None are not applied.
CLI_SETTING_PATHS: Dict[str, str] = {
    "no_input": "no_input",
    "host_family": "host_family",
    "skip_packages": "skip_packages",
    "reboot": "reboot",
    "image_version": "container.image_version",
    "network_transition": "network.transition_enabled",
}


def _deep_update(
    source: Dict[str, Any], overrides: Dict[str, Any]
) -> Dict[str, Any]:
    """
    Recursively updates a dictionary `source` with values from `overrides`.

    Nested dictionaries are merged key by key; any other value in `overrides`
    replaces the one in `source`. None values never replace an existing value.

    Returns:
        Dict[str, Any]: The updated `source` dictionary.
    """
    for key, value in overrides.items():
        if (
            isinstance(value, dict)
            and key in source
            and isinstance(source[key], dict)
        ):
            source[key] = _deep_update(source[key], value)
        elif value is not None:
            source[key] = value
        elif key not in source:
            source[key] = value
    return source


def _set_dotted(target: Dict[str, Any], dotted_path: str, value: Any) -> None:
    keys = dotted_path.split(".")
    node = target
    for key in keys[:-1]:
        if not isinstance(node.get(key), dict):
            node[key] = {}
        node = node[key]
    node[keys[-1]] = value


def load_yaml_config(
    config_file_path: str, current_logger: Optional[logging.Logger] = None
) -> Dict[str, Any]:
    """
    Read the YAML configuration file.

    A missing, unreadable or malformed file is logged and treated as empty.
    """
    logger_to_use = current_logger if current_logger else module_logger
    yaml_config_path = Path(config_file_path)

    if not yaml_config_path.is_file():
        logger_to_use.info(
            f"Configuration file '{yaml_config_path}' not found. Using defaults, environment variables, and CLI args."
        )
        return {}

    try:
        with open(yaml_config_path, "r", encoding="utf-8") as f:
            yaml_data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        logger_to_use.warning(
            f"Could not parse YAML config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}
    except OSError as e:
        logger_to_use.warning(
            f"Could not read config file '{yaml_config_path}': {e}. Using defaults and environment variables."
        )
        return {}

    if yaml_data is None:
        return {}
    if not isinstance(yaml_data, dict):
        logger_to_use.warning(
            f"Config file '{yaml_config_path}' does not contain a valid YAML dictionary. Ignoring."
        )
        return {}

    logger_to_use.info(f"Loaded configuration from {yaml_config_path}")
    return yaml_data


def cli_overrides(cli_args: Optional[argparse.Namespace]) -> Dict[str, Any]:
    """Nested settings dictionary holding only the CLI flags that were given."""
    overrides: Dict[str, Any] = {}
    if cli_args is None:
        return overrides
    for cli_key, cli_value in vars(cli_args).items():
        setting_path = CLI_SETTING_PATHS.get(cli_key)
        if setting_path is None or cli_value is None:
            continue
        _set_dotted(overrides, setting_path, cli_value)
    return overrides


def load_app_settings(
    cli_args: Optional[argparse.Namespace] = None,
    config_file_path: str = static_config.CONFIG_FILE_DEFAULT,
    current_logger: Optional[logging.Logger] = None,
) -> AppSettings:
    """
    Loads application settings with the precedence described in the module
    docstring.

    Pydantic BaseSettings reads the environment when instantiated. Only the
    values it actually found there are laid over the YAML data, so a YAML
    value is not masked by a model default.

    Args:
        cli_args: Parsed command-line arguments (from argparse).
        config_file_path: Path to the YAML configuration file.
        current_logger: Optional logger to use instead of the module logger.

    Returns:
        An instance of AppSettings with the fully resolved configuration.

    Raises:
        PreconditionError: the merged configuration does not validate.
    """
    logger_to_use = current_logger if current_logger else module_logger

    try:
        env_values = AppSettings().model_dump(exclude_unset=True)
        current_values_dict = load_yaml_config(config_file_path, logger_to_use)
        current_values_dict = _deep_update(current_values_dict, env_values)
        current_values_dict = _deep_update(
            current_values_dict, cli_overrides(cli_args)
        )
        final_settings = AppSettings(**current_values_dict)
    except ValidationError as e:
        logger_to_use.error(f"Configuration validation failed: {e}")
        raise PreconditionError(
            f"Configuration error: {e}",
            hint=f"Check {config_file_path} and DEVICE_SETUP_* environment variables.",
        ) from e

    logger_to_use.info(
        "Successfully loaded and validated application settings"
    )
    return final_settings
