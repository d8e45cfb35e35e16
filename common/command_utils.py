# common/command_utils.py
# -*- coding: utf-8 -*-
"""
Running host commands and logging what they did.
"""

import logging
import shutil
import subprocess
from typing import Dict, Optional, Sequence

from provision.config_models import SYMBOLS_DEFAULT, AppSettings

module_logger = logging.getLogger(__name__)

# "success" has no logging level of its own.
_LEVEL_METHODS: Dict[str, str] = {
    "debug": "debug",
    "info": "info",
    "success": "info",
    "warning": "warning",
    "error": "error",
    "critical": "critical",
}


def log_setup(
    message: str,
    level: str = "info",
    current_logger: Optional[logging.Logger] = None,
    app_settings: Optional[AppSettings] = None,
    exc_info: bool = False,
) -> None:
    """
    Logs a bootstrap message at the requested level.

    "success" is logged at info level; any unknown level falls back to info.

    Args:
        message (str): The log message to be recorded.
        level (str): One of "debug", "info", "success", "warning", "error",
            "critical". Defaults to "info".
        current_logger (Optional[logging.Logger]): A logger instance to use.
            If not provided, a module-level logger will be used.
        app_settings (Optional[AppSettings]): Application settings; accepted so
            every call site can pass them through, not used for routing.
        exc_info (bool): Include exception details in the log.
    """
    effective_logger = current_logger if current_logger else module_logger
    method_name = _LEVEL_METHODS.get(level, "info")
    getattr(effective_logger, method_name)(message, exc_info=exc_info)


def get_symbols(app_settings: Optional[AppSettings]) -> Dict[str, str]:
    """Return the configured log symbols, falling back to the defaults."""
    if app_settings is not None and getattr(app_settings, "symbols", None):
        return app_settings.symbols
    return SYMBOLS_DEFAULT


def _log_stream(
    label: str,
    output: Optional[str],
    level: str,
    logger: logging.Logger,
    app_settings: Optional[AppSettings],
) -> None:
    if isinstance(output, str) and output.strip():
        log_setup(f"   {label}: {output.strip()}", level, logger, app_settings)


def run_command(
    command: Sequence[str],
    app_settings: Optional[AppSettings],
    check: bool = True,
    capture_output: bool = False,
    current_logger: Optional[logging.Logger] = None,
    env: Optional[Dict[str, str]] = None,
    timeout: Optional[float] = None,
) -> subprocess.CompletedProcess:
    """
    Run an external command (argument list, never a shell string) and log it.

    The command line is logged at debug level before it runs. Captured output
    is logged at debug level on success and at error level on failure.

    Returns:
        subprocess.CompletedProcess: The completed process.

    Raises:
        subprocess.CalledProcessError: Non-zero exit code with check=True.
        subprocess.TimeoutExpired: The command outlived `timeout`.
        FileNotFoundError: The executable is not installed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    argv = [str(part) for part in command]
    command_line = subprocess.list2cmdline(argv)

    log_setup(
        f"{symbols.get('gear', '⚙️')} Executing: {command_line}",
        "debug",
        logger_to_use,
        app_settings,
    )
    try:
        result = subprocess.run(
            argv,
            check=check,
            capture_output=capture_output,
            text=True,
            env=env,
            timeout=timeout,
        )
    except subprocess.CalledProcessError as e:
        log_setup(
            f"{symbols.get('error', '❌')} Command `{command_line}` failed (rc {e.returncode}).",
            "error",
            logger_to_use,
            app_settings,
        )
        _log_stream("stdout", e.stdout, "error", logger_to_use, app_settings)
        _log_stream("stderr", e.stderr, "error", logger_to_use, app_settings)
        raise
    except FileNotFoundError:
        log_setup(
            f"{symbols.get('error', '❌')} Command not found: {argv[0]}. Is it installed and in PATH?",
            "error",
            logger_to_use,
            app_settings,
        )
        raise

    if capture_output:
        _log_stream("stdout", result.stdout, "debug", logger_to_use, app_settings)
        _log_stream("stderr", result.stderr, "debug", logger_to_use, app_settings)
    return result


def command_exists(command_name: str) -> bool:
    """True if `command_name` is found on PATH."""
    return shutil.which(command_name) is not None
