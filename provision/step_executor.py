# provision/step_executor.py
# -*- coding: utf-8 -*-
"""
Provides functionality to execute individual bootstrap steps.

A step is logged when it starts and when it succeeds. On failure the error is
tagged with the step name, logged, and re-raised so the orchestrator can
abort the run with the failing step named.
"""

import logging
from typing import Any, Callable, Optional

from common.command_utils import log_setup
from provision.config_models import AppSettings
from provision.errors import BootstrapError

module_logger = logging.getLogger(__name__)


def execute_step(
    step_tag: str,
    step_description: str,
    step_function: Callable[[], Any],
    app_settings: AppSettings,
    current_logger_instance: Optional[logging.Logger] = None,
) -> Any:
    """
    Execute a single bootstrap step.

    Args:
        step_tag: A unique string identifier for the step.
        step_description: A human-readable description of the step.
        step_function: The callable doing the work. Its return value is
                       passed back to the caller.
        app_settings: The application settings object.
        current_logger_instance: The logger instance to use.

    Returns:
        Whatever step_function returned.

    Raises:
        BootstrapError: the step failed. Errors that are not BootstrapError
                        are wrapped so the failure kind is always known.
    """
    logger_to_use = (
        current_logger_instance if current_logger_instance else module_logger
    )
    symbols = app_settings.symbols

    log_setup(
        f"--- {symbols.get('step', '➡️')} Executing: {step_description} ({step_tag}) ---",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        result = step_function()
    except BootstrapError as e:
        if e.step is None:
            e.step = step_tag
        log_setup(
            f"{symbols.get('error', '❌')} FAILED: {step_description} ({step_tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        log_setup(
            f"   Error details: {e}",
            "error",
            logger_to_use,
            app_settings,
        )
        raise
    except Exception as e:
        log_setup(
            f"{symbols.get('error', '❌')} FAILED: {step_description} ({step_tag})",
            "error",
            logger_to_use,
            app_settings,
        )
        log_setup(
            f"   Error details: {str(e)}",
            "error",
            logger_to_use,
            app_settings,
            exc_info=True,
        )
        raise BootstrapError(str(e), step=step_tag) from e

    log_setup(
        f"--- {symbols.get('success', '✅')} Successfully completed: {step_description} ({step_tag}) ---",
        "success",
        logger_to_use,
        app_settings,
    )
    return result
