# -*- coding: utf-8 -*-
"""
Logging configuration for the device manager bootstrap.

Console output is human readable; the optional log file receives one JSON
object per record so runs on many hosts can be collected and searched.
"""

import json
import logging
import os
import socket
import sys
from datetime import datetime, timezone
from typing import Optional

# LogRecord attributes that are not user supplied `extra` fields.
_RESERVED_RECORD_KEYS = {
    "name",
    "msg",
    "args",
    "levelname",
    "levelno",
    "pathname",
    "filename",
    "module",
    "lineno",
    "funcName",
    "created",
    "msecs",
    "relativeCreated",
    "thread",
    "threadName",
    "processName",
    "process",
    "taskName",
    "message",
    "exc_info",
    "exc_text",
    "stack_info",
}


class JSONFormatter(logging.Formatter):
    """
    Formats log records as JSON with a consistent structure: timestamp, level,
    service, logger, message, source location, hostname, and any `extra`
    fields passed to the logging call.
    """

    def __init__(self, service_name: str = "device-manager-setup"):
        super().__init__()
        self.service_name = service_name
        self.hostname = socket.gethostname()

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc)
            .isoformat()
            .replace("+00:00", "Z"),
            "level": record.levelname,
            "service": self.service_name,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
            "process": record.process,
            "hostname": self.hostname,
        }

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        extra_fields = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RESERVED_RECORD_KEYS
        }
        if extra_fields:
            log_entry["extra"] = extra_fields

        return json.dumps(log_entry, ensure_ascii=False, default=str)


def setup_logging(
    service_name: str,
    log_level: Optional[str] = None,
    enable_console: bool = True,
    enable_file: bool = False,
    log_file_path: Optional[str] = None,
    log_prefix: str = "",
    structured: bool = False,
) -> logging.Logger:
    """
    Set up logging for the bootstrap.

    Args:
        service_name: Name of the logger returned and of the JSON `service` field.
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL. Defaults to the
            LOG_LEVEL environment variable, then INFO.
        enable_console: Log to stdout.
        enable_file: Also log JSON records to `log_file_path`.
        log_file_path: Path of the log file.
        log_prefix: Text placed in front of every console line.
        structured: Use the JSON formatter on the console as well.

    Returns:
        Configured logger instance
    """
    if log_level is None:
        log_level = os.environ.get("LOG_LEVEL", "INFO").upper()

    numeric_level = getattr(logging, log_level.upper(), None)
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
        log_level = "INFO"

    json_formatter = JSONFormatter(service_name)
    prefix = f"{log_prefix} " if log_prefix else ""
    console_formatter = logging.Formatter(
        f"%(asctime)s {prefix}%(levelname)s - %(message)s"
    )

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    if enable_console:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(numeric_level)
        console_handler.setFormatter(
            json_formatter if structured else console_formatter
        )
        root_logger.addHandler(console_handler)

    file_error: Optional[OSError] = None
    if enable_file and log_file_path:
        try:
            file_handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            file_error = e
        else:
            file_handler.setLevel(numeric_level)
            file_handler.setFormatter(json_formatter)
            root_logger.addHandler(file_handler)

    logger = logging.getLogger(service_name)
    if file_error is not None:
        logger.warning(
            f"Could not open log file {log_file_path}: {file_error}. Logging to console only."
        )

    logger.debug(
        "Logging initialized",
        extra={
            "log_level": log_level,
            "console_enabled": enable_console,
            "file_enabled": enable_file and file_error is None,
        },
    )

    return logger
