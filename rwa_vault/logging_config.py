#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""Structured logging configuration for the RWA vault engine.

Every committed operation logs one INFO line and every rejected operation
logs one WARNING line carrying the error code. Context such as the acting
principal is passed through ``extra`` and rendered by :class:`ContextFormatter`.

Usage:
    from rwa_vault.logging_config import get_logger

    logger = get_logger(__name__)
    logger.info("deposit committed", extra={"principal": user, "amount": 10})
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Dict, Optional

VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_raw_level = os.getenv("LOG_LEVEL", "INFO").upper()
DEFAULT_LOG_LEVEL = _raw_level if _raw_level in VALID_LOG_LEVELS else "INFO"

DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# Attributes every LogRecord carries; anything else came from ``extra``
_RESERVED_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}

_loggers: Dict[str, logging.Logger] = {}
_configured = False


class ContextFormatter(logging.Formatter):
    """Append ``extra`` fields as sorted ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = {
            key: value
            for key, value in vars(record).items()
            if key not in _RESERVED_ATTRS and not key.startswith("_")
        }
        if not context:
            return base
        pairs = " ".join(f"{key}={context[key]}" for key in sorted(context))
        return f"{base} | {pairs}"


def configure_logging(
    level: str = DEFAULT_LOG_LEVEL,
    log_file: Optional[Path] = None,
    console: bool = True,
    format_string: str = DEFAULT_LOG_FORMAT,
) -> None:
    """Configure the package logger with handlers and formatting.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console: Whether to log to stderr (default: True)
        format_string: Log message format string
    """
    global _configured

    if _configured:
        return

    root = logging.getLogger("rwa_vault")
    log_level = getattr(logging, str(level).upper(), logging.INFO)
    root.setLevel(log_level)

    formatter = ContextFormatter(format_string, datefmt=TIMESTAMP_FORMAT)

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(formatter)
        root.addHandler(console_handler)

    if log_file:
        try:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file, encoding="utf-8")
            file_handler.setLevel(log_level)
            file_handler.setFormatter(formatter)
            root.addHandler(file_handler)
        except OSError as e:
            print(f"Warning: Failed to create log file {log_file}: {e}", file=sys.stderr)

    _configured = True


def get_logger(name: str) -> logging.Logger:
    """Get or create a logger with the given name.

    Args:
        name: Logger name (typically __name__ of the calling module)

    Returns:
        Logger instance under the ``rwa_vault`` hierarchy
    """
    if not _configured:
        log_path_str = os.getenv("LOG_PATH")
        log_path = Path(log_path_str) if log_path_str else None
        configure_logging(log_file=log_path)

    if name in _loggers:
        return _loggers[name]

    logger = logging.getLogger(name)
    _loggers[name] = logger
    return logger


def set_log_level(level: str) -> None:
    """Change the log level for the package logger and its handlers.

    Args:
        level: New log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    if level.upper() not in VALID_LOG_LEVELS:
        print(f"Warning: Invalid log level '{level}'", file=sys.stderr)
        return
    log_level = getattr(logging, level.upper())
    root = logging.getLogger("rwa_vault")
    root.setLevel(log_level)
    for handler in root.handlers:
        handler.setLevel(log_level)
