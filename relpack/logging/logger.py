# Author : Eshan Roy <eshanized@proton.me>
# SPDX-License-Identifier: MIT

"""
Structured JSON logger for relpack.

Every log entry is one JSON object per line, so the CI job log stays
greppable and machine-readable next to the raw cargo/strip output that
passes straight through.

How this works:
  - We use Python's standard `logging` module, with JsonFormatter replacing
    the default formatter.
  - One handler writes to stdout, a second one optionally writes to a file.
  - `get_logger` is the only way to create loggers in this package.

The JSON structure looks like:
  {"ts": "2026-...", "level": "INFO", "module": "relpack.release.pipeline", "msg": "Build finished", ...}
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

# The one file handler configure_package_logging shares across every
# relpack logger. Replaced, and the old one closed, when the path changes.
_package_file_handler: Optional[logging.FileHandler] = None

# LogRecord attributes that are never copied into the JSON entry.
_STANDARD_ATTRS: frozenset[str] = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "relativeCreated",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "pathname",
        "filename",
        "module",
        "levelno",
        "levelname",
        "processName",
        "process",
        "threadName",
        "thread",
        "message",
        "msecs",
        "taskName",
    }
)


class JsonFormatter(logging.Formatter):
    """
    Formats log records as single-line JSON objects.

    Mandatory fields:
      ts    : ISO 8601 UTC timestamp
      level : log level name
      module: the logger name (usually the Python module path)
      msg   : the formatted message string

    Anything passed through the `extra` kwarg is merged in as additional
    context, e.g. the target triple or the artifact path.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "ts": datetime.now(tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "module": record.name,
            "msg": record.getMessage(),
        }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                entry[key] = value

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)


_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def _resolve_log_level(level_name: str) -> int:
    """Turn a level name string into the corresponding logging constant."""
    upper = level_name.upper()
    if upper not in _VALID_LOG_LEVELS:
        raise ValueError(
            f"Invalid log level '{level_name}'. Must be one of: {', '.join(sorted(_VALID_LOG_LEVELS))}"
        )
    return getattr(logging, upper)


def get_logger(
    name: str,
    log_level: str = "INFO",
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Create a structured JSON logger.

    Every module calls this once at import time and keeps the returned
    logger. Calling it again for the same name updates the level but does
    not stack a second set of handlers.

    Args:
        name: Logger name, typically __name__ of the calling module.
        log_level: One of DEBUG, INFO, WARNING, ERROR, CRITICAL.
        log_file: Optional path to a log file. If provided, logs go to both
                  stdout and the file.

    Returns:
        A configured logging.Logger that outputs structured JSON.
    """
    logger = logging.getLogger(name)
    level = _resolve_log_level(log_level)
    logger.setLevel(level)

    if logger.handlers:
        for handler in logger.handlers:
            handler.setLevel(level)
        return logger

    formatter = JsonFormatter()

    stdout_handler = logging.StreamHandler(stream=sys.stdout)
    stdout_handler.setLevel(level)
    stdout_handler.setFormatter(formatter)
    logger.addHandler(stdout_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(str(log_file), encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    # Don't propagate to root logger; we handle all output ourselves.
    logger.propagate = False

    return logger


def _package_loggers() -> list[logging.Logger]:
    return [
        logging.getLogger(name)
        for name in list(logging.Logger.manager.loggerDict)
        if name == "relpack" or name.startswith("relpack.")
    ]


def close_package_log_file() -> None:
    """Detach and close the shared log file handler, if one is open."""
    global _package_file_handler
    if _package_file_handler is None:
        return
    for logger in _package_loggers():
        logger.removeHandler(_package_file_handler)
    _package_file_handler.close()
    _package_file_handler = None


def configure_package_logging(log_level: str, log_file: Optional[Path] = None) -> None:
    """
    Apply a level (and optionally a log file) to every relpack logger so far.

    Module-level loggers are created at import time with the default level,
    before the CLI has parsed --log-level. Bootstrap calls this afterwards so
    a DEBUG run actually shows debug records from every module, and a
    configured log file receives all of them.
    """
    global _package_file_handler
    level = _resolve_log_level(log_level)

    file_handler: Optional[logging.FileHandler] = None
    if log_file is not None:
        path = os.path.abspath(str(log_file))
        if _package_file_handler is not None and _package_file_handler.baseFilename == path:
            file_handler = _package_file_handler
        else:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(path, encoding="utf-8")
            file_handler.setFormatter(JsonFormatter())
            close_package_log_file()
            _package_file_handler = file_handler

    for logger in _package_loggers():
        get_logger(logger.name, log_level=log_level)
        if file_handler is not None and file_handler not in logger.handlers:
            logger.addHandler(file_handler)
        for handler in logger.handlers:
            handler.setLevel(level)
