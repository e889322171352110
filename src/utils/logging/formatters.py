"""
Log formatters: one JSON object per line for log shippers, and a
colored single-line format for operators watching a merge in a terminal.

Both surface fields passed through ``extra`` (table, policy, row counts).
"""

import json
import logging
import os
import sys
import traceback
from datetime import UTC, datetime
from typing import Any

# Attributes every LogRecord carries; anything else came in through ``extra``
RESERVED_RECORD_FIELDS = frozenset({
    "name", "msg", "args", "created", "filename", "funcName",
    "levelname", "levelno", "lineno", "module", "msecs",
    "message", "pathname", "process", "processName", "relativeCreated",
    "thread", "threadName", "exc_info", "exc_text", "stack_info",
    "taskName", "asctime",
})

LINE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to ``record`` through ``extra``."""
    return {
        key: value
        for key, value in vars(record).items()
        if key not in RESERVED_RECORD_FIELDS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """
    Structured formatter for merge logs.

    Each record becomes a JSON object with level, logger, message, app and
    source location; ``extra`` fields are nested under ``context`` and
    values json cannot encode (dates, Decimals) are stringified.
    """

    def __init__(
        self,
        include_timestamp: bool = True,
        include_hostname: bool = True,
        app_name: str = "db-merge-engine",
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.include_hostname = include_hostname
        self.app_name = app_name
        self.hostname = os.uname().nodename if include_hostname else None

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
        }
        if self.include_timestamp:
            entry["timestamp"] = datetime.fromtimestamp(record.created, UTC).isoformat()
        if self.hostname:
            entry["hostname"] = self.hostname

        entry["source"] = {
            "file": record.pathname,
            "line": record.lineno,
            "function": record.funcName,
        }

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            entry["exception"] = {
                "type": exc_type.__name__,
                "message": str(exc_value),
                "traceback": traceback.format_exception(exc_type, exc_value, exc_tb),
            }

        context = extra_fields(record)
        if context:
            entry["context"] = context

        return json.dumps(entry, default=str)


class ConsoleFormatter(logging.Formatter):
    """Single-line formatter; the level name is colored when stderr is a TTY."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True):
        super().__init__(fmt=LINE_FORMAT, datefmt=DATE_FORMAT)
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        color = self.COLORS.get(levelname) if self.use_colors else None
        if color:
            record.levelname = f"{color}{levelname}{self.RESET}"
        try:
            line = super().format(record)
        finally:
            # Other handlers share this record
            record.levelname = levelname

        context = extra_fields(record)
        if context:
            line += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"
        return line
