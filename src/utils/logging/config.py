"""
Root logger setup for the merge engine.

Console output goes to stderr so that ``db-merge run --json`` keeps stdout
for the report. An optional rotating log file receives the same records.
"""

import logging
import logging.handlers
import os
import sys

from .formatters import DATE_FORMAT, LINE_FORMAT, ConsoleFormatter, JSONFormatter

APP_NAME = "db-merge-engine"

# Libraries whose INFO/DEBUG output drowns out merge progress
NOISY_LOGGERS = ("urllib3", "requests", "opentelemetry")

_TRUE_VALUES = ("true", "1", "yes")


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in _TRUE_VALUES


def setup_logging(
    level: str = "INFO",
    log_file: str | None = None,
    console_output: bool = True,
    json_format: bool = False,
    app_name: str = APP_NAME,
    max_bytes: int = 100 * 1024 * 1024,
    backup_count: int = 5,
) -> None:
    """
    Replace the root logger's handlers.

    Args:
        level: Level name; unknown names fall back to INFO
        log_file: Rotating log file path, created with its directory; None disables it
        console_output: Log to stderr
        json_format: JSON lines instead of the human-readable format
        app_name: ``app`` field of JSON records
        max_bytes: Size at which the log file rotates
        backup_count: Rotated files kept
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    handlers: list[logging.Handler] = []

    if console_output:
        console = logging.StreamHandler(sys.stderr)
        console.setFormatter(
            JSONFormatter(app_name=app_name) if json_format else ConsoleFormatter(use_colors=True)
        )
        handlers.append(console)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        rotating = logging.handlers.RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
        rotating.setFormatter(
            JSONFormatter(app_name=app_name)
            if json_format
            else logging.Formatter(fmt=LINE_FORMAT, datefmt=DATE_FORMAT)
        )
        handlers.append(rotating)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(numeric_level)
    for handler in handlers:
        handler.setLevel(numeric_level)
        root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).debug(
        f"Logging to {'stderr' if console_output else 'no console'}"
        f"{f' and {log_file}' if log_file else ''} at {logging.getLevelName(numeric_level)}"
    )


def configure_from_env(level: str | None = None, json_format: bool | None = None) -> None:
    """
    Set up logging from LOG_LEVEL, LOG_FILE, LOG_JSON and LOG_CONSOLE.

    Arguments that are not None (command-line flags) take precedence over
    the corresponding variables.
    """
    setup_logging(
        level=level if level is not None else os.getenv("LOG_LEVEL", "INFO"),
        log_file=os.getenv("LOG_FILE"),
        console_output=_env_flag("LOG_CONSOLE", "true"),
        json_format=json_format if json_format is not None else _env_flag("LOG_JSON", "false"),
    )
