"""
Logging for the merge engine: JSON lines or colored console output, with
per-table context carried on every record.

Usage:
    from src.utils.logging import configure_from_env, ContextLogger

    configure_from_env(level="DEBUG")

    logger = ContextLogger(__name__, table="users", policy="keep_latest")
    logger.info("Table merged", inserted=12)
"""

from .config import configure_from_env, setup_logging
from .formatters import ConsoleFormatter, JSONFormatter
from .handlers import ContextLogger

__all__ = [
    "setup_logging",
    "configure_from_env",
    "JSONFormatter",
    "ConsoleFormatter",
    "ContextLogger",
]
