"""
ContextLogger: a logger that stamps fixed fields onto every record.

The orchestrator creates one per table so that every line logged while a
table is merged carries ``table`` and ``policy``.
"""

import logging
from typing import Any


class ContextLogger:
    """
    Usage:
        logger = ContextLogger(__name__, table="users", policy="keep_latest")
        logger.info("Table merged", inserted=10)
        # record extra: table, policy, inserted
    """

    def __init__(self, name: str, **context):
        self.logger = logging.getLogger(name)
        self.context = context

    def _log(self, level: int, msg: str, *args, exc_info=None, **fields) -> None:
        # Per-call fields shadow the fixed context for this record only
        self.logger.log(level, msg, *args, exc_info=exc_info, extra={**self.context, **fields})

    def debug(self, msg: str, *args, **fields) -> None:
        self._log(logging.DEBUG, msg, *args, **fields)

    def info(self, msg: str, *args, **fields) -> None:
        self._log(logging.INFO, msg, *args, **fields)

    def warning(self, msg: str, *args, **fields) -> None:
        self._log(logging.WARNING, msg, *args, **fields)

    def error(self, msg: str, *args, exc_info=None, **fields) -> None:
        self._log(logging.ERROR, msg, *args, exc_info=exc_info, **fields)

    def get_context(self) -> dict[str, Any]:
        return dict(self.context)
