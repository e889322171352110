"""
Pre-merge backup manifest.

The manifest records which tables the target held (and optionally how
many rows each had) before any schema or row change. It is a checkpoint
for operators, not a data dump; a full backup needs the database's native
dump tooling.
"""

import json
import logging
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path

from opentelemetry import trace

from src.utils.tracing import trace_operation

from .connections import DatabaseHandle
from .errors import BackupError
from .models import BackupManifest
from .report.formatters import file_timestamp
from .schema import count_rows, list_tables

logger = logging.getLogger(__name__)


class BackupRecorder:
    """Writes a manifest of the target database before a merge."""

    def __init__(
        self,
        backup_dir: str | Path = "backups",
        include_row_counts: bool = True,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Args:
            backup_dir: Directory manifests are written to (created if missing)
            include_row_counts: Record a row count per table
            clock: Returns the current time; defaults to UTC now
        """
        self.backup_dir = Path(backup_dir)
        self.include_row_counts = include_row_counts
        self.clock = clock or (lambda: datetime.now(UTC))

    def manifest_path(self, database: str, timestamp: str) -> Path:
        return self.backup_dir / f"backup_{database}_{file_timestamp(timestamp)}.json"

    def snapshot(self, target: DatabaseHandle) -> BackupManifest:
        """
        Record the target's tables and write the manifest.

        Args:
            target: Target database handle

        Returns:
            The written BackupManifest

        Raises:
            BackupError: If the catalog cannot be read or the file cannot be written
        """
        with trace_operation(
            "backup_snapshot",
            kind=trace.SpanKind.INTERNAL,
            database=target.database,
        ):
            timestamp = self.clock().isoformat()

            try:
                tables = list_tables(target)
                row_counts = None
                if self.include_row_counts:
                    row_counts = {table: count_rows(target, table) for table in tables}
            except Exception as e:
                raise BackupError(f"Failed to read target catalog for backup: {e}") from e

            manifest = BackupManifest(
                database=target.database,
                timestamp=timestamp,
                tables=tables,
                row_counts=row_counts,
            )

            path = self.manifest_path(target.database, timestamp)
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                with open(path, "w") as f:
                    json.dump(manifest.to_dict(), f, indent=2)
            except OSError as e:
                raise BackupError(f"Failed to write backup manifest {path}: {e}") from e

            manifest.path = str(path)
            logger.info(f"Backup manifest written to {path} ({manifest.table_count} tables)")
            return manifest
