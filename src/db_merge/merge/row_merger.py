"""
Row-level merge of one table from source into target.

Each source row is looked up in the target by primary key and then
inserted, updated or skipped. A failure on one row is recorded as a
RowError and the remaining rows are still processed.
"""

import logging
from collections.abc import Collection

from opentelemetry import trace

from src.utils.tracing import add_span_attributes, trace_operation

from ..models import (
    ConflictPolicy,
    MergeAction,
    Resolution,
    Row,
    RowError,
    TableMergeResult,
)
from .resolver import resolve_conflict
from .store import TableStore

logger = logging.getLogger(__name__)


class RowMerger:
    """Merges rows from a source store into a target store."""

    def __init__(self, source: TableStore, target: TableStore, dry_run: bool = False):
        """
        Initialize row merger.

        Args:
            source: Store the rows are read from
            target: Store the rows are written to
            dry_run: Count outcomes without writing
        """
        self.source = source
        self.target = target
        self.dry_run = dry_run

    def merge_table(
        self,
        table: str,
        policy: ConflictPolicy,
        writable_columns: Collection[str] | None = None,
    ) -> TableMergeResult:
        """
        Merge every source row of ``table`` into the target.

        Args:
            table: Table name, the same on both sides
            policy: Conflict policy for rows whose key exists in the target
            writable_columns: Target columns that can receive values; source
                columns outside this set are left out of writes. None writes
                every source column.

        Returns:
            TableMergeResult with counts and per-row errors

        Raises:
            Exception: Errors reading the primary key or scanning the source
                propagate; only per-row failures are captured.
        """
        with trace_operation(
            "merge_table",
            kind=trace.SpanKind.INTERNAL,
            table=table,
            policy=policy.value,
            dry_run=self.dry_run,
        ):
            result = TableMergeResult(table=table)

            pk_columns = self.target.primary_key_columns(table)
            if not pk_columns:
                logger.warning(f"Table {table} has no primary key; every source row will be inserted")

            source_rows = self.source.fetch_rows(table)
            if not source_rows:
                logger.info(f"No rows in source table {table}")
                return result

            dropped = set()
            if writable_columns is not None:
                dropped = set(source_rows[0]) - set(writable_columns)
                if dropped:
                    logger.warning(
                        f"Columns {sorted(dropped)} of {table} do not exist in the target and will not be written"
                    )

            for source_row in source_rows:
                row = {c: v for c, v in source_row.items() if c not in dropped}
                try:
                    action = self._merge_row(table, row, pk_columns, policy)
                except Exception as e:
                    logger.error(f"Error merging row in {table}: {e}")
                    result.errors.append(RowError(table=table, error=str(e), data=source_row))
                    continue

                if action is MergeAction.INSERT:
                    result.inserted += 1
                elif action is MergeAction.UPDATE:
                    result.updated += 1
                else:
                    result.skipped += 1

            add_span_attributes(
                rows_inserted=result.inserted,
                rows_updated=result.updated,
                rows_skipped=result.skipped,
                row_errors=len(result.errors),
            )
            logger.info(
                f"Merged {table}: {result.inserted} inserted, {result.updated} updated, "
                f"{result.skipped} skipped, {len(result.errors)} errors"
            )
            return result

    def _merge_row(
        self, table: str, row: Row, pk_columns: list[str], policy: ConflictPolicy
    ) -> MergeAction:
        if not pk_columns:
            self._insert(table, row)
            return MergeAction.INSERT

        key = [row[c] for c in pk_columns]
        existing = self.target.find_row(table, pk_columns, key)
        if existing is None:
            self._insert(table, row)
            return MergeAction.INSERT

        resolution = resolve_conflict(row, existing, policy, pk_columns)
        return self._apply(table, resolution, pk_columns, key)

    def _insert(self, table: str, row: Row) -> None:
        if not self.dry_run:
            self.target.insert_row(table, row)

    def _apply(
        self, table: str, resolution: Resolution, pk_columns: list[str], key: list
    ) -> MergeAction:
        if resolution.action is not MergeAction.UPDATE:
            return resolution.action

        if not any(c not in pk_columns for c in resolution.values):
            # Nothing but key columns to write
            return MergeAction.SKIP

        if not self.dry_run:
            self.target.update_row(table, resolution.values, pk_columns, key)
        return MergeAction.UPDATE
