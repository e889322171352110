"""
Top-level driver for a merge run.

A run connects to both databases, writes the backup manifest, then for
each selected table reconciles the schema and merges the rows. Per-table
failures are recorded in the merge log and the run moves on; connection
and backup failures end the run. Both connections are always closed.
"""

import logging
import threading
import time
from collections.abc import Callable
from datetime import UTC, datetime

from opentelemetry import trace

from src.utils.logging import ContextLogger
from src.utils.metrics import MergeMetrics
from src.utils.tracing import add_span_attributes, trace_operation

from .backup import BackupRecorder
from .connections import DatabaseHandle, close_database, open_database
from .errors import MergeCancelledError, MergeError, ReportWriteError
from .merge import RowMerger, SqlTableStore, TableStore
from .models import (
    BackupManifest,
    DatabaseConfig,
    MergeLogEntry,
    MergeOptions,
    MergeReport,
    MergeState,
    SchemaDiff,
)
from .report import build_report, write_report
from .schema import SchemaReconciler, describe_table, diff_schemas, list_tables

logger = logging.getLogger(__name__)

Connector = Callable[[DatabaseConfig, str], DatabaseHandle]


class MergeOrchestrator:
    """
    Runs one bounded merge pass from a source database into a target.

    Collaborators are injected so the run can be driven against fakes:
    ``connector`` opens a handle for a config, ``store_factory`` wraps a
    handle for row access, ``clock`` stamps the backup and report.
    """

    def __init__(
        self,
        source_config: DatabaseConfig,
        target_config: DatabaseConfig,
        options: MergeOptions | None = None,
        connector: Connector = open_database,
        store_factory: Callable[[DatabaseHandle], TableStore] = SqlTableStore,
        clock: Callable[[], datetime] | None = None,
        metrics: MergeMetrics | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ):
        self.source_config = source_config
        self.target_config = target_config
        self.options = options or MergeOptions()
        self.connector = connector
        self.store_factory = store_factory
        self.clock = clock or (lambda: datetime.now(UTC))
        self.metrics = metrics or MergeMetrics()
        self.monotonic = monotonic

        self.state = MergeState.IDLE
        self.backup_manifest: BackupManifest | None = None

    def select_tables(self, source: DatabaseHandle, target: DatabaseHandle) -> list[str]:
        """
        Tables to merge: the explicit list, or tables present on both sides.

        Tables found on only one side are left out without error.
        """
        if self.options.tables:
            return list(self.options.tables)

        try:
            source_tables = list_tables(source)
            target_tables = set(list_tables(target))
        except Exception as e:
            raise MergeError(f"Failed to list tables: {e}") from e

        tables = [t for t in source_tables if t in target_tables]
        excluded = [t for t in source_tables if t not in target_tables]
        if excluded:
            logger.info(f"Tables only in source, not merged: {', '.join(excluded)}")
        return tables

    def _cancellation_reason(self, cancel_event: threading.Event | None, started: float) -> str | None:
        if cancel_event is not None and cancel_event.is_set():
            return "Merge run cancelled"
        deadline = self.options.deadline_seconds
        if deadline is not None and self.monotonic() - started >= deadline:
            return f"Merge run exceeded its deadline of {deadline}s"
        return None

    def merge_table(
        self, source: DatabaseHandle, target: DatabaseHandle, table: str
    ) -> list[MergeLogEntry]:
        """
        Reconcile and merge one table.

        Returns:
            Log entries for the table: schema and row errors followed by its
            merge_complete summary, or a single error entry if the table failed
        """
        table_logger = ContextLogger(__name__, table=table, policy=self.options.policy.value)
        started = self.monotonic()
        entries: list[MergeLogEntry] = []

        try:
            with trace_operation("merge_table_run", kind=trace.SpanKind.INTERNAL, table=table):
                self.state = MergeState.RECONCILING
                source_schema = describe_table(source, table)
                target_schema = describe_table(target, table)
                if not source_schema.columns:
                    raise MergeError(f"Table {table} not found in source database")
                if not target_schema.columns:
                    raise MergeError(f"Table {table} not found in target database")

                diff = diff_schemas(source_schema, target_schema)
                for difference in diff.type_differences:
                    table_logger.warning(
                        f"Column definition differs and is left unchanged: {difference.column}",
                        column=difference.column,
                    )

                reconciled = SchemaReconciler(target, dry_run=self.options.dry_run).reconcile(
                    table, diff.missing_in_target
                )
                for column in reconciled.added:
                    self.metrics.record_schema_column(table, added=True)
                for failure in reconciled.failed:
                    self.metrics.record_schema_column(table, added=False)
                    entries.append(failure.to_log_entry())

                self.state = MergeState.MERGING
                writable = set(target_schema.column_names) | set(reconciled.added)
                merger = RowMerger(
                    self.store_factory(source),
                    self.store_factory(target),
                    dry_run=self.options.dry_run,
                )
                result = merger.merge_table(table, self.options.policy, writable_columns=writable)
                entries.extend(result.to_log_entries())

            self.metrics.record_table(
                table,
                success=True,
                duration=self.monotonic() - started,
                inserted=result.inserted,
                updated=result.updated,
                skipped=result.skipped,
                errors=len(result.errors),
            )
            table_logger.info(
                "Table merged",
                inserted=result.inserted,
                updated=result.updated,
                skipped=result.skipped,
                row_errors=len(result.errors),
            )

        except Exception as e:
            table_logger.error(f"Table merge failed: {e}", exc_info=True)
            entries.append(MergeLogEntry(table=table, action="error", error=str(e)))
            self.metrics.record_table(table, success=False, duration=self.monotonic() - started)

        return entries

    def run(self, cancel_event: threading.Event | None = None) -> MergeReport:
        """
        Execute the merge run.

        Args:
            cancel_event: Set to stop the run before the next table

        Returns:
            MergeReport; ``summary.total_errors`` counts every recorded failure

        Raises:
            DatabaseConnectionError: If either database cannot be opened
            BackupError: If the backup manifest cannot be written
            MergeError: If the default table list cannot be read
        """
        started = self.monotonic()
        source: DatabaseHandle | None = None
        target: DatabaseHandle | None = None
        completed = False

        try:
            with trace_operation(
                "merge_run",
                kind=trace.SpanKind.INTERNAL,
                source_database=self.source_config.database,
                target_database=self.target_config.database,
                policy=self.options.policy.value,
                dry_run=self.options.dry_run,
            ):
                self.state = MergeState.CONNECTING
                source = self.connector(self.source_config, "source")
                target = self.connector(self.target_config, "target")

                if self.options.create_backup:
                    recorder = BackupRecorder(
                        self.options.backup_dir,
                        include_row_counts=self.options.include_row_counts,
                        clock=self.clock,
                    )
                    self.backup_manifest = recorder.snapshot(target)
                else:
                    logger.warning("Backup disabled; merging without a pre-merge manifest")
                self.state = MergeState.BACKED_UP

                tables = self.select_tables(source, target)
                logger.info(
                    f"Merging {len(tables)} table(s) from {source.database} into {target.database} "
                    f"with policy {self.options.policy.value}"
                    + (" (dry run)" if self.options.dry_run else "")
                )

                merge_log: list[MergeLogEntry] = []
                for index, table in enumerate(tables):
                    reason = self._cancellation_reason(cancel_event, started)
                    if reason is not None:
                        logger.warning(f"{reason}; {len(tables) - index} table(s) not merged")
                        error = str(MergeCancelledError(reason))
                        merge_log.extend(
                            MergeLogEntry(table=remaining, action="error", error=error)
                            for remaining in tables[index:]
                        )
                        break
                    merge_log.extend(self.merge_table(source, target, table))

                self.state = MergeState.REPORTING
                report = build_report(self.clock(), source.database, target.database, merge_log)
                add_span_attributes(
                    total_tables=report.summary.total_tables,
                    total_errors=report.summary.total_errors,
                )

                try:
                    report.path = str(write_report(report.to_dict(), self.options.backup_dir))
                except ReportWriteError as e:
                    logger.error(str(e))

                completed = True
                return report

        finally:
            close_database(target)
            close_database(source)
            self.state = MergeState.CLOSED if completed else MergeState.CLOSED_WITH_ERRORS
            self.metrics.record_run(success=completed, duration=self.monotonic() - started)

    def plan(self) -> list[SchemaDiff]:
        """
        Diff the selected tables without changing anything.

        Tables that cannot be inspected are logged and left out.
        """
        source: DatabaseHandle | None = None
        target: DatabaseHandle | None = None
        try:
            source = self.connector(self.source_config, "source")
            target = self.connector(self.target_config, "target")

            diffs = []
            for table in self.select_tables(source, target):
                try:
                    diffs.append(diff_schemas(describe_table(source, table), describe_table(target, table)))
                except Exception as e:
                    logger.error(f"Could not diff table {table}: {e}")
            return diffs
        finally:
            close_database(target)
            close_database(source)
