"""
Metrics for database merge runs.

Tracks merge runs, per-table outcomes, row-level results and schema
changes applied to the target.
"""

import logging
import time

from prometheus_client import (
    REGISTRY,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
)

from .registry import get_or_create_metric

logger = logging.getLogger(__name__)


class MergeMetrics:
    """
    Prometheus metrics for merge operations

    Safe to instantiate more than once against the same registry: existing
    collectors are reused.
    """

    def __init__(self, registry: CollectorRegistry | None = None):
        """
        Initialize merge metrics

        Args:
            registry: Custom Prometheus registry (default: global REGISTRY)
        """
        self.registry = registry or REGISTRY

        self.merge_runs_total = get_or_create_metric(
            lambda: Counter(
                "merge_runs_total",
                "Total number of merge runs",
                ["status"],
                registry=self.registry,
            ),
            "merge_runs_total",
            self.registry,
        )

        self.merge_run_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "merge_run_duration_seconds",
                "Duration of merge runs in seconds",
                buckets=(1, 5, 10, 30, 60, 120, 300, 600, 1800, 3600),
                registry=self.registry,
            ),
            "merge_run_duration_seconds",
            self.registry,
        )

        self.merge_last_run_timestamp = get_or_create_metric(
            lambda: Gauge(
                "merge_last_run_timestamp",
                "Timestamp of the last finished merge run",
                registry=self.registry,
            ),
            "merge_last_run_timestamp",
            self.registry,
        )

        self.tables_total = get_or_create_metric(
            lambda: Counter(
                "merge_tables_total",
                "Tables processed by merge runs",
                ["table_name", "status"],
                registry=self.registry,
            ),
            "merge_tables_total",
            self.registry,
        )

        self.table_duration_seconds = get_or_create_metric(
            lambda: Histogram(
                "merge_table_duration_seconds",
                "Time to reconcile and merge one table",
                ["table_name"],
                buckets=(0.1, 0.5, 1, 5, 10, 30, 60, 120, 300, 600),
                registry=self.registry,
            ),
            "merge_table_duration_seconds",
            self.registry,
        )

        self.rows_total = get_or_create_metric(
            lambda: Counter(
                "merge_rows_total",
                "Source rows processed, by outcome",
                ["table_name", "outcome"],
                registry=self.registry,
            ),
            "merge_rows_total",
            self.registry,
        )

        self.schema_columns_total = get_or_create_metric(
            lambda: Counter(
                "merge_schema_columns_total",
                "Columns added to target tables, by outcome",
                ["table_name", "outcome"],
                registry=self.registry,
            ),
            "merge_schema_columns_total",
            self.registry,
        )

    def record_table(
        self,
        table_name: str,
        success: bool,
        duration: float,
        inserted: int = 0,
        updated: int = 0,
        skipped: int = 0,
        errors: int = 0,
    ) -> None:
        """
        Record the outcome of one table's merge

        Args:
            table_name: Name of the table merged
            success: Whether the table reached merge_complete
            duration: Duration in seconds
            inserted: Rows inserted
            updated: Rows updated
            skipped: Rows skipped
            errors: Row-level errors
        """
        status = "success" if success else "failed"
        self.tables_total.labels(table_name=table_name, status=status).inc()
        self.table_duration_seconds.labels(table_name=table_name).observe(duration)

        for outcome, count in (
            ("inserted", inserted),
            ("updated", updated),
            ("skipped", skipped),
            ("error", errors),
        ):
            if count:
                self.rows_total.labels(table_name=table_name, outcome=outcome).inc(count)

        logger.debug(
            f"Recorded table merge: table={table_name}, status={status}, "
            f"duration={duration:.2f}s"
        )

    def record_schema_column(self, table_name: str, added: bool) -> None:
        """Record one column added to (or failed to add to) a target table."""
        outcome = "added" if added else "failed"
        self.schema_columns_total.labels(table_name=table_name, outcome=outcome).inc()

    def record_run(self, success: bool, duration: float) -> None:
        """
        Record a finished merge run

        Args:
            success: Whether the run reached the reporting stage
            duration: Duration in seconds
        """
        status = "success" if success else "failed"
        self.merge_runs_total.labels(status=status).inc()
        self.merge_run_duration_seconds.observe(duration)
        self.merge_last_run_timestamp.set(time.time())
