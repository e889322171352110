"""
Data model for merge runs.

Rows are plain ``dict`` objects mapping column name to a driver scalar
(str, int, float, Decimal, bool, date/datetime or None). Everything that
ends up in a report or manifest serializes through ``to_dict`` using the
camelCase keys of the on-disk JSON formats.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from src.utils.database_types import DatabaseType

Row = dict[str, Any]


class ConflictPolicy(str, Enum):
    """How a source row that already exists in the target is resolved."""

    KEEP_LATEST = "keep_latest"
    KEEP_SOURCE = "keep_source"
    KEEP_TARGET = "keep_target"
    MERGE_FIELDS = "merge_fields"

    @classmethod
    def from_string(cls, value: str) -> "ConflictPolicy":
        """
        Parse a policy name or its menu number (1-4).

        Raises:
            ValueError: If the value names no policy
        """
        normalized = value.strip().lower().replace("-", "_")
        by_number = {str(i): policy for i, policy in enumerate(cls, 1)}
        if normalized in by_number:
            return by_number[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unknown conflict policy: {value!r}. "
                f"Expected one of: {', '.join(p.value for p in cls)}"
            ) from None


class MergeAction(str, Enum):
    INSERT = "insert"
    UPDATE = "update"
    SKIP = "skip"


class MergeState(str, Enum):
    """Orchestrator lifecycle states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    BACKED_UP = "backed_up"
    RECONCILING = "reconciling"
    MERGING = "merging"
    REPORTING = "reporting"
    CLOSED = "closed"
    CLOSED_WITH_ERRORS = "closed_with_errors"


@dataclass(frozen=True)
class ColumnDescriptor:
    """Snapshot of one column's catalog metadata."""

    name: str
    data_type: str
    nullable: bool
    default_value: str | None = None
    extra: str | None = None

    @classmethod
    def from_catalog_row(cls, row: tuple) -> "ColumnDescriptor":
        """Build from a (name, type, is_nullable, default, extra) catalog row."""
        name, data_type, is_nullable, default_value, extra = row
        return cls(
            name=name,
            data_type=data_type,
            nullable=str(is_nullable).upper() == "YES",
            default_value=None if default_value is None else str(default_value),
            extra=extra or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "dataType": self.data_type,
            "nullable": self.nullable,
            "defaultValue": self.default_value,
            "extra": self.extra,
        }


@dataclass
class TableSchema:
    """Columns of one table in ordinal order."""

    table: str
    columns: list[ColumnDescriptor] = field(default_factory=list)

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def by_name(self) -> dict[str, ColumnDescriptor]:
        return {c.name: c for c in self.columns}


@dataclass(frozen=True)
class TypeDifference:
    """A column present on both sides whose type, nullability or default differ."""

    column: str
    source: ColumnDescriptor
    target: ColumnDescriptor

    def to_dict(self) -> dict[str, Any]:
        return {
            "column": self.column,
            "source": self.source.to_dict(),
            "target": self.target.to_dict(),
        }


@dataclass
class SchemaDiff:
    """Structural differences between a source table and its target counterpart."""

    table: str
    missing_in_target: list[ColumnDescriptor] = field(default_factory=list)
    missing_in_source: list[ColumnDescriptor] = field(default_factory=list)
    type_differences: list[TypeDifference] = field(default_factory=list)

    @property
    def has_differences(self) -> bool:
        return bool(self.missing_in_target or self.missing_in_source or self.type_differences)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "missingInTarget": [c.to_dict() for c in self.missing_in_target],
            "missingInSource": [c.to_dict() for c in self.missing_in_source],
            "typeDifferences": [d.to_dict() for d in self.type_differences],
        }


@dataclass(frozen=True)
class Resolution:
    """Outcome of conflict resolution for one row; ``values`` is what an update writes."""

    action: MergeAction
    values: Row | None = None


@dataclass
class SchemaChangeFailure:
    """A column that could not be added to the target."""

    table: str
    column: str
    error: str

    def to_log_entry(self) -> "MergeLogEntry":
        return MergeLogEntry(
            table=self.table,
            action="error",
            error=self.error,
            data={"column": self.column},
        )


@dataclass
class ReconcileResult:
    """Columns added (or planned, in a dry run) and columns that failed."""

    table: str
    added: list[str] = field(default_factory=list)
    failed: list[SchemaChangeFailure] = field(default_factory=list)


@dataclass
class RowError:
    """A source row whose insert or update failed."""

    table: str
    error: str
    data: Row

    def to_log_entry(self) -> "MergeLogEntry":
        return MergeLogEntry(table=self.table, action="error", error=self.error, data=self.data)


@dataclass
class TableMergeResult:
    """Row counts for one table plus the rows that failed."""

    table: str
    inserted: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[RowError] = field(default_factory=list)

    def to_log_entries(self) -> list["MergeLogEntry"]:
        """Per-row error entries followed by the table's summary entry."""
        entries = [e.to_log_entry() for e in self.errors]
        entries.append(
            MergeLogEntry(
                table=self.table,
                action="merge_complete",
                inserted=self.inserted,
                updated=self.updated,
                skipped=self.skipped,
            )
        )
        return entries


@dataclass
class MergeLogEntry:
    """One line of the merge audit trail: a table summary or an error."""

    table: str
    action: str
    inserted: int | None = None
    updated: int | None = None
    skipped: int | None = None
    error: str | None = None
    data: Row | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"table": self.table, "action": self.action}
        for key in ("inserted", "updated", "skipped", "error", "data"):
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        return result


@dataclass
class MergeSummary:
    total_tables: int = 0
    total_inserted: int = 0
    total_updated: int = 0
    total_skipped: int = 0
    total_errors: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalTables": self.total_tables,
            "totalInserted": self.total_inserted,
            "totalUpdated": self.total_updated,
            "totalSkipped": self.total_skipped,
            "totalErrors": self.total_errors,
        }


@dataclass
class MergeReport:
    """Final result of a merge run."""

    timestamp: str
    source_database: str
    target_database: str
    merge_log: list[MergeLogEntry]
    summary: MergeSummary
    path: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "sourceDatabase": self.source_database,
            "targetDatabase": self.target_database,
            "mergeLog": [entry.to_dict() for entry in self.merge_log],
            "summary": self.summary.to_dict(),
        }


@dataclass
class BackupManifest:
    """Pre-merge checkpoint of the target's tables (not a data dump)."""

    database: str
    timestamp: str
    tables: list[str]
    row_counts: dict[str, int] | None = None
    path: str | None = None

    @property
    def table_count(self) -> int:
        return len(self.tables)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "database": self.database,
            "timestamp": self.timestamp,
            "tables": self.tables,
            "tableCount": self.table_count,
        }
        if self.row_counts is not None:
            result["rowCounts"] = self.row_counts
        return result


@dataclass
class DatabaseConfig:
    """Connection settings for one side of a merge."""

    db_type: DatabaseType
    host: str
    port: int
    database: str
    user: str
    password: str = field(repr=False)
    schema: str | None = None
    min_pool_size: int = 1
    max_pool_size: int = 2
    connect_timeout: int = 10

    @property
    def resolved_schema(self) -> str:
        return self.schema or self.db_type.default_schema(self.database)

    def to_pool_kwargs(self, pool_name: str) -> dict[str, Any]:
        return {
            "host": self.host,
            "port": self.port,
            "database": self.database,
            "user": self.user,
            "password": self.password,
            "connect_timeout": self.connect_timeout,
            "min_size": self.min_pool_size,
            "max_size": self.max_pool_size,
            "pool_name": pool_name,
        }


@dataclass
class MergeOptions:
    """Per-run settings chosen by the operator."""

    policy: ConflictPolicy = ConflictPolicy.KEEP_LATEST
    tables: list[str] | None = None
    create_backup: bool = True
    backup_dir: str = "backups"
    include_row_counts: bool = True
    dry_run: bool = False
    deadline_seconds: float | None = None
