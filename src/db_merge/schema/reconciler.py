"""
Additive schema reconciliation.

Columns that exist in the source but not in the target are added to the
target one ALTER TABLE at a time, so one bad column never blocks the rest.
Target-only columns and type differences are left alone.
"""

import logging
import re

from opentelemetry import trace

from src.utils.sql_safety import validate_data_type
from src.utils.tracing import add_span_event, trace_operation

from ..connections import DatabaseHandle
from ..errors import SchemaError
from ..models import ColumnDescriptor, ReconcileResult, SchemaChangeFailure

logger = logging.getLogger(__name__)

# Defaults that are already valid SQL expressions and must not be quoted
_NUMERIC_DEFAULT = re.compile(r"^-?\d+(\.\d+)?$")
_EXPRESSION_DEFAULT = re.compile(
    r"^(NULL|TRUE|FALSE|CURRENT_TIMESTAMP|CURRENT_DATE|CURRENT_TIME|LOCALTIMESTAMP|NOW)"
    r"(\(\d*\))?$",
    re.IGNORECASE,
)

# MySQL 8 reports this marker in EXTRA; it is not valid in DDL
_CATALOG_ONLY_EXTRA = re.compile(r"\bDEFAULT_GENERATED\b", re.IGNORECASE)


def render_default(default_value: str) -> str:
    """
    Render a catalog default as a DEFAULT clause operand.

    Numbers, SQL keywords, already-quoted literals, parenthesized and cast
    expressions are used verbatim; anything else is treated as a bare string
    (MySQL 5.7 reports string defaults unquoted) and quoted.
    """
    value = default_value.strip()
    if (
        _NUMERIC_DEFAULT.match(value)
        or _EXPRESSION_DEFAULT.match(value)
        or value.startswith("'")
        or value.startswith("(")
        or "::" in value
        or value.endswith(")")
    ):
        return value
    escaped = value.replace("'", "''")
    return f"'{escaped}'"


def build_column_definition(handle: DatabaseHandle, column: ColumnDescriptor) -> str:
    """
    Column clause for ALTER TABLE ... ADD.

    Raises:
        ValueError: If the column name or data type is unsafe to splice into DDL
    """
    validate_data_type(column.data_type)
    parts = [handle.quote(column.name), column.data_type]

    if not column.nullable:
        parts.append("NOT NULL")

    if column.default_value is not None:
        parts.append(f"DEFAULT {render_default(column.default_value)}")

    if column.extra:
        extra = _CATALOG_ONLY_EXTRA.sub("", column.extra).strip()
        if extra:
            parts.append(extra)

    return " ".join(parts)


class SchemaReconciler:
    """Adds missing columns to target tables."""

    def __init__(self, target: DatabaseHandle, dry_run: bool = False):
        """
        Args:
            target: Target database handle
            dry_run: Plan the changes without executing them
        """
        self.target = target
        self.dry_run = dry_run

    def add_column(self, table: str, column: ColumnDescriptor) -> str:
        """
        Add one column to a target table.

        Returns:
            The executed (or planned) ALTER TABLE statement

        Raises:
            SchemaError: If the statement cannot be built or fails
        """
        try:
            definition = build_column_definition(self.target, column)
            statement = (
                f"ALTER TABLE {self.target.qualified(table)} "
                f"{self.target.db_type.add_column_keyword()} {definition}"
            )
        except ValueError as e:
            raise SchemaError(table, column.name, str(e)) from e

        if self.dry_run:
            logger.info(f"[dry-run] Would run: {statement}")
            return statement

        try:
            self.target.execute(statement)
        except Exception as e:
            raise SchemaError(table, column.name, str(e)) from e

        logger.info(f"Added column {column.name} to {table}")
        return statement

    def reconcile(self, table: str, missing_in_target: list[ColumnDescriptor]) -> ReconcileResult:
        """
        Add every column missing from the target table.

        Args:
            table: Target table name
            missing_in_target: Source columns absent from the target

        Returns:
            ReconcileResult listing added columns and per-column failures
        """
        result = ReconcileResult(table=table)
        if not missing_in_target:
            return result

        with trace_operation(
            "reconcile_schema",
            kind=trace.SpanKind.CLIENT,
            table=table,
            missing_columns=len(missing_in_target),
            dry_run=self.dry_run,
        ):
            for column in missing_in_target:
                try:
                    self.add_column(table, column)
                    result.added.append(column.name)
                    add_span_event("column_added", column=column.name, data_type=column.data_type)
                except SchemaError as e:
                    logger.error(str(e))
                    result.failed.append(
                        SchemaChangeFailure(table=table, column=column.name, error=str(e))
                    )

        return result
