"""
Conflict resolution for rows that exist in both source and target.

``resolve_conflict`` is a pure function: given the two rows, the primary
key columns and the policy, it returns whether to update (and with which
values) or skip. It never touches a database.
"""

from collections.abc import Sequence
from datetime import UTC, date, datetime
from decimal import Decimal
from numbers import Real
from typing import Any

from ..models import ConflictPolicy, MergeAction, Resolution, Row

TIMESTAMP_FIELDS = ("updated_at", "created_at", "modified_at")


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _is_epoch(value: Any) -> bool:
    return isinstance(value, (Real, Decimal)) and not isinstance(value, bool)


def to_timestamp(value: Any) -> datetime | None:
    """
    Coerce a driver value to an aware datetime for comparison.

    Naive values are taken as UTC and numbers as Unix epoch seconds. Returns
    None for values that cannot be read as a date or timestamp.
    """
    if _is_epoch(value):
        try:
            return datetime.fromtimestamp(float(value), UTC)
        except (OverflowError, OSError, ValueError):
            return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def is_source_newer(source_row: Row, target_row: Row) -> bool:
    """
    Decide keep_latest by the first timestamp column set in both rows.

    Columns are tried in the order updated_at, created_at, modified_at.
    When none is set in both rows the source wins. Two numbers are compared
    directly as epoch values. Values that cannot be parsed as timestamps
    make the source lose.
    """
    for field_name in TIMESTAMP_FIELDS:
        source_value = source_row.get(field_name)
        target_value = target_row.get(field_name)
        if _is_empty(source_value) or _is_empty(target_value):
            continue

        if _is_epoch(source_value) and _is_epoch(target_value):
            return source_value > target_value

        source_ts = to_timestamp(source_value)
        target_ts = to_timestamp(target_value)
        if source_ts is None or target_ts is None:
            return False
        return source_ts > target_ts

    return True


def merge_record_fields(source_row: Row, target_row: Row, pk_columns: Sequence[str]) -> Row:
    """
    Overlay non-empty source values onto the target row.

    None and "" in the source never overwrite target values, and primary
    key columns always keep the target's value.
    """
    merged = dict(target_row)
    for column, value in source_row.items():
        if column in pk_columns or _is_empty(value):
            continue
        merged[column] = value
    return merged


def resolve_conflict(
    source_row: Row,
    target_row: Row,
    policy: ConflictPolicy,
    pk_columns: Sequence[str] = (),
) -> Resolution:
    """
    Decide what happens to a source row whose key already exists in the target.

    Args:
        source_row: Row read from the source table
        target_row: Row with the same key read from the target table
        policy: Conflict policy for the run
        pk_columns: Primary key columns of the target table

    Returns:
        Resolution with UPDATE and the values to write, or SKIP
    """
    if policy is ConflictPolicy.KEEP_TARGET:
        return Resolution(MergeAction.SKIP)

    if policy is ConflictPolicy.KEEP_SOURCE:
        return Resolution(MergeAction.UPDATE, dict(source_row))

    if policy is ConflictPolicy.KEEP_LATEST:
        if is_source_newer(source_row, target_row):
            return Resolution(MergeAction.UPDATE, dict(source_row))
        return Resolution(MergeAction.SKIP)

    if policy is ConflictPolicy.MERGE_FIELDS:
        return Resolution(MergeAction.UPDATE, merge_record_fields(source_row, target_row, pk_columns))

    raise ValueError(f"Unhandled conflict policy: {policy!r}")
