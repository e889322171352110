"""
Row-level merging and conflict resolution.
"""

from .resolver import (
    TIMESTAMP_FIELDS,
    is_source_newer,
    merge_record_fields,
    resolve_conflict,
    to_timestamp,
)
from .row_merger import RowMerger
from .store import SqlTableStore, TableStore

__all__ = [
    "RowMerger",
    "SqlTableStore",
    "TableStore",
    "resolve_conflict",
    "is_source_newer",
    "merge_record_fields",
    "to_timestamp",
    "TIMESTAMP_FIELDS",
]
