"""
Schema inspection, diffing and additive reconciliation.
"""

from .differ import columns_differ, diff_schemas
from .inspector import count_rows, describe_table, list_tables, primary_key_columns
from .reconciler import SchemaReconciler, build_column_definition, render_default

__all__ = [
    "list_tables",
    "describe_table",
    "primary_key_columns",
    "count_rows",
    "diff_schemas",
    "columns_differ",
    "SchemaReconciler",
    "build_column_definition",
    "render_default",
]
