"""
Catalog reads through INFORMATION_SCHEMA.

All lookups are scoped to the handle's schema. Catalog rows are read
positionally because PostgreSQL folds unquoted column aliases to lower case.
"""

import logging

from src.utils.retry import retry_database_operation

from ..connections import DatabaseHandle
from ..models import ColumnDescriptor, TableSchema

logger = logging.getLogger(__name__)


@retry_database_operation(max_retries=3, base_delay=0.5)
def list_tables(handle: DatabaseHandle) -> list[str]:
    """
    List base tables in the handle's schema, in name order.

    An empty database yields an empty list.
    """
    rows = handle.fetch_rows(handle.db_type.list_tables_query(), (handle.schema,))
    tables = [row[0] for row in rows]
    logger.debug(f"Found {len(tables)} table(s) in {handle.role} database {handle.database}")
    return tables


@retry_database_operation(max_retries=3, base_delay=0.5)
def describe_table(handle: DatabaseHandle, table: str) -> TableSchema:
    """Column metadata for one table in ordinal order."""
    rows = handle.fetch_rows(handle.db_type.describe_table_query(), (handle.schema, table))
    return TableSchema(table=table, columns=[ColumnDescriptor.from_catalog_row(row) for row in rows])


@retry_database_operation(max_retries=3, base_delay=0.5)
def primary_key_columns(handle: DatabaseHandle, table: str) -> list[str]:
    """Primary key column names in key order; empty when the table has none."""
    rows = handle.fetch_rows(handle.db_type.primary_key_query(), (handle.schema, table))
    return [row[0] for row in rows]


@retry_database_operation(max_retries=3, base_delay=0.5)
def count_rows(handle: DatabaseHandle, table: str) -> int:
    row = handle.fetch_rows(f"SELECT COUNT(*) FROM {handle.qualified(table)}")
    return int(row[0][0]) if row else 0
