"""
Row access for one database, expressed as the four operations the row
merger needs. ``SqlTableStore`` renders them as parameterized SQL for the
handle's dialect.
"""

import logging
from collections.abc import Sequence
from typing import Any, Protocol

from ..connections import DatabaseHandle
from ..models import Row
from ..schema import primary_key_columns

logger = logging.getLogger(__name__)


class TableStore(Protocol):
    def primary_key_columns(self, table: str) -> list[str]: ...

    def fetch_rows(self, table: str) -> list[Row]: ...

    def find_row(self, table: str, pk_columns: Sequence[str], key: Sequence[Any]) -> Row | None: ...

    def insert_row(self, table: str, row: Row) -> None: ...

    def update_row(
        self, table: str, values: Row, pk_columns: Sequence[str], key: Sequence[Any]
    ) -> int: ...


class SqlTableStore:
    """TableStore backed by a DatabaseHandle."""

    def __init__(self, handle: DatabaseHandle):
        self.handle = handle

    def _where_clause(self, pk_columns: Sequence[str]) -> str:
        p = self.handle.db_type.get_placeholder()
        return " AND ".join(f"{self.handle.quote(c)} = {p}" for c in pk_columns)

    def primary_key_columns(self, table: str) -> list[str]:
        return primary_key_columns(self.handle, table)

    def fetch_rows(self, table: str) -> list[Row]:
        """Full scan of a table in the database's natural order."""
        return self.handle.fetch_all(f"SELECT * FROM {self.handle.qualified(table)}")

    def find_row(self, table: str, pk_columns: Sequence[str], key: Sequence[Any]) -> Row | None:
        query = (
            f"SELECT * FROM {self.handle.qualified(table)} "
            f"WHERE {self._where_clause(pk_columns)}"
        )
        return self.handle.fetch_one(query, key)

    def insert_row(self, table: str, row: Row) -> None:
        columns = list(row)
        column_list = ", ".join(self.handle.quote(c) for c in columns)
        statement = (
            f"INSERT INTO {self.handle.qualified(table)} ({column_list}) "
            f"VALUES ({self.handle.db_type.placeholders(len(columns))})"
        )
        self.handle.execute(statement, [row[c] for c in columns])

    def update_row(
        self, table: str, values: Row, pk_columns: Sequence[str], key: Sequence[Any]
    ) -> int:
        """
        Update the non-key columns of the row matching ``key``.

        Returns:
            Affected row count
        """
        p = self.handle.db_type.get_placeholder()
        columns = [c for c in values if c not in pk_columns]
        set_clause = ", ".join(f"{self.handle.quote(c)} = {p}" for c in columns)
        statement = (
            f"UPDATE {self.handle.qualified(table)} SET {set_clause} "
            f"WHERE {self._where_clause(pk_columns)}"
        )
        params = [values[c] for c in columns] + list(key)
        return self.handle.execute(statement, params)
