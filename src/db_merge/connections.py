"""
Connection management for the source and target databases.

``open_database`` builds a pool for a ``DatabaseConfig``, proves it works
with a ``SELECT 1`` round-trip and returns a ``DatabaseHandle``. Every
statement the engine issues goes through a handle.
"""

import logging
from collections.abc import Sequence
from typing import Any

from opentelemetry import trace

from src.utils.database_types import DatabaseType
from src.utils.db_pool import BaseConnectionPool, create_pool
from src.utils.tracing import trace_operation

from .errors import DatabaseConnectionError
from .models import DatabaseConfig, Row

logger = logging.getLogger(__name__)


class DatabaseHandle:
    """
    Pooled access to one database.

    Each call borrows a connection for the duration of one statement.
    Connections run in autocommit mode, so every write commits on its own.
    """

    def __init__(self, pool: BaseConnectionPool, config: DatabaseConfig, role: str):
        self.pool = pool
        self.config = config
        self.role = role

    @property
    def db_type(self) -> DatabaseType:
        return self.config.db_type

    @property
    def database(self) -> str:
        return self.config.database

    @property
    def schema(self) -> str:
        return self.config.resolved_schema

    def quote(self, identifier: str) -> str:
        return self.db_type.quote_identifier(identifier)

    def qualified(self, table: str) -> str:
        """Schema-qualified, quoted table name."""
        return self.db_type.quote_schema_table(self.schema, table)

    def fetch_rows(self, query: str, params: Sequence[Any] = ()) -> list[tuple]:
        """Run a query and return rows as tuples."""
        with self.pool.acquire() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(query, tuple(params))
                return [tuple(row) for row in cursor.fetchall()]
            finally:
                cursor.close()

    def fetch_all(self, query: str, params: Sequence[Any] = ()) -> list[Row]:
        """Run a query and return rows as column-name dictionaries."""
        with self.pool.acquire() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(query, tuple(params))
                columns = [desc[0] for desc in cursor.description]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            finally:
                cursor.close()

    def fetch_one(self, query: str, params: Sequence[Any] = ()) -> Row | None:
        rows = self.fetch_all(query, params)
        return rows[0] if rows else None

    def execute(self, statement: str, params: Sequence[Any] = ()) -> int:
        """Run a statement and return the affected row count."""
        with self.pool.acquire() as conn:
            cursor = conn.cursor()
            try:
                cursor.execute(statement, tuple(params))
                return cursor.rowcount
            finally:
                cursor.close()

    def close(self) -> None:
        self.pool.close()

    def __repr__(self) -> str:
        return f"DatabaseHandle(role={self.role!r}, db_type={self.db_type.value!r}, database={self.database!r})"


def open_database(config: DatabaseConfig, role: str = "database") -> DatabaseHandle:
    """
    Open and validate a pooled connection to one database.

    Args:
        config: Connection settings
        role: "source" or "target", used for pool names and messages

    Returns:
        A validated DatabaseHandle

    Raises:
        DatabaseConnectionError: If the pool cannot be created or SELECT 1 fails
    """
    with trace_operation(
        "open_database",
        kind=trace.SpanKind.CLIENT,
        role=role,
        db_type=config.db_type.value,
        db_name=config.database,
    ):
        try:
            pool = create_pool(config.db_type, **config.to_pool_kwargs(f"{role}_{config.database}"))
        except Exception as e:
            logger.error(f"Could not connect to {role} database {config.database}: {e}")
            raise DatabaseConnectionError(role, config.database, e) from e

        handle = DatabaseHandle(pool, config, role)
        try:
            handle.fetch_rows("SELECT 1")
        except Exception as e:
            pool.close()
            logger.error(f"Validation query failed on {role} database {config.database}: {e}")
            raise DatabaseConnectionError(role, config.database, e) from e

        logger.info(f"Connected to {role} database {config.database} ({config.db_type.value})")
        return handle


def close_database(handle: DatabaseHandle | None) -> None:
    """Close a handle's pool; closing errors are logged, never raised."""
    if handle is None:
        return
    try:
        handle.close()
        logger.info(f"Closed {handle.role} database connection")
    except Exception as e:
        logger.warning(f"Error closing {handle.role} database connection: {e}")
