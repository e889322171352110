"""
Database connection pooling for PostgreSQL, SQL Server and MySQL.

Provides thread-safe connection pools with health checks, metrics,
and automatic connection recycling to prevent stale connections.
"""

from typing import Any

from src.utils.database_types import DatabaseType

from .base import (
    BaseConnectionPool,
    ConnectionPoolError,
    PoolClosedError,
    PooledConnection,
    PoolExhaustedError,
    ServerConnectionPool,
)
from .mysql import MySQLConnectionPool
from .postgres import PostgresConnectionPool
from .sqlserver import SQLServerConnectionPool

POOL_CLASSES: dict[DatabaseType, type[BaseConnectionPool]] = {
    DatabaseType.POSTGRESQL: PostgresConnectionPool,
    DatabaseType.SQLSERVER: SQLServerConnectionPool,
    DatabaseType.MYSQL: MySQLConnectionPool,
}


def create_pool(db_type: DatabaseType, **pool_kwargs: Any) -> BaseConnectionPool:
    """
    Create a connection pool for the given database type.

    Args:
        db_type: Database type
        **pool_kwargs: Connection parameters and pool settings

    Returns:
        An initialized pool holding at least ``min_size`` open connections
    """
    return POOL_CLASSES[db_type](**pool_kwargs)


__all__ = [
    "BaseConnectionPool",
    "ServerConnectionPool",
    "PostgresConnectionPool",
    "SQLServerConnectionPool",
    "MySQLConnectionPool",
    "PooledConnection",
    "ConnectionPoolError",
    "PoolExhaustedError",
    "PoolClosedError",
    "POOL_CLASSES",
    "create_pool",
]
