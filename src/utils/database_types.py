"""
Database type enumeration for type-safe database identification.

Each member knows its driver's parameter style, identifier quoting and the
information_schema queries used to inspect tables, columns and primary keys.
"""

from enum import Enum

from src.utils.sql_safety import quote_identifier as _quote_identifier
from src.utils.sql_safety import quote_schema_table as _quote_schema_table


class DatabaseType(str, Enum):
    """
    Enumeration of supported database types.

    Inherits from str for JSON serialization compatibility and
    easy comparison with string values.
    """

    POSTGRESQL = "postgresql"
    SQLSERVER = "sqlserver"
    MYSQL = "mysql"

    @classmethod
    def from_string(cls, value: str) -> "DatabaseType":
        """
        Parse a database type name, accepting common aliases.

        Raises:
            ValueError: If the name is not a supported database type
        """
        aliases = {
            "postgres": cls.POSTGRESQL,
            "pg": cls.POSTGRESQL,
            "mssql": cls.SQLSERVER,
            "mariadb": cls.MYSQL,
        }
        normalized = value.strip().lower()
        if normalized in aliases:
            return aliases[normalized]
        try:
            return cls(normalized)
        except ValueError:
            raise ValueError(
                f"Unsupported database type: {value!r}. "
                f"Expected one of: {', '.join(m.value for m in cls)}"
            ) from None

    @property
    def default_port(self) -> int:
        """Default TCP port for this database type."""
        return {
            DatabaseType.POSTGRESQL: 5432,
            DatabaseType.SQLSERVER: 1433,
            DatabaseType.MYSQL: 3306,
        }[self]

    def get_placeholder(self) -> str:
        """
        Get parameter placeholder for this database type.

        psycopg2 and PyMySQL use the ``format`` paramstyle, pyodbc uses ``qmark``.
        """
        if self == DatabaseType.SQLSERVER:
            return "?"
        return "%s"

    def placeholders(self, count: int) -> str:
        """Comma-separated placeholder list for ``count`` parameters."""
        return ", ".join([self.get_placeholder()] * count)

    def quote_identifier(self, identifier: str) -> str:
        """
        Quote identifier based on database type.

        Raises:
            ValueError: If the identifier contains unsafe characters
        """
        return _quote_identifier(identifier, self.value)

    def quote_schema_table(self, schema: str, table: str) -> str:
        """Quoted ``schema.table``; raises ValueError for unsafe names."""
        return _quote_schema_table(f"{schema}.{table}", self.value)

    def default_schema(self, database: str) -> str:
        """
        Catalog schema a database's tables live in when none is configured.

        MySQL has no schema level below the database, so the database name
        is the information_schema TABLE_SCHEMA.
        """
        if self == DatabaseType.POSTGRESQL:
            return "public"
        if self == DatabaseType.SQLSERVER:
            return "dbo"
        return database

    def list_tables_query(self) -> str:
        """Query listing base tables of one schema, in name order."""
        p = self.get_placeholder()
        return (
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            f"WHERE TABLE_SCHEMA = {p} AND TABLE_TYPE = 'BASE TABLE' "
            "ORDER BY TABLE_NAME"
        )

    def describe_table_query(self) -> str:
        """
        Query returning column metadata for one table in ordinal order.

        The data type carries its length, or precision and scale for exact
        numerics and fractional seconds for SQL Server time types, so it can
        be replayed in DDL (MySQL's COLUMN_TYPE already does). Only MySQL
        exposes an EXTRA column (auto_increment, on update ...); the other
        engines report NULL in its place.
        """
        p = self.get_placeholder()
        if self == DatabaseType.MYSQL:
            data_type = "COLUMN_TYPE"
            extra = "EXTRA"
        elif self == DatabaseType.SQLSERVER:
            data_type = (
                "DATA_TYPE + CASE "
                "WHEN DATA_TYPE IN ('text', 'ntext', 'image', 'xml') THEN '' "
                "WHEN CHARACTER_MAXIMUM_LENGTH = -1 THEN '(max)' "
                "WHEN CHARACTER_MAXIMUM_LENGTH IS NOT NULL "
                "THEN '(' + CAST(CHARACTER_MAXIMUM_LENGTH AS VARCHAR(10)) + ')' "
                "WHEN DATA_TYPE IN ('decimal', 'numeric') "
                "THEN '(' + CAST(NUMERIC_PRECISION AS VARCHAR(10)) + ',' "
                "+ CAST(NUMERIC_SCALE AS VARCHAR(10)) + ')' "
                "WHEN DATA_TYPE IN ('datetime2', 'datetimeoffset', 'time') "
                "THEN '(' + CAST(DATETIME_PRECISION AS VARCHAR(10)) + ')' "
                "ELSE '' END"
            )
            extra = "NULL"
        else:
            data_type = (
                "CASE WHEN CHARACTER_MAXIMUM_LENGTH IS NOT NULL "
                "THEN DATA_TYPE || '(' || CHARACTER_MAXIMUM_LENGTH || ')' "
                "WHEN DATA_TYPE = 'numeric' AND NUMERIC_PRECISION IS NOT NULL "
                "THEN DATA_TYPE || '(' || NUMERIC_PRECISION || ',' || NUMERIC_SCALE || ')' "
                "ELSE DATA_TYPE END"
            )
            extra = "NULL"
        return (
            f"SELECT COLUMN_NAME, {data_type} AS DATA_TYPE, IS_NULLABLE, "
            f"COLUMN_DEFAULT, {extra} AS EXTRA "
            "FROM INFORMATION_SCHEMA.COLUMNS "
            f"WHERE TABLE_SCHEMA = {p} AND TABLE_NAME = {p} "
            "ORDER BY ORDINAL_POSITION"
        )

    def primary_key_query(self) -> str:
        """Query returning primary key column names of one table in key order."""
        p = self.get_placeholder()
        return (
            "SELECT kcu.COLUMN_NAME "
            "FROM INFORMATION_SCHEMA.TABLE_CONSTRAINTS tc "
            "JOIN INFORMATION_SCHEMA.KEY_COLUMN_USAGE kcu "
            "ON tc.CONSTRAINT_NAME = kcu.CONSTRAINT_NAME "
            "AND tc.TABLE_SCHEMA = kcu.TABLE_SCHEMA "
            "AND tc.TABLE_NAME = kcu.TABLE_NAME "
            f"WHERE tc.CONSTRAINT_TYPE = 'PRIMARY KEY' "
            f"AND tc.TABLE_SCHEMA = {p} AND tc.TABLE_NAME = {p} "
            "ORDER BY kcu.ORDINAL_POSITION"
        )

    def add_column_keyword(self) -> str:
        """SQL Server's ALTER TABLE takes ``ADD`` without ``COLUMN``."""
        if self == DatabaseType.SQLSERVER:
            return "ADD"
        return "ADD COLUMN"
