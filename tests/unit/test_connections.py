"""
Unit tests for database handles and connection lifecycle.
"""

from unittest.mock import MagicMock, patch

import pytest

from src.db_merge.connections import DatabaseHandle, close_database, open_database
from src.db_merge.errors import DatabaseConnectionError
from src.db_merge.models import DatabaseConfig
from src.utils.database_types import DatabaseType


def make_config(db_type=DatabaseType.MYSQL, database="shop", schema=None):
    return DatabaseConfig(
        db_type=db_type,
        host="db.internal",
        port=db_type.default_port,
        database=database,
        user="merge",
        password="s3cret",
        schema=schema,
    )


def make_pool(cursor):
    pool = MagicMock()
    conn = MagicMock()
    conn.cursor.return_value = cursor
    pool.acquire.return_value.__enter__.return_value = conn
    return pool


class TestDatabaseHandle:
    """Test statement execution through a handle."""

    def test_fetch_rows_returns_tuples_and_closes_cursor(self):
        cursor = MagicMock()
        cursor.fetchall.return_value = [["users"], ["orders"]]
        handle = DatabaseHandle(make_pool(cursor), make_config(), "source")

        rows = handle.fetch_rows("SELECT TABLE_NAME FROM t WHERE TABLE_SCHEMA = %s", ["shop"])

        assert rows == [("users",), ("orders",)]
        cursor.execute.assert_called_once_with("SELECT TABLE_NAME FROM t WHERE TABLE_SCHEMA = %s", ("shop",))
        cursor.close.assert_called_once()

    def test_fetch_all_maps_column_names(self):
        cursor = MagicMock()
        cursor.description = [("id",), ("name",)]
        cursor.fetchall.return_value = [(1, "A"), (2, "B")]
        handle = DatabaseHandle(make_pool(cursor), make_config(), "source")

        rows = handle.fetch_all("SELECT * FROM `shop`.`users`")

        assert rows == [{"id": 1, "name": "A"}, {"id": 2, "name": "B"}]

    def test_fetch_one_returns_none_when_empty(self):
        cursor = MagicMock()
        cursor.description = [("id",)]
        cursor.fetchall.return_value = []
        handle = DatabaseHandle(make_pool(cursor), make_config(), "target")

        assert handle.fetch_one("SELECT * FROM `shop`.`users` WHERE `id` = %s", [1]) is None

    def test_execute_returns_rowcount_and_closes_cursor_on_error(self):
        cursor = MagicMock()
        cursor.rowcount = 1
        handle = DatabaseHandle(make_pool(cursor), make_config(), "target")

        assert handle.execute("UPDATE `shop`.`users` SET `name` = %s", ["A"]) == 1

        cursor.execute.side_effect = RuntimeError("Deadlock found")
        with pytest.raises(RuntimeError):
            handle.execute("UPDATE `shop`.`users` SET `name` = %s", ["B"])
        assert cursor.close.call_count == 2

    @pytest.mark.parametrize(
        "db_type, schema, expected",
        [
            (DatabaseType.MYSQL, None, "`shop`.`users`"),
            (DatabaseType.POSTGRESQL, None, '"public"."users"'),
            (DatabaseType.POSTGRESQL, "sales", '"sales"."users"'),
            (DatabaseType.SQLSERVER, None, "[dbo].[users]"),
        ],
    )
    def test_qualified_table_name(self, db_type, schema, expected):
        handle = DatabaseHandle(MagicMock(), make_config(db_type, schema=schema), "target")

        assert handle.qualified("users") == expected

    def test_repr_hides_password(self):
        handle = DatabaseHandle(MagicMock(), make_config(), "source")

        assert "s3cret" not in repr(handle)
        assert "s3cret" not in repr(handle.config)


class TestOpenDatabase:
    """Test open_database and close_database."""

    @patch("src.db_merge.connections.create_pool")
    def test_open_validates_with_select_one(self, mock_create_pool):
        cursor = MagicMock()
        cursor.fetchall.return_value = [(1,)]
        mock_create_pool.return_value = make_pool(cursor)

        handle = open_database(make_config(), "source")

        assert handle.role == "source"
        assert handle.database == "shop"
        cursor.execute.assert_called_once_with("SELECT 1", ())
        args, kwargs = mock_create_pool.call_args
        assert args == (DatabaseType.MYSQL,)
        assert kwargs["pool_name"] == "source_shop"
        assert kwargs["host"] == "db.internal"

    @patch("src.db_merge.connections.create_pool")
    def test_pool_creation_failure_raises_connection_error(self, mock_create_pool):
        mock_create_pool.side_effect = RuntimeError("Can't connect to MySQL server")

        with pytest.raises(DatabaseConnectionError) as exc_info:
            open_database(make_config(database="shop_old"), "source")

        assert exc_info.value.role == "source"
        assert exc_info.value.database == "shop_old"
        assert "Can't connect" in str(exc_info.value)

    @patch("src.db_merge.connections.create_pool")
    def test_validation_failure_closes_pool(self, mock_create_pool):
        cursor = MagicMock()
        cursor.execute.side_effect = RuntimeError("Access denied for user 'merge'")
        pool = make_pool(cursor)
        mock_create_pool.return_value = pool

        with pytest.raises(DatabaseConnectionError, match="Failed to connect to target database 'shop'"):
            open_database(make_config(), "target")

        pool.close.assert_called_once()

    def test_close_database_tolerates_none_and_errors(self):
        close_database(None)

        pool = MagicMock()
        pool.close.side_effect = RuntimeError("already gone")
        close_database(DatabaseHandle(pool, make_config(), "target"))

        pool.close.assert_called_once()
