"""SQL Server pool on pyodbc."""

import logging

import pyodbc

from .base import ServerConnectionPool

logger = logging.getLogger(__name__)


class SQLServerConnectionPool(ServerConnectionPool):
    """Autocommit ODBC connections; the driver name selects the installed ODBC driver."""

    def __init__(self, *args, driver: str = "ODBC Driver 18 for SQL Server", **kwargs):
        self.driver = driver
        super().__init__(*args, **kwargs)

    @property
    def connection_string(self) -> str:
        return (
            f"DRIVER={{{self.driver}}};"
            f"SERVER={self.host},{self.port};"
            f"DATABASE={self.database};"
            f"UID={self.user};"
            f"PWD={self.password};"
            "TrustServerCertificate=yes;"
            "Encrypt=yes;"
        )

    def _connect(self) -> pyodbc.Connection:
        conn = pyodbc.connect(self.connection_string, timeout=self.connect_timeout)
        conn.autocommit = True
        return conn

    def _is_connection_healthy(self, conn: pyodbc.Connection) -> bool:
        if conn is None:
            return False
        try:
            cursor = conn.cursor()
            try:
                cursor.execute("SELECT 1")
                cursor.fetchone()
            finally:
                cursor.close()
        except pyodbc.Error:
            return False
        return True

    def _close_connection(self, conn: pyodbc.Connection) -> None:
        if conn is None:
            return
        try:
            conn.close()
        except pyodbc.Error as e:
            # Already dropped by the server
            logger.debug(f"Ignoring error closing SQL Server connection: {e}")

    def _get_db_type(self) -> str:
        return "sqlserver"
