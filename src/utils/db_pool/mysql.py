"""MySQL / MariaDB pool on PyMySQL."""

import pymysql

from .base import ServerConnectionPool


class MySQLConnectionPool(ServerConnectionPool):
    """Autocommit PyMySQL connections in utf8mb4 unless told otherwise."""

    def __init__(self, *args, charset: str = "utf8mb4", **kwargs):
        self.charset = charset
        super().__init__(*args, **kwargs)

    def _connect(self) -> pymysql.connections.Connection:
        return pymysql.connect(
            host=self.host,
            port=self.port,
            user=self.user,
            password=self.password,
            database=self.database,
            charset=self.charset,
            connect_timeout=self.connect_timeout,
            autocommit=True,
        )

    def _is_connection_healthy(self, conn: pymysql.connections.Connection) -> bool:
        if conn is None or not conn.open:
            return False
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except pymysql.MySQLError:
            return False
        return True

    def _close_connection(self, conn: pymysql.connections.Connection) -> None:
        if conn is not None and conn.open:
            conn.close()

    def _get_db_type(self) -> str:
        return "mysql"
