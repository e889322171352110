"""PostgreSQL pool on psycopg2."""

import psycopg2
import psycopg2.extensions

from .base import ServerConnectionPool


class PostgresConnectionPool(ServerConnectionPool):
    """Autocommit psycopg2 connections; each merge statement commits on its own."""

    def _connect(self) -> psycopg2.extensions.connection:
        conn = psycopg2.connect(
            host=self.host,
            port=self.port,
            dbname=self.database,
            user=self.user,
            password=self.password,
            connect_timeout=self.connect_timeout,
        )
        conn.set_session(autocommit=True)
        return conn

    def _is_connection_healthy(self, conn: psycopg2.extensions.connection) -> bool:
        if conn is None or conn.closed:
            return False
        try:
            with conn.cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except (psycopg2.Error, psycopg2.Warning):
            return False
        return True

    def _close_connection(self, conn: psycopg2.extensions.connection) -> None:
        if conn is not None and not conn.closed:
            conn.close()

    def _get_db_type(self) -> str:
        return "postgresql"
