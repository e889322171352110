"""
Thread-safe connection pool shared by the PostgreSQL, SQL Server and MySQL
drivers.

A merge run holds one pool per side. Connections are validated on checkout
(lifetime, idle time and a driver round trip) and replaced when stale, so a
long merge survives server-side idle disconnects.
"""

import logging
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from queue import Empty, Queue
from typing import Any

from opentelemetry import trace
from prometheus_client import Counter, Gauge, Histogram

from src.utils.metrics import get_or_create_metric
from src.utils.tracing import trace_operation

logger = logging.getLogger(__name__)


POOL_CONNECTIONS = get_or_create_metric(
    lambda: Gauge(
        "db_pool_connections",
        "Open pooled connections by state",
        ["database_type", "pool_name", "state"],
    ),
    "db_pool_connections",
)

POOL_ERRORS = get_or_create_metric(
    lambda: Counter(
        "db_pool_errors_total",
        "Connection pool failures",
        ["database_type", "pool_name", "error_type"],
    ),
    "db_pool_errors_total",
)

POOL_ACQUIRE_SECONDS = get_or_create_metric(
    lambda: Histogram(
        "db_pool_acquire_seconds",
        "Time spent waiting for a pooled connection",
        ["database_type", "pool_name"],
        buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 30.0],
    ),
    "db_pool_acquire_seconds",
)


@dataclass
class PooledConnection:
    """A driver connection plus the bookkeeping used to decide when to replace it."""

    connection: Any
    created_at: datetime
    last_used: datetime
    use_count: int = 0
    is_healthy: bool = True

    def mark_used(self) -> None:
        self.last_used = datetime.now(UTC)
        self.use_count += 1


class ConnectionPoolError(Exception):
    """Base exception for connection pool errors."""


class PoolExhaustedError(ConnectionPoolError):
    """No connection became available within the acquire timeout."""


class PoolClosedError(ConnectionPoolError):
    """The pool was used after close()."""


class BaseConnectionPool:
    """
    Base class for database connection pools.

    Subclasses implement ``_create_connection``, ``_is_connection_healthy``,
    ``_close_connection`` and ``_get_db_type``. ``min_size`` connections are
    opened by the constructor; more are opened on demand up to ``max_size``.
    """

    def __init__(
        self,
        min_size: int = 1,
        max_size: int = 4,
        max_idle_time: int = 300,
        max_lifetime: int = 3600,
        acquire_timeout: float = 30.0,
        pool_name: str = "default",
    ):
        """
        Args:
            min_size: Connections opened up front; failures here propagate
            max_size: Upper bound on open connections
            max_idle_time: Seconds a connection may sit unused before it is replaced
            max_lifetime: Seconds after which a connection is replaced regardless
            acquire_timeout: Seconds acquire() waits before PoolExhaustedError
            pool_name: Label for logs and metrics, e.g. "source_shop"
        """
        self.min_size = min_size
        self.max_size = max_size
        self.max_idle_time = timedelta(seconds=max_idle_time)
        self.max_lifetime = timedelta(seconds=max_lifetime)
        self.acquire_timeout = acquire_timeout
        self.pool_name = pool_name

        self._pool: Queue[PooledConnection] = Queue(maxsize=max_size)
        self._all_connections: list[PooledConnection] = []
        self._lock = threading.RLock()
        self._closed = False

        with self._lock:
            try:
                for _ in range(min_size):
                    self._pool.put(self._open())
            except Exception:
                self._count_error("initialization")
                self._close_all()
                raise
            self._update_metrics()

        logger.info(f"Pool '{pool_name}' ready with {min_size} connection(s), max {max_size}")

    def _create_connection(self) -> Any:
        """Open a driver connection."""
        raise NotImplementedError

    def _is_connection_healthy(self, conn: Any) -> bool:
        """Round-trip check on a driver connection."""
        raise NotImplementedError

    def _close_connection(self, conn: Any) -> None:
        """Close a driver connection."""
        raise NotImplementedError

    def _get_db_type(self) -> str:
        """Dialect label used in metrics."""
        raise NotImplementedError

    def _labels(self) -> dict[str, str]:
        return {"database_type": self._get_db_type(), "pool_name": self.pool_name}

    def _count_error(self, error_type: str) -> None:
        POOL_ERRORS.labels(**self._labels(), error_type=error_type).inc()

    def _open(self) -> PooledConnection:
        now = datetime.now(UTC)
        pooled_conn = PooledConnection(self._create_connection(), created_at=now, last_used=now)
        self._all_connections.append(pooled_conn)
        return pooled_conn

    def _check_connection_health(self, pooled_conn: PooledConnection) -> bool:
        """Whether ``pooled_conn`` is young enough, recently used and answering."""
        now = datetime.now(UTC)
        if now - pooled_conn.created_at > self.max_lifetime:
            logger.debug(f"Pool '{self.pool_name}': connection reached max lifetime")
            return False
        if now - pooled_conn.last_used > self.max_idle_time:
            logger.debug(f"Pool '{self.pool_name}': connection idle too long")
            return False

        try:
            pooled_conn.is_healthy = bool(self._is_connection_healthy(pooled_conn.connection))
        except Exception as e:
            logger.warning(f"Pool '{self.pool_name}': health check raised {e}")
            self._count_error("health_check")
            pooled_conn.is_healthy = False
        return pooled_conn.is_healthy

    def _discard(self, pooled_conn: PooledConnection) -> None:
        with self._lock:
            if pooled_conn in self._all_connections:
                self._all_connections.remove(pooled_conn)
        try:
            self._close_connection(pooled_conn.connection)
        except Exception as e:
            logger.warning(f"Pool '{self.pool_name}': error closing connection: {e}")

    def _checkout(self, deadline: float) -> PooledConnection:
        while True:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break

            candidate = None
            try:
                candidate = self._pool.get_nowait()
            except Empty:
                with self._lock:
                    if len(self._all_connections) < self.max_size:
                        candidate = self._open()
                if candidate is None:
                    try:
                        candidate = self._pool.get(timeout=remaining)
                    except Empty:
                        break

            if self._check_connection_health(candidate):
                return candidate

            logger.info(f"Pool '{self.pool_name}': replacing stale connection")
            self._discard(candidate)

        self._count_error("exhausted")
        raise PoolExhaustedError(f"No connection available within {self.acquire_timeout}s")

    def _checkin(self, pooled_conn: PooledConnection) -> None:
        if self._closed:
            return
        try:
            self._pool.put(pooled_conn, timeout=1.0)
        except Exception as e:
            logger.error(f"Pool '{self.pool_name}': could not return connection: {e}")
            self._discard(pooled_conn)
        self._update_metrics()

    def _update_metrics(self) -> None:
        with self._lock:
            total = len(self._all_connections)
            idle = self._pool.qsize()
        POOL_CONNECTIONS.labels(**self._labels(), state="idle").set(idle)
        POOL_CONNECTIONS.labels(**self._labels(), state="in_use").set(total - idle)

    @contextmanager
    def acquire(self) -> Iterator[Any]:
        """
        Borrow a healthy connection for the duration of the block.

        The connection goes back to the pool when the block exits, also on
        error.

        Raises:
            PoolClosedError: The pool has been closed
            PoolExhaustedError: Nothing became available within acquire_timeout
        """
        if self._closed:
            raise PoolClosedError("Connection pool is closed")

        started = time.monotonic()
        with trace_operation("db_pool_acquire", kind=trace.SpanKind.CLIENT, **self._labels()):
            pooled_conn = self._checkout(started + self.acquire_timeout)
            pooled_conn.mark_used()
            self._update_metrics()
            POOL_ACQUIRE_SECONDS.labels(**self._labels()).observe(time.monotonic() - started)
            try:
                yield pooled_conn.connection
            finally:
                self._checkin(pooled_conn)

    def _close_all(self) -> None:
        for pooled_conn in list(self._all_connections):
            self._discard(pooled_conn)
        while not self._pool.empty():
            self._pool.get_nowait()

    def close(self) -> None:
        """Close every connection; later calls do nothing."""
        if self._closed:
            return
        self._closed = True
        with self._lock:
            self._close_all()
        self._update_metrics()
        logger.info(f"Pool '{self.pool_name}' closed")

    @property
    def closed(self) -> bool:
        return self._closed

    def get_stats(self) -> dict[str, Any]:
        with self._lock:
            total = len(self._all_connections)
            idle = self._pool.qsize()
        return {
            "pool_name": self.pool_name,
            "total_connections": total,
            "idle_connections": idle,
            "active_connections": total - idle,
            "min_size": self.min_size,
            "max_size": self.max_size,
            "closed": self._closed,
        }


class ServerConnectionPool(BaseConnectionPool):
    """
    Pool for a networked server addressed by host, port and credentials.

    Subclasses implement ``_connect``; connects are traced here.
    """

    def __init__(
        self,
        host: str,
        port: int,
        database: str,
        user: str,
        password: str,
        connect_timeout: int = 10,
        **pool_kwargs: Any,
    ):
        missing = [name for name, value in (("host", host), ("database", database), ("user", user)) if not value]
        if missing:
            raise ValueError(f"Missing connection settings: {', '.join(missing)}")

        self.host = host
        self.port = int(port)
        self.database = database
        self.user = user
        self.password = password
        self.connect_timeout = connect_timeout
        super().__init__(**pool_kwargs)

    def _connect(self) -> Any:
        raise NotImplementedError

    def _create_connection(self) -> Any:
        with trace_operation(
            f"{self._get_db_type()}_connect",
            kind=trace.SpanKind.CLIENT,
            db_host=self.host,
            db_name=self.database,
        ):
            return self._connect()
