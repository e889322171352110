"""
Prometheus /metrics endpoint for long merge runs.

The CLI starts it when --metrics-port is given so a scraper can follow a
run while it is in progress.
"""

import errno
import logging

from prometheus_client import REGISTRY, CollectorRegistry, start_http_server

logger = logging.getLogger(__name__)


class MetricsPublisher:
    """Serves a metrics registry over HTTP on a fixed port."""

    def __init__(self, port: int = 9091, registry: CollectorRegistry | None = None):
        self.port = port
        self.registry = registry or REGISTRY
        self._server_started = False

    def start(self) -> None:
        """
        Start serving; a second call is a no-op.

        Raises:
            RuntimeError: The port is already bound by another process
            OSError: Any other failure to bind
        """
        if self._server_started:
            logger.debug(f"Metrics endpoint already serving on port {self.port}")
            return

        try:
            start_http_server(self.port, registry=self.registry)
        except OSError as e:
            if e.errno == errno.EADDRINUSE or "Address already in use" in str(e):
                raise RuntimeError(
                    f"Metrics port {self.port} is already in use; pass a different --metrics-port"
                ) from e
            raise

        self._server_started = True
        logger.info(f"Serving merge metrics on :{self.port}/metrics")

    def is_started(self) -> bool:
        return self._server_started
