"""
OpenTelemetry tracer setup for merge runs.

Spans are exported over OTLP when an endpoint is configured (argument or
OTLP_ENDPOINT) and to stdout when TRACE_CONSOLE=true. With neither, spans
are still created so span helpers work, but nothing leaves the process.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "db-merge-engine"

_provider: TracerProvider | None = None
_tracer: trace.Tracer | None = None


def _configured_exporters(otlp_endpoint: str | None, console_export: bool) -> dict[str, SpanExporter]:
    exporters: dict[str, SpanExporter] = {}

    endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if endpoint:
        try:
            exporters[f"otlp({endpoint})"] = OTLPSpanExporter(endpoint=endpoint, insecure=True)
        except Exception as e:
            logger.warning(f"Cannot export spans to {endpoint}: {e}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        exporters["console"] = ConsoleSpanExporter()

    return exporters


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
) -> trace.Tracer:
    """
    Install a tracer provider for this process.

    Calling it again returns the tracer from the first call.

    Args:
        service_name: service.name resource attribute
        otlp_endpoint: OTLP collector address, e.g. "localhost:4317"
        console_export: Also print finished spans to stdout

    Returns:
        Tracer used by the span helpers
    """
    global _provider, _tracer

    if _tracer is not None:
        return _tracer

    from src.db_merge import __version__

    _provider = TracerProvider(
        resource=Resource.create({SERVICE_NAME: service_name, SERVICE_VERSION: __version__})
    )
    exporters = _configured_exporters(otlp_endpoint, console_export)
    for exporter in exporters.values():
        _provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(_provider)
    _tracer = trace.get_tracer(service_name, __version__)

    logger.debug(f"Tracing ready for {service_name}; exporters: {', '.join(exporters) or 'none'}")
    return _tracer


def get_tracer() -> trace.Tracer:
    """Return the process tracer, setting up tracing with defaults on first use."""
    return _tracer or initialize_tracing()


def shutdown_tracing() -> None:
    """Flush pending spans and release the provider; safe to call more than once."""
    global _provider, _tracer

    if _provider is None:
        return

    try:
        _provider.shutdown()
    except Exception as e:
        logger.error(f"Failed to flush spans on shutdown: {e}")
    finally:
        _provider = None
        _tracer = None
