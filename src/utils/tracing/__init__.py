"""
OpenTelemetry spans for merge runs.

Spans cover database connects and pool checkouts, the backup snapshot,
schema reconciliation and the row merge of each table. ``db-merge``
initializes tracing at startup and flushes it on exit.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "shutdown_tracing",
    "get_tracer",
    "trace_operation",
    "add_span_attributes",
    "add_span_event",
]
