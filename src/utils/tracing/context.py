"""
Span helpers used by the merge engine.

Attribute values are stringified so rows, counts and enums can be passed
as they are.
"""

from contextlib import contextmanager
from typing import Any

from opentelemetry import trace

from .tracer import get_tracer


def _stringify(attributes: dict[str, Any]) -> dict[str, str]:
    return {key: str(value) for key, value in attributes.items()}


@contextmanager
def trace_operation(operation_name: str, kind: trace.SpanKind = trace.SpanKind.INTERNAL, **attributes):
    """
    Run the enclosed block inside a new span.

    An exception leaving the block marks the span as failed, is recorded on
    it and is re-raised unchanged.

    Example:
        >>> with trace_operation("merge_table", table="users", policy="keep_latest"):
        ...     result = merger.merge_table("users", ConflictPolicy.KEEP_LATEST)
    """
    with get_tracer().start_as_current_span(
        operation_name,
        kind=kind,
        attributes=_stringify(attributes),
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        try:
            yield span
        except Exception as e:
            span.set_attributes({"error": True, "error.type": type(e).__name__, "error.message": str(e)})
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


def add_span_attributes(**attributes):
    """Attach attributes to the active span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.set_attributes(_stringify(attributes))


def add_span_event(name: str, **attributes):
    """Record a named event on the active span, if one is recording."""
    span = trace.get_current_span()
    if span.is_recording():
        span.add_event(name, attributes=_stringify(attributes))
