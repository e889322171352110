"""Safe metric registration helpers."""

from collections.abc import Callable
from typing import TypeVar

from prometheus_client import REGISTRY, CollectorRegistry

T = TypeVar("T")


def get_or_create_metric(
    metric_factory: Callable[[], T],
    metric_name: str,
    registry: CollectorRegistry = REGISTRY,
) -> T:
    """
    Create a new metric or return the existing one if already registered.

    Args:
        metric_factory: Callable that creates the metric (e.g., lambda: Counter(...))
        metric_name: Name of the metric for lookup if already registered
        registry: Prometheus registry to use (default: global REGISTRY)

    Returns:
        The metric instance (either newly created or existing)

    Example:
        ROWS_TOTAL = get_or_create_metric(
            lambda: Counter("rows_total", "Total rows", ["table_name"]),
            "rows_total"
        )
    """
    try:
        return metric_factory()
    except ValueError:
        existing = registry._names_to_collectors.get(metric_name)
        if existing is not None:
            return existing
        raise
