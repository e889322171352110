"""
Custom metrics publishing to Prometheus

Usage:
    from src.utils.metrics import MetricsPublisher, MergeMetrics

    publisher = MetricsPublisher(port=9091)
    publisher.start()

    metrics = MergeMetrics()
    metrics.record_table("users", success=True, duration=4.2, inserted=10)
"""

from .merge import MergeMetrics
from .publisher import MetricsPublisher
from .registry import get_or_create_metric

__all__ = [
    "MetricsPublisher",
    "MergeMetrics",
    "get_or_create_metric",
]
