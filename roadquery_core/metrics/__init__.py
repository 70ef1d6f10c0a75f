"""Metrics module - Query engine metrics collection."""

from roadquery_core.metrics.collector import (
    MetricsCollector,
    QueryMetrics,
    Timer,
)

__all__ = [
    "MetricsCollector",
    "QueryMetrics",
    "Timer",
]
