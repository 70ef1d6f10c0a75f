"""RoadQuery Metrics Collector - Engine Metrics and Monitoring.

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, List

logger = logging.getLogger(__name__)


@dataclass
class QueryMetrics:
    """Query engine metrics snapshot.

    Attributes:
        fetches: Fetcher invocations
        fetch_errors: Fetcher invocations that raised
        deduplicated: Requests that joined an in-flight fetch
        fresh_skips: Requests answered without fetching
        backend_errors: Swallowed storage failures
        notifications: Listener deliveries
        latency_avg_ms: Average fetch latency
        latency_p99_ms: P99 fetch latency
    """

    fetches: int = 0
    fetch_errors: int = 0
    deduplicated: int = 0
    fresh_skips: int = 0
    backend_errors: int = 0
    notifications: int = 0
    latency_avg_ms: float = 0.0
    latency_p99_ms: float = 0.0

    @property
    def error_rate(self) -> float:
        """Share of fetches that failed."""
        return self.fetch_errors / self.fetches if self.fetches > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Metrics dictionary
        """
        return {
            "fetches": self.fetches,
            "fetch_errors": self.fetch_errors,
            "deduplicated": self.deduplicated,
            "fresh_skips": self.fresh_skips,
            "backend_errors": self.backend_errors,
            "notifications": self.notifications,
            "error_rate": self.error_rate,
            "latency_avg_ms": self.latency_avg_ms,
            "latency_p99_ms": self.latency_p99_ms,
        }


class MetricsCollector:
    """Collects query engine counters and fetch latencies.

    Example:
        collector = MetricsCollector()
        collector.record_fetch()
        collector.record_latency(12.5)

        metrics = collector.get_metrics()
        print(f"Error rate: {metrics.error_rate:.2%}")
    """

    def __init__(self, max_samples: int = 10000):
        """Initialize collector.

        Args:
            max_samples: Latency samples kept for percentiles
        """
        self._fetches = 0
        self._fetch_errors = 0
        self._deduplicated = 0
        self._fresh_skips = 0
        self._backend_errors = 0
        self._notifications = 0
        self._latencies: Deque[float] = deque(maxlen=max_samples)
        self._exporters: List[Callable[[QueryMetrics], None]] = []

    def record_fetch(self) -> None:
        self._fetches += 1

    def record_fetch_error(self) -> None:
        self._fetch_errors += 1

    def record_deduplicated(self) -> None:
        self._deduplicated += 1

    def record_fresh_skip(self) -> None:
        self._fresh_skips += 1

    def record_backend_error(self) -> None:
        self._backend_errors += 1

    def record_notification(self, count: int = 1) -> None:
        self._notifications += count

    def record_latency(self, ms: float) -> None:
        """Record fetch latency.

        Args:
            ms: Latency in milliseconds
        """
        self._latencies.append(ms)

    def _calculate_latency_avg(self) -> float:
        if not self._latencies:
            return 0.0
        return sum(self._latencies) / len(self._latencies)

    def _calculate_latency_p99(self) -> float:
        if not self._latencies:
            return 0.0
        sorted_latencies = sorted(self._latencies)
        idx = int(len(sorted_latencies) * 0.99)
        return sorted_latencies[min(idx, len(sorted_latencies) - 1)]

    def get_metrics(self) -> QueryMetrics:
        """Get current metrics.

        Returns:
            QueryMetrics instance
        """
        return QueryMetrics(
            fetches=self._fetches,
            fetch_errors=self._fetch_errors,
            deduplicated=self._deduplicated,
            fresh_skips=self._fresh_skips,
            backend_errors=self._backend_errors,
            notifications=self._notifications,
            latency_avg_ms=self._calculate_latency_avg(),
            latency_p99_ms=self._calculate_latency_p99(),
        )

    def reset(self) -> None:
        """Reset all metrics."""
        self._fetches = 0
        self._fetch_errors = 0
        self._deduplicated = 0
        self._fresh_skips = 0
        self._backend_errors = 0
        self._notifications = 0
        self._latencies.clear()

    def add_exporter(self, exporter: Callable[[QueryMetrics], None]) -> None:
        """Add metrics exporter.

        Args:
            exporter: Callback to receive metrics
        """
        self._exporters.append(exporter)

    def export(self) -> None:
        """Export metrics to all exporters."""
        metrics = self.get_metrics()
        for exporter in self._exporters:
            try:
                exporter(metrics)
            except Exception as e:
                logger.error(f"Exporter error: {e}")

    def to_prometheus(self, prefix: str = "roadquery") -> str:
        """Export metrics in Prometheus text format.

        Args:
            prefix: Metric name prefix

        Returns:
            Prometheus-formatted metrics
        """
        metrics = self.get_metrics()
        rows = [
            ("fetches_total", "counter", "Fetcher invocations", metrics.fetches),
            ("fetch_errors_total", "counter", "Failed fetches", metrics.fetch_errors),
            ("deduplicated_total", "counter", "Requests joined to an in-flight fetch", metrics.deduplicated),
            ("fresh_skips_total", "counter", "Requests served without fetching", metrics.fresh_skips),
            ("backend_errors_total", "counter", "Swallowed storage failures", metrics.backend_errors),
            ("notifications_total", "counter", "Listener deliveries", metrics.notifications),
            ("fetch_latency_avg_ms", "gauge", "Average fetch latency", f"{metrics.latency_avg_ms:.2f}"),
            ("fetch_latency_p99_ms", "gauge", "P99 fetch latency", f"{metrics.latency_p99_ms:.2f}"),
        ]
        lines: List[str] = []
        for name, kind, help_text, value in rows:
            lines.append(f"# HELP {prefix}_{name} {help_text}")
            lines.append(f"# TYPE {prefix}_{name} {kind}")
            lines.append(f"{prefix}_{name} {value}")
        return "\n".join(lines)

    def __repr__(self) -> str:
        metrics = self.get_metrics()
        return f"MetricsCollector(fetches={metrics.fetches}, errors={metrics.fetch_errors})"


class Timer:
    """Context manager recording elapsed time into a collector."""

    def __init__(self, collector: MetricsCollector):
        self._collector = collector
        self._start: float = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        elapsed_ms = (time.perf_counter() - self._start) * 1000
        self._collector.record_latency(elapsed_ms)


__all__ = ["MetricsCollector", "QueryMetrics", "Timer"]
