"""
Cache Metrics

Prometheus metrics for cache operations.
Each CacheMetrics instance owns its own CollectorRegistry.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class CacheMetrics:
    """Counters and latency histogram for put/get and lazy eviction."""

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.operations_total = Counter(
            "kvcache_operations_total",
            "Total number of cache operations by outcome",
            ["operation", "result"],
            registry=self.registry,
        )

        self.lazy_evictions_total = Counter(
            "kvcache_lazy_evictions_total",
            "Expired entries removed on read",
            ["outcome"],
            registry=self.registry,
        )

        self.operation_duration_seconds = Histogram(
            "kvcache_operation_duration_seconds",
            "Cache operation latency in seconds",
            ["operation"],
            buckets=[0.0005, 0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=self.registry,
        )

    def record(self, operation: str, result: str, duration_seconds: float) -> None:
        self.operations_total.labels(operation=operation, result=result).inc()
        self.operation_duration_seconds.labels(operation=operation).observe(
            duration_seconds
        )

    def record_eviction(self, outcome: str) -> None:
        self.lazy_evictions_total.labels(outcome=outcome).inc()

    def value(self, operation: str, result: str) -> float:
        """Current counter value, mostly for health output and tests."""
        return self.registry.get_sample_value(
            "kvcache_operations_total", {"operation": operation, "result": result}
        ) or 0.0

    def render(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
