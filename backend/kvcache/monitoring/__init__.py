"""
Monitoring Module

Prometheus metrics for cache operations.
"""

from .cache_metrics import CacheMetrics

__all__ = ["CacheMetrics"]
