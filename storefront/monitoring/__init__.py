"""
Storefront Cache Monitoring Module

Prometheus metrics for cache hits, misses, fetch latency and invalidation.
"""

from .cache_metrics import CacheMetricsCollector

__all__ = ["CacheMetricsCollector"]
