"""
Cache Metrics Collector

Prometheus metrics for the in-memory cache: hit/miss counters,
coalesced waits, fetch failures and fetch latency.
Each collector owns its registry so several caches (and test runs) can
coexist in one process without duplicate-registration errors.
"""

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
import structlog

logger = structlog.get_logger(__name__)


class CacheMetricsCollector:
    """Prometheus metrics for one cache instance."""

    def __init__(self, namespace: str = "storefront"):
        self.registry = CollectorRegistry()
        self._setup_prometheus_metrics(namespace)

    def _setup_prometheus_metrics(self, namespace: str) -> None:
        """Setup Prometheus metrics for the cache."""
        self.prom_cache_hits_total = Counter(
            f"{namespace}_cache_hits_total",
            "Reads served from cache",
            ["entity"],
            registry=self.registry,
        )

        self.prom_cache_misses_total = Counter(
            f"{namespace}_cache_misses_total",
            "Reads that were not served from cache",
            ["entity"],
            registry=self.registry,
        )

        self.prom_cache_coalesced_total = Counter(
            f"{namespace}_cache_coalesced_total",
            "Misses that joined a fetch already in flight",
            ["entity"],
            registry=self.registry,
        )

        self.prom_cache_fetch_errors_total = Counter(
            f"{namespace}_cache_fetch_errors_total",
            "Fetcher failures by exception type",
            ["entity", "error_type"],
            registry=self.registry,
        )

        self.prom_cache_invalidated_total = Counter(
            f"{namespace}_cache_invalidated_total",
            "Entries removed by invalidation",
            ["scope_kind"],
            registry=self.registry,
        )

        self.prom_cache_swept_total = Counter(
            f"{namespace}_cache_swept_total",
            "Expired entries removed by the background sweeper",
            registry=self.registry,
        )

        self.prom_cache_fetch_duration_seconds = Histogram(
            f"{namespace}_cache_fetch_duration_seconds",
            "Fetcher execution time in seconds",
            ["entity"],
            buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
            registry=self.registry,
        )

        self.prom_cache_entries = Gauge(
            f"{namespace}_cache_entries",
            "Entries currently held, expired included",
            registry=self.registry,
        )

        self.prom_cache_in_flight = Gauge(
            f"{namespace}_cache_in_flight",
            "Fetches currently running",
            registry=self.registry,
        )

    @staticmethod
    def entity_label(key: str) -> str:
        """Collapse a key to its entity segment to keep label cardinality low."""
        return key.split("_", 1)[0] or "unknown"

    def record_hit(self, key: str) -> None:
        self.prom_cache_hits_total.labels(entity=self.entity_label(key)).inc()

    def record_miss(self, key: str, coalesced: bool = False) -> None:
        entity = self.entity_label(key)
        self.prom_cache_misses_total.labels(entity=entity).inc()
        if coalesced:
            self.prom_cache_coalesced_total.labels(entity=entity).inc()

    def record_fetch(self, key: str, duration_seconds: float) -> None:
        self.prom_cache_fetch_duration_seconds.labels(
            entity=self.entity_label(key)
        ).observe(duration_seconds)

    def record_fetch_error(self, key: str, error: BaseException) -> None:
        self.prom_cache_fetch_errors_total.labels(
            entity=self.entity_label(key), error_type=type(error).__name__
        ).inc()

    def record_invalidation(self, scope_kind: str, count: int) -> None:
        if count:
            self.prom_cache_invalidated_total.labels(scope_kind=scope_kind).inc(count)

    def record_sweep(self, count: int) -> None:
        if count:
            self.prom_cache_swept_total.inc(count)

    def update_gauges(self, entries: int, in_flight: int) -> None:
        self.prom_cache_entries.set(entries)
        self.prom_cache_in_flight.set(in_flight)

    def export(self) -> bytes:
        """Prometheus text exposition for this collector."""
        return generate_latest(self.registry)
