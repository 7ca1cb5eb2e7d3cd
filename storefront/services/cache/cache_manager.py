"""
Cache Manager Service

High-level cache service that every read path goes through.
Combines the store, the invalidation service and metrics behind one
get-or-populate entry point with per-key de-duplication of fetches.
"""

import asyncio
import inspect
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Optional,
    TypeVar,
    Union,
)

import structlog
from opentelemetry import trace

from ...core.config import Settings, get_settings
from ...domain.cache.domain_services import (
    CacheInvalidationService,
    InvalidationScope,
)
from ...domain.cache.exceptions import CacheFetchTimeoutError
from ...domain.cache.repository_interfaces import CacheStore
from ...domain.cache.value_objects import CacheKey, CacheStatistics, CacheTag, TTL
from ...infrastructure.repositories.cache_repository import InMemoryCacheStore
from ...monitoring.cache_metrics import CacheMetricsCollector
from .sweeper import CacheSweeper

logger = structlog.get_logger(__name__)
tracer = trace.get_tracer(__name__)

T = TypeVar("T")

KeyLike = Union[str, CacheKey]
TTLLike = Union[int, float, TTL]
TagLike = Union[str, CacheTag]
Fetcher = Callable[[], Union[Awaitable[T], T]]


@dataclass
class _PendingFetch:
    """Bookkeeping for one fetch running on behalf of a key."""

    key: str
    tags: FrozenSet[CacheTag]
    task: Optional["asyncio.Future[Any]"] = None
    detached: bool = False


class CacheManager:
    """
    High-level cache management service.

    Provides the get-or-populate read path, explicit writes, and the
    invalidation protocol. Construct one per process (or per test) and
    pass it to whatever needs it.
    """

    def __init__(
        self,
        store: Optional[CacheStore] = None,
        settings: Optional[Settings] = None,
        metrics: Optional[CacheMetricsCollector] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store if store is not None else InMemoryCacheStore()
        self.metrics = metrics or CacheMetricsCollector()
        self.invalidation_service = CacheInvalidationService(self.store)
        self.sweeper = CacheSweeper(
            self, interval_seconds=self.settings.CACHE_SWEEP_INTERVAL_SECONDS
        )

        self._in_flight: Dict[str, _PendingFetch] = {}
        self._hits = 0
        self._misses = 0
        self._coalesced = 0
        self._populations = 0
        self._fetch_errors = 0
        self._invalidations = 0

    async def initialize(self) -> None:
        """Start background expiry sweeping if enabled."""
        if self.settings.CACHE_SWEEP_ENABLED:
            await self.sweeper.start()
        logger.info(
            "Cache manager initialized",
            sweep_enabled=self.settings.CACHE_SWEEP_ENABLED,
            default_ttl=self.settings.CACHE_DEFAULT_TTL_SECONDS,
        )

    async def close(self) -> None:
        """Stop the sweeper and cancel fetches still in flight."""
        await self.sweeper.stop()

        pending = [p.task for p in self._in_flight.values() if p.task is not None]
        self._in_flight.clear()
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        logger.info("Cache manager closed", cancelled_fetches=len(pending))

    # Key and TTL handling

    def _key(self, key: KeyLike) -> str:
        return CacheKey.coerce(key, max_length=self.settings.CACHE_MAX_KEY_LENGTH).value

    def _ttl(self, ttl: Optional[TTLLike]) -> TTL:
        if ttl is None:
            ttl = self.settings.CACHE_DEFAULT_TTL_SECONDS
        return TTL.coerce(ttl, max_seconds=self.settings.CACHE_MAX_TTL_SECONDS)

    @staticmethod
    def _tags(tags: Optional[Iterable[TagLike]]) -> FrozenSet[CacheTag]:
        return frozenset(
            tag if isinstance(tag, CacheTag) else CacheTag(tag) for tag in (tags or ())
        )

    # Read path

    async def get_or_populate(
        self,
        key: KeyLike,
        ttl: Optional[TTLLike],
        fetcher: Fetcher[T],
        *,
        tags: Optional[Iterable[TagLike]] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """
        Return the cached value for key, fetching and caching it on a miss.

        Concurrent callers that miss on the same key share a single fetch.
        A failing fetcher leaves the cache untouched and its exception is
        re-raised to every waiting caller unchanged.

        Args:
            key: Cache key (string or CacheKey)
            ttl: Seconds the fetched value stays fresh; None uses the default
            fetcher: Zero-argument callable returning the value or an awaitable
            tags: Tags recorded on the new entry for tag invalidation
            timeout: Seconds to wait for the fetcher; None uses the configured
                default, which itself may be None (wait forever)

        Returns:
            Cached or freshly fetched value

        Raises:
            InvalidKeyError: If key is empty, too long or contains whitespace
            InvalidTTLError: If ttl is not positive or too large
            CacheFetchTimeoutError: If the fetcher exceeds its timeout
            Exception: Whatever the fetcher raised
        """
        cache_key = self._key(key)
        cache_ttl = self._ttl(ttl)
        if timeout is not None and timeout <= 0:
            raise ValueError("Fetch timeout must be positive")

        with tracer.start_as_current_span("cache_manager.get_or_populate") as span:
            span.set_attribute("cache.key", cache_key)

            entry = self.store.lookup(cache_key)
            if entry is not None and entry.value is not None:
                self._hits += 1
                self.metrics.record_hit(cache_key)
                span.set_attribute("cache.hit", True)
                logger.debug("Cache hit", key=cache_key)
                return entry.value

            pending = self._in_flight.get(cache_key)
            coalesced = pending is not None
            self._misses += 1
            if coalesced:
                self._coalesced += 1
            self.metrics.record_miss(cache_key, coalesced=coalesced)
            span.set_attribute("cache.hit", False)
            span.set_attribute("cache.coalesced", coalesced)
            logger.debug("Cache miss", key=cache_key, coalesced=coalesced)

            if pending is None:
                pending = self._start_fetch(
                    cache_key, cache_ttl, fetcher, self._tags(tags), timeout
                )

            try:
                return await asyncio.shield(pending.task)
            except Exception as e:
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                raise

    async def refresh(
        self,
        key: KeyLike,
        ttl: Optional[TTLLike],
        fetcher: Fetcher[T],
        *,
        tags: Optional[Iterable[TagLike]] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """Drop key and repopulate it immediately, typically after a mutation."""
        self.invalidate(key, reason="refresh")
        return await self.get_or_populate(
            key, ttl, fetcher, tags=tags, timeout=timeout
        )

    def peek(self, key: KeyLike) -> Optional[Any]:
        """Fresh cached value for key, or None; never fetches."""
        entry = self.store.lookup(self._key(key))
        return None if entry is None else entry.value

    def contains(self, key: KeyLike) -> bool:
        """True iff key would be a cache hit right now."""
        return self.peek(key) is not None

    def remaining_ttl(self, key: KeyLike) -> Optional[float]:
        """Seconds until key expires, or None if it is absent or stale."""
        entry = self.store.lookup(self._key(key))
        if entry is None:
            return None
        return entry.remaining_seconds(self.store.now())

    def _start_fetch(
        self,
        key: str,
        ttl: TTL,
        fetcher: Fetcher[T],
        tags: FrozenSet[CacheTag],
        timeout: Optional[float],
    ) -> _PendingFetch:
        pending = _PendingFetch(key=key, tags=tags)
        pending.task = asyncio.ensure_future(
            self._populate(pending, ttl, fetcher, timeout)
        )
        self._in_flight[key] = pending
        self.metrics.update_gauges(len(self.store), len(self._in_flight))
        return pending

    async def _populate(
        self,
        pending: _PendingFetch,
        ttl: TTL,
        fetcher: Fetcher[T],
        timeout: Optional[float],
    ) -> T:
        started = time.perf_counter()
        with tracer.start_as_current_span("cache_manager.populate") as span:
            span.set_attribute("cache.key", pending.key)
            try:
                value = await self._run_fetcher(pending.key, fetcher, timeout)

                if pending.detached:
                    logger.debug(
                        "Fetched value discarded, key invalidated while in flight",
                        key=pending.key,
                    )
                elif value is None:
                    logger.debug(
                        "Fetcher returned None, nothing cached", key=pending.key
                    )
                else:
                    self.store.set(pending.key, value, ttl.seconds, tags=pending.tags)
                    self._populations += 1
                    logger.debug("Cache populated", key=pending.key, ttl=ttl.seconds)

                span.set_attribute(
                    "cache.stored", not pending.detached and value is not None
                )
                return value

            except Exception as e:
                self._fetch_errors += 1
                self.metrics.record_fetch_error(pending.key, e)
                span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
                logger.warning(
                    "Cache fetch failed",
                    key=pending.key,
                    error_type=type(e).__name__,
                    error=str(e),
                )
                raise

            finally:
                self.metrics.record_fetch(pending.key, time.perf_counter() - started)
                if self._in_flight.get(pending.key) is pending:
                    del self._in_flight[pending.key]
                self.metrics.update_gauges(len(self.store), len(self._in_flight))

    async def _run_fetcher(
        self, key: str, fetcher: Fetcher[T], timeout: Optional[float]
    ) -> T:
        if timeout is None:
            timeout = self.settings.CACHE_FETCH_TIMEOUT_SECONDS
        if timeout is None:
            return await self._call(fetcher)

        # Run in its own task so a TimeoutError raised by the fetcher itself
        # is not mistaken for the deadline expiring.
        inner = asyncio.ensure_future(self._call(fetcher))
        try:
            done, _ = await asyncio.wait({inner}, timeout=timeout)
        except asyncio.CancelledError:
            inner.cancel()
            raise

        if not done:
            inner.cancel()
            raise CacheFetchTimeoutError(key, timeout)
        return inner.result()

    @staticmethod
    async def _call(fetcher: Fetcher[T]) -> T:
        result = fetcher()
        if inspect.isawaitable(result):
            result = await result
        return result

    # Write path

    def set(
        self,
        key: KeyLike,
        value: Any,
        ttl: Optional[TTLLike] = None,
        *,
        tags: Optional[Iterable[TagLike]] = None,
    ) -> None:
        """
        Store value under key. Setting None clears the key instead.

        A direct write supersedes any fetch in flight for the same key.
        """
        cache_key = self._key(key)
        if value is None:
            self.invalidate(cache_key, reason="set_none")
            return

        cache_ttl = self._ttl(ttl)
        self._detach_in_flight([InvalidationScope.key(cache_key)])
        self.store.set(cache_key, value, cache_ttl.seconds, tags=self._tags(tags))
        self.metrics.update_gauges(len(self.store), len(self._in_flight))

    # Invalidation protocol

    def invalidate(self, key: KeyLike, reason: str = "manual") -> int:
        """Remove one key. Removing an absent key is a no-op returning 0."""
        return self.invalidate_scopes([InvalidationScope.key(self._key(key))], reason)

    def invalidate_many(self, keys: Iterable[KeyLike], reason: str = "manual") -> int:
        """Remove several keys, e.g. a detail key and its aggregate list."""
        scopes = [InvalidationScope.key(self._key(key)) for key in keys]
        return self.invalidate_scopes(scopes, reason)

    def invalidate_prefix(self, prefix: str, reason: str = "manual") -> int:
        """Remove every key starting with prefix (all pages of a listing)."""
        return self.invalidate_scopes([InvalidationScope.prefix(prefix)], reason)

    def invalidate_pattern(self, pattern: str, reason: str = "manual") -> int:
        """Remove every key matching a glob pattern."""
        return self.invalidate_scopes([InvalidationScope.pattern(pattern)], reason)

    def invalidate_tag(self, tag: TagLike, reason: str = "manual") -> int:
        """Remove every entry populated with tag."""
        cache_tag = tag if isinstance(tag, CacheTag) else CacheTag(tag)
        return self.invalidate_scopes([InvalidationScope.tag(cache_tag)], reason)

    def invalidate_scopes(
        self, scopes: List[InvalidationScope], reason: str = "manual"
    ) -> int:
        """
        Apply invalidation scopes to stored entries and in-flight fetches.

        A fetch that started before the invalidation is detached: its
        current waiters still get its result, but the result is not stored
        and later callers start a new fetch.

        Returns:
            Number of stored entries removed
        """
        removed: List[str] = []
        for scope in scopes:
            keys = self.invalidation_service.invalidate(scope, reason)
            self.metrics.record_invalidation(scope.kind.value, len(keys))
            removed.extend(keys)
        detached = self._detach_in_flight(scopes)

        self._invalidations += len(removed)
        self.metrics.update_gauges(len(self.store), len(self._in_flight))

        if removed or detached:
            logger.info(
                "Cache entries invalidated",
                scopes=[str(scope) for scope in scopes],
                reason=reason,
                count=len(removed),
                detached_fetches=detached,
            )
        return len(removed)

    def _detach_in_flight(self, scopes: List[InvalidationScope]) -> int:
        detached = 0
        for key, pending in list(self._in_flight.items()):
            if any(scope.matches(key, pending.tags) for scope in scopes):
                pending.detached = True
                del self._in_flight[key]
                detached += 1
        return detached

    def clear(self, reason: str = "manual") -> int:
        """Remove every entry and detach every in-flight fetch."""
        for pending in self._in_flight.values():
            pending.detached = True
        detached = len(self._in_flight)
        self._in_flight.clear()

        count = self.store.clear()
        self._invalidations += count
        self.metrics.update_gauges(0, 0)
        logger.info(
            "Cache cleared", reason=reason, count=count, detached_fetches=detached
        )
        return count

    # Maintenance and monitoring

    def sweep_expired(self) -> int:
        """Physically remove expired entries."""
        count = self.store.sweep_expired()
        self.metrics.record_sweep(count)
        self.metrics.update_gauges(len(self.store), len(self._in_flight))
        if count:
            logger.debug("Expired cache entries swept", count=count)
        return count

    def get_statistics(self) -> CacheStatistics:
        """Snapshot of cache counters."""
        return CacheStatistics(
            hits=self._hits,
            misses=self._misses,
            coalesced=self._coalesced,
            populations=self._populations,
            fetch_errors=self._fetch_errors,
            invalidations=self._invalidations,
            size=len(self.store),
            in_flight=len(self._in_flight),
        )

    def health_check(self) -> Dict[str, Any]:
        """Report cache status, counters and sweeper state."""
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "statistics": self.get_statistics().model_dump(),
            "sweeper": {
                "enabled": self.settings.CACHE_SWEEP_ENABLED,
                "running": self.sweeper.is_running,
                "interval_seconds": self.sweeper.interval_seconds,
                "last_swept": self.sweeper.last_swept,
            },
        }
