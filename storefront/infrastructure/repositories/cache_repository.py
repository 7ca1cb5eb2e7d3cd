"""
In-Memory Cache Repository

Process-local implementation of the CacheStore interface.
Entries live in a plain dict owned by the store instance; a secondary
index maps tags to keys so tag invalidation does not scan the store.
"""

from collections import defaultdict
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

import structlog

from ...constants import now_ms
from ...domain.cache.entities import CacheEntry
from ...domain.cache.repository_interfaces import CacheStore
from ...domain.cache.value_objects import CacheKey, CacheTag, TTL

logger = structlog.get_logger(__name__)

Clock = Callable[[], float]


class InMemoryCacheStore(CacheStore):
    """
    TTL-tagged key/value store held in process memory.

    Not shared across processes and reset on restart. Safe for a single
    event loop: no method awaits, so each runs to completion before any
    other task can touch the store.
    """

    def __init__(self, clock: Optional[Clock] = None):
        """
        Initialize store.

        Args:
            clock: Callable returning epoch milliseconds. Defaults to wall clock.
        """
        self._clock: Clock = clock or now_ms
        self._entries: Dict[str, CacheEntry[Any]] = {}
        self._tag_index: Dict[CacheTag, Set[str]] = defaultdict(set)

    def now(self) -> float:
        return self._clock()

    def has(self, key: str) -> bool:
        if not isinstance(key, str):
            return False
        return key in self._entries

    def get(self, key: str) -> Optional[CacheEntry[Any]]:
        # Malformed keys (None, non-str) can never be stored, so they miss
        if not isinstance(key, str):
            return None
        return self._entries.get(key)

    def lookup(self, key: str) -> Optional[CacheEntry[Any]]:
        entry = self.get(key)
        if entry is None:
            return None

        if entry.is_expired(self.now()):
            self._remove(key)
            logger.debug("Expired cache entry removed on access", key=key)
            return None

        return entry

    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        tags: Optional[Iterable[CacheTag]] = None,
    ) -> CacheEntry[Any]:
        cache_key = CacheKey(key)
        ttl = TTL.coerce(ttl_seconds)

        if cache_key.value in self._entries:
            self._unindex(self._entries[cache_key.value])

        entry = CacheEntry.create(
            key=cache_key.value,
            value=value,
            ttl=ttl,
            now=self.now(),
            tags=frozenset(tags or ()),
        )
        self._entries[entry.key] = entry
        for tag in entry.tags:
            self._tag_index[tag].add(entry.key)
        return entry

    def delete(self, key: str) -> bool:
        if not isinstance(key, str) or key not in self._entries:
            return False
        self._remove(key)
        return True

    def keys(self) -> List[str]:
        return list(self._entries)

    def keys_with_tag(self, tag: CacheTag) -> List[str]:
        return sorted(self._tag_index.get(tag, ()))

    def sweep_expired(self) -> int:
        now = self.now()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            self._remove(key)
        return len(expired)

    def clear(self) -> int:
        count = len(self._entries)
        self._entries.clear()
        self._tag_index.clear()
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def _remove(self, key: str) -> None:
        entry = self._entries.pop(key)
        self._unindex(entry)

    def _unindex(self, entry: CacheEntry[Any]) -> None:
        for tag in entry.tags:
            keys = self._tag_index.get(tag)
            if keys is None:
                continue
            keys.discard(entry.key)
            if not keys:
                del self._tag_index[tag]
