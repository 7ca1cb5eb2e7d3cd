"""
Cache Domain Services

Invalidation rules for the cache domain.

Keys are flat strings that are not indexed by the entities they were
derived from, so a mutation must name what it makes stale: a single key,
a key prefix (every page/filter variant of a listing), a glob pattern, or
an entity tag recorded when the entry was populated. Any derived key the
caller does not cover stays stale until its TTL runs out.
"""

import fnmatch
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AbstractSet, List, Union

from opentelemetry import trace

from .repository_interfaces import CacheStore
from .value_objects import CacheKey, CacheTag

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class InvalidationKind(str, Enum):
    """How an invalidation scope selects keys."""

    KEY = "key"
    PREFIX = "prefix"
    PATTERN = "pattern"
    TAG = "tag"


@dataclass(frozen=True)
class InvalidationScope:
    """
    Selection of cache keys affected by one mutation.

    Use the classmethod constructors rather than building it directly.
    """

    kind: InvalidationKind
    target: str

    def __post_init__(self) -> None:
        if not self.target:
            raise ValueError("Invalidation target cannot be empty")

    @classmethod
    def key(cls, key: Union[str, CacheKey]) -> "InvalidationScope":
        return cls(InvalidationKind.KEY, str(key))

    @classmethod
    def prefix(cls, prefix: str) -> "InvalidationScope":
        return cls(InvalidationKind.PREFIX, prefix)

    @classmethod
    def pattern(cls, pattern: str) -> "InvalidationScope":
        """Glob pattern, e.g. ``products_*_{"brand":*}``."""
        return cls(InvalidationKind.PATTERN, pattern)

    @classmethod
    def tag(cls, tag: CacheTag) -> "InvalidationScope":
        return cls(InvalidationKind.TAG, tag.value)

    def matches(self, key: str, tags: AbstractSet[CacheTag]) -> bool:
        """Check whether a key (with its tags) falls inside this scope."""
        if self.kind is InvalidationKind.KEY:
            return key == self.target
        if self.kind is InvalidationKind.PREFIX:
            return key.startswith(self.target)
        if self.kind is InvalidationKind.PATTERN:
            return fnmatch.fnmatchcase(key, self.target)
        return CacheTag(self.target) in tags

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.target}"


class CacheInvalidationService:
    """
    Domain service for cache invalidation strategies.

    Resolves an invalidation scope against the store and deletes the
    matching entries.
    """

    def __init__(self, store: CacheStore):
        self.store = store

    def resolve(self, scope: InvalidationScope) -> List[str]:
        """List stored keys inside scope without deleting them."""
        if scope.kind is InvalidationKind.KEY:
            return [scope.target] if self.store.has(scope.target) else []
        if scope.kind is InvalidationKind.TAG:
            return self.store.keys_with_tag(CacheTag(scope.target))
        return [key for key in self.store.keys() if scope.matches(key, frozenset())]

    def invalidate(self, scope: InvalidationScope, reason: str = "mutation") -> List[str]:
        """
        Delete every entry inside scope.

        Args:
            scope: Keys to invalidate
            reason: Reason for invalidation (for logging)

        Returns:
            Keys that were removed
        """
        with tracer.start_as_current_span("cache.invalidate") as span:
            span.set_attribute("cache.scope", str(scope))
            span.set_attribute("cache.reason", reason)

            removed = [key for key in self.resolve(scope) if self.store.delete(key)]

            span.set_attribute("cache.invalidated_count", len(removed))
            logger.debug(
                f"Invalidated {len(removed)} cache entries for {scope}",
                extra={"scope": str(scope), "reason": reason, "count": len(removed)},
            )
            return removed
