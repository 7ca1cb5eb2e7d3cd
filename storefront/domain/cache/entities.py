"""
Cache Domain Entities

Core domain entity for cached values.
Encapsulates expiry rules for a single key.
"""

from dataclasses import dataclass, field
from typing import FrozenSet, Generic, Optional, TypeVar

from .value_objects import CacheEntryStatus, CacheTag, TTL

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """
    Cached value entity.

    Holds one value together with its absolute expiry timestamp in
    milliseconds since epoch. An entry is stale once ``now >= expiry``.
    """

    key: str
    value: T
    expiry: float
    created_at: float
    tags: FrozenSet[CacheTag] = field(default_factory=frozenset)

    @classmethod
    def create(
        cls,
        key: str,
        value: T,
        ttl: TTL,
        now: float,
        tags: Optional[FrozenSet[CacheTag]] = None,
    ) -> "CacheEntry[T]":
        """Create new entry expiring ``ttl`` after ``now`` (epoch ms)."""
        return cls(
            key=key,
            value=value,
            expiry=now + ttl.milliseconds,
            created_at=now,
            tags=frozenset(tags or ()),
        )

    def is_expired(self, now: float) -> bool:
        """Check if entry is expired at ``now`` (epoch ms)."""
        return now >= self.expiry

    def remaining_seconds(self, now: float) -> float:
        """Seconds until expiry, never negative."""
        return max(0.0, (self.expiry - now) / 1000)

    def age_seconds(self, now: float) -> float:
        return max(0.0, (now - self.created_at) / 1000)

    def has_tag(self, tag: CacheTag) -> bool:
        """Check if entry has specific tag."""
        return tag in self.tags

    def get_status(self, now: float) -> CacheEntryStatus:
        """Get current status of cache entry."""
        if self.is_expired(now):
            return CacheEntryStatus.EXPIRED
        return CacheEntryStatus.ACTIVE
