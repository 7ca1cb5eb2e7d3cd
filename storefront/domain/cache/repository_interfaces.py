"""
Cache Repository Interfaces

Abstract store interface following the Repository pattern.
Defines the contract every cache store implementation must satisfy.
"""

from abc import ABC, abstractmethod
from typing import Any, Iterable, List, Optional

from .entities import CacheEntry
from .value_objects import CacheTag


class CacheStore(ABC):
    """
    Abstract key/value store with TTL-tagged entries.

    All operations are synchronous and never block. ``has`` and ``get``
    report raw state regardless of expiry; ``lookup`` is the expiry-aware
    read that every caller should use.
    """

    @abstractmethod
    def now(self) -> float:
        """Current time in epoch milliseconds as seen by this store."""

    @abstractmethod
    def has(self, key: str) -> bool:
        """True iff an entry exists for key, expired or not."""

    @abstractmethod
    def get(self, key: str) -> Optional[CacheEntry[Any]]:
        """Raw entry for key, or None if absent."""

    @abstractmethod
    def lookup(self, key: str) -> Optional[CacheEntry[Any]]:
        """Entry for key if present and fresh; expired entries are deleted."""

    @abstractmethod
    def set(
        self,
        key: str,
        value: Any,
        ttl_seconds: float,
        tags: Optional[Iterable[CacheTag]] = None,
    ) -> CacheEntry[Any]:
        """Store value under key, overwriting any existing entry."""

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove key; returns False when it was absent."""

    @abstractmethod
    def keys(self) -> List[str]:
        """Snapshot of all stored keys."""

    @abstractmethod
    def keys_with_tag(self, tag: CacheTag) -> List[str]:
        """Snapshot of keys carrying tag."""

    @abstractmethod
    def sweep_expired(self) -> int:
        """Delete every expired entry; returns how many were removed."""

    @abstractmethod
    def clear(self) -> int:
        """Delete everything; returns how many entries were removed."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of stored entries, expired included."""
