"""
Cache Value Objects

Immutable value objects for the cache domain.
Provides type safety and key naming conventions for cache operations.
"""

import hashlib
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional, Union

from pydantic import BaseModel, Field, computed_field

from ...constants import (
    BANNER_TTL_SECONDS,
    BRAND_TTL_SECONDS,
    CAROUSEL_TTL_SECONDS,
    CATEGORY_TTL_SECONDS,
    DEFAULT_TTL_SECONDS,
    MAX_KEY_LENGTH,
    MAX_TTL_SECONDS,
    PRODUCT_TTL_SECONDS,
    SUPPLIER_TTL_SECONDS,
    VARIANT_TTL_SECONDS,
)
from .exceptions import InvalidKeyError, InvalidTTLError

EntityId = Union[int, str]

MIN_DIGEST_LENGTH = 16


class CacheEntryStatus(str, Enum):
    """Cache entry status enumeration."""

    ACTIVE = "active"
    EXPIRED = "expired"


def _id_part(entity_id: EntityId) -> str:
    """Render an entity identifier as a key segment."""
    if isinstance(entity_id, bool) or entity_id is None:
        raise InvalidKeyError(f"Invalid entity id: {entity_id!r}")
    text = str(entity_id)
    if not text or any(char.isspace() for char in text):
        raise InvalidKeyError(f"Invalid entity id: {entity_id!r}", key=text)
    return text


def _str_keys(value: Any) -> Any:
    """Recursively turn mapping keys into strings so they can be sorted."""
    if isinstance(value, Mapping):
        return {str(key): _str_keys(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_str_keys(item) for item in value]
    return value


def canonical_filters(filters: Optional[Mapping[str, Any]]) -> str:
    """
    Serialize a filter mapping so equal filters always give the same text.

    Keys are sorted and separators are compact, so {"a": 1, "b": 2} and
    {"b": 2, "a": 1} produce the same string. Keys are compared as text:
    {1: "x"} and {"1": "x"} name the same filter.
    """
    return json.dumps(
        _str_keys(dict(filters or {})),
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=True,
        default=str,
    )


@dataclass(frozen=True)
class CacheKey:
    """
    Immutable cache key value object.

    Enforces key naming conventions and provides validation.
    Keys are flat strings of the form ``<entity>_<params>``.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate cache key format."""
        if not isinstance(self.value, str):
            raise InvalidKeyError(
                f"Cache key must be a string, got {type(self.value).__name__}"
            )

        if not self.value:
            raise InvalidKeyError("Cache key cannot be empty", key=self.value)

        # Validate no whitespace in key
        if any(char.isspace() for char in self.value):
            raise InvalidKeyError("Cache key cannot contain whitespace", key=self.value)

    @classmethod
    def coerce(
        cls, key: Union[str, "CacheKey"], max_length: int = MAX_KEY_LENGTH
    ) -> "CacheKey":
        """Build a key from a string (or pass one through) and check its length."""
        cache_key = key if isinstance(key, CacheKey) else cls(key)
        if len(cache_key.value) > max_length:
            raise InvalidKeyError(
                f"Cache key too long (max {max_length} characters)",
                key=cache_key.value,
            )
        return cache_key

    # Categories

    @classmethod
    def categories(cls) -> "CacheKey":
        """All categories."""
        return cls("categories")

    @classmethod
    def categories_with_subs(cls) -> "CacheKey":
        """Categories with their subcategories embedded."""
        return cls("categories_with_subs")

    @classmethod
    def category(cls, category_id: EntityId) -> "CacheKey":
        """Single category."""
        return cls(f"category_{_id_part(category_id)}")

    # Brands

    @classmethod
    def brands(cls) -> "CacheKey":
        return cls("brands")

    @classmethod
    def brand(cls, brand_id: EntityId) -> "CacheKey":
        return cls(f"brand_{_id_part(brand_id)}")

    # Suppliers

    @classmethod
    def suppliers(cls) -> "CacheKey":
        """Distinct suppliers list."""
        return cls("unique_suppliers")

    @classmethod
    def supplier(cls, supplier_id: EntityId) -> "CacheKey":
        return cls(f"supplier_{_id_part(supplier_id)}")

    # Products

    @classmethod
    def products(
        cls,
        page: int,
        filters: Optional[Mapping[str, Any]] = None,
        max_length: int = MAX_KEY_LENGTH,
    ) -> "CacheKey":
        """
        One page of a filtered product listing.

        The filter part is the canonical JSON of the filters. When that text
        would make the key longer than ``max_length`` or contains whitespace
        it is replaced by ``#`` followed by its SHA-256 digest, shortened to
        fit ``max_length`` but never below 16 hex digits. Raw JSON always
        starts with ``{`` so the two forms never collide.
        """
        if isinstance(page, bool) or not isinstance(page, int) or page < 1:
            raise InvalidKeyError(f"Product page must be a positive integer: {page!r}")

        serialized = canonical_filters(filters)
        prefix = cls.products_page_prefix(page)
        if len(prefix) + len(serialized) > max_length or any(
            char.isspace() for char in serialized
        ):
            digest = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
            room = max(MIN_DIGEST_LENGTH, max_length - len(prefix) - 1)
            serialized = f"#{digest[:room]}"
        return cls.coerce(f"{prefix}{serialized}", max_length=max_length)

    @staticmethod
    def products_prefix() -> str:
        """Prefix shared by every product listing key."""
        return "products_"

    @staticmethod
    def products_page_prefix(page: int) -> str:
        """Prefix shared by every filter variant of one listing page."""
        return f"products_{page}_"

    @classmethod
    def product(cls, product_id: EntityId) -> "CacheKey":
        return cls(f"product_{_id_part(product_id)}")

    # Variants

    @classmethod
    def variants(cls, product_id: EntityId) -> "CacheKey":
        """All variants of one product."""
        return cls(f"variants_{_id_part(product_id)}")

    @classmethod
    def variant(cls, variant_id: EntityId) -> "CacheKey":
        return cls(f"variant_{_id_part(variant_id)}")

    # Merchandising

    @classmethod
    def banners(cls) -> "CacheKey":
        return cls("banners")

    @classmethod
    def carousels(cls) -> "CacheKey":
        return cls("carousels")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class TTL:
    """
    Time To Live value object for cache expiration.

    Provides type-safe TTL configuration with validation.
    """

    seconds: float

    def __post_init__(self) -> None:
        """Validate TTL value."""
        if isinstance(self.seconds, bool) or not isinstance(self.seconds, (int, float)):
            raise InvalidTTLError("TTL must be a number of seconds", ttl=self.seconds)
        if self.seconds <= 0:
            raise InvalidTTLError("TTL must be positive", ttl=self.seconds)
        if self.seconds > MAX_TTL_SECONDS * 365:
            raise InvalidTTLError("TTL too large (max 1 year)", ttl=self.seconds)

    @classmethod
    def coerce(
        cls, ttl: Union[int, float, "TTL"], max_seconds: Optional[float] = None
    ) -> "TTL":
        """Build a TTL from a number (or pass one through) and check the bound."""
        value = ttl if isinstance(ttl, TTL) else cls(ttl)
        if max_seconds is not None and value.seconds > max_seconds:
            raise InvalidTTLError(
                f"TTL too large (max {max_seconds}s)", ttl=value.seconds
            )
        return value

    @classmethod
    def from_seconds(cls, seconds: float) -> "TTL":
        """Create TTL from seconds."""
        return cls(seconds)

    @classmethod
    def minutes(cls, minutes: float) -> "TTL":
        """Create TTL from minutes."""
        return cls(minutes * 60)

    @classmethod
    def hours(cls, hours: float) -> "TTL":
        """Create TTL from hours."""
        return cls(hours * 3600)

    # Common TTL presets
    @classmethod
    def default(cls) -> "TTL":
        """Fallback TTL (5 minutes)."""
        return cls(DEFAULT_TTL_SECONDS)

    @classmethod
    def categories(cls) -> "TTL":
        """Category data TTL (2 minutes)."""
        return cls(CATEGORY_TTL_SECONDS)

    @classmethod
    def brands(cls) -> "TTL":
        """Brand data TTL (2 minutes)."""
        return cls(BRAND_TTL_SECONDS)

    @classmethod
    def suppliers(cls) -> "TTL":
        """Supplier data TTL (2 minutes)."""
        return cls(SUPPLIER_TTL_SECONDS)

    @classmethod
    def products(cls) -> "TTL":
        """Product listing TTL (5 minutes)."""
        return cls(PRODUCT_TTL_SECONDS)

    @classmethod
    def variants(cls) -> "TTL":
        """Variant data TTL (16 minutes)."""
        return cls(VARIANT_TTL_SECONDS)

    @classmethod
    def banners(cls) -> "TTL":
        return cls(BANNER_TTL_SECONDS)

    @classmethod
    def carousels(cls) -> "TTL":
        return cls(CAROUSEL_TTL_SECONDS)

    @property
    def milliseconds(self) -> float:
        return self.seconds * 1000

    def __str__(self) -> str:
        return f"{self.seconds:g}s"


@dataclass(frozen=True)
class CacheTag:
    """
    Cache tag value object for cache invalidation groups.

    Allows invalidating every entry derived from one entity type by tag.
    """

    value: str

    def __post_init__(self) -> None:
        """Validate tag value."""
        if not self.value:
            raise ValueError("Cache tag cannot be empty")
        if len(self.value) > 50:
            raise ValueError("Cache tag too long (max 50 characters)")
        if any(char.isspace() for char in self.value):
            raise ValueError("Cache tag cannot contain whitespace")

    @classmethod
    def entity(cls, entity_name: str) -> "CacheTag":
        """Create entity-type cache tag."""
        return cls(f"entity:{entity_name}")

    def __str__(self) -> str:
        return self.value


class CacheStatistics(BaseModel):
    """Point-in-time cache statistics for monitoring."""

    hits: int = Field(0, ge=0, description="Reads served from cache")
    misses: int = Field(0, ge=0, description="Reads that were not served from cache")
    coalesced: int = Field(
        0, ge=0, description="Misses that joined a fetch already in flight"
    )
    populations: int = Field(0, ge=0, description="Successful fetch-and-store cycles")
    fetch_errors: int = Field(0, ge=0, description="Fetcher failures and timeouts")
    invalidations: int = Field(0, ge=0, description="Entries removed by invalidation")
    size: int = Field(0, ge=0, description="Entries currently held, expired included")
    in_flight: int = Field(0, ge=0, description="Fetches currently running")

    @computed_field
    @property
    def hit_rate(self) -> float:
        """Share of reads answered without a fetch."""
        total = self.hits + self.misses
        if total == 0:
            return 0.0
        return self.hits / total
