"""
Catalog Data Stores

Per-entity read services for categories, brands, suppliers, products,
variants, banners and carousels. Every read goes through
CacheManager.get_or_populate with the entity's configured TTL, and every
mutation hook enumerates the keys the mutation makes stale.

Product listings embed category, brand and supplier names, so mutations
of those entities also clear every cached product page.
"""

from abc import ABC, abstractmethod
from typing import Any, List, Mapping, Optional, TypeVar

import structlog

from ...constants import (
    ENTITY_BANNER,
    ENTITY_BRAND,
    ENTITY_CAROUSEL,
    ENTITY_CATEGORY,
    ENTITY_PRODUCT,
    ENTITY_SUPPLIER,
    ENTITY_VARIANT,
)
from ...domain.cache.domain_services import InvalidationScope
from ...domain.cache.value_objects import CacheKey, CacheTag, EntityId, TTL
from ..cache.cache_manager import CacheManager, Fetcher
from .sources import (
    BannerSource,
    BrandSource,
    CarouselSource,
    CategorySource,
    ProductSource,
    Record,
    SupplierSource,
    VariantSource,
)

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CatalogStore(ABC):
    """
    Base class for cached entity reads and mutation invalidation.

    Subclasses set ``entity`` and implement ``_dependent_scopes``.
    """

    entity: str = ""

    def __init__(self, cache: CacheManager, ttl: Optional[float] = None):
        self.cache = cache
        self.ttl = TTL.coerce(
            ttl if ttl is not None else cache.settings.entity_ttl(self.entity)
        )
        self.tag = CacheTag.entity(self.entity)

    async def _read(self, key: CacheKey, fetcher: Fetcher[T]) -> T:
        return await self.cache.get_or_populate(
            key, self.ttl, fetcher, tags=[self.tag]
        )

    async def _refresh(self, key: CacheKey, fetcher: Fetcher[T]) -> T:
        return await self.cache.refresh(key, self.ttl, fetcher, tags=[self.tag])

    @abstractmethod
    def _dependent_scopes(
        self, entity_id: Optional[EntityId], **context: Any
    ) -> List[InvalidationScope]:
        """Scopes made stale by a mutation of entity_id."""

    def _invalidate(
        self, action: str, entity_id: Optional[EntityId], **context: Any
    ) -> int:
        scopes = self._dependent_scopes(entity_id, **context)
        count = self.cache.invalidate_scopes(scopes, reason=f"{self.entity}_{action}")
        logger.debug(
            "Catalog mutation invalidated cache",
            entity=self.entity,
            action=action,
            entity_id=entity_id,
            count=count,
        )
        return count

    def on_created(self, entity_id: Optional[EntityId] = None, **context: Any) -> int:
        """Invalidate after a create; returns entries removed."""
        return self._invalidate("created", entity_id, **context)

    def on_updated(self, entity_id: EntityId, **context: Any) -> int:
        """Invalidate after an update; returns entries removed."""
        return self._invalidate("updated", entity_id, **context)

    def on_deleted(self, entity_id: EntityId, **context: Any) -> int:
        """Invalidate after a delete; returns entries removed."""
        return self._invalidate("deleted", entity_id, **context)

    def invalidate_all(self) -> int:
        """Drop every entry this store populated."""
        return self.cache.invalidate_tag(self.tag, reason=f"{self.entity}_reset")


class CategoryStore(CatalogStore):
    """Cached category reads."""

    entity = ENTITY_CATEGORY

    def __init__(
        self, cache: CacheManager, source: CategorySource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_categories(self) -> List[Record]:
        return await self._read(CacheKey.categories(), self.source.fetch_categories)

    async def list_categories_with_subs(self) -> List[Record]:
        return await self._read(
            CacheKey.categories_with_subs(), self.source.fetch_categories_with_subs
        )

    async def get_category(self, category_id: EntityId) -> Optional[Record]:
        return await self._read(
            CacheKey.category(category_id),
            lambda: self.source.fetch_category(category_id),
        )

    async def refresh_categories(self) -> List[Record]:
        """Replace the cached category list with fresh data."""
        return await self._refresh(CacheKey.categories(), self.source.fetch_categories)

    def _dependent_scopes(self, entity_id, **context):
        scopes = [
            InvalidationScope.key(CacheKey.categories()),
            InvalidationScope.key(CacheKey.categories_with_subs()),
            InvalidationScope.prefix(CacheKey.products_prefix()),
        ]
        if entity_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.category(entity_id)))
        return scopes


class BrandStore(CatalogStore):
    """Cached brand reads."""

    entity = ENTITY_BRAND

    def __init__(
        self, cache: CacheManager, source: BrandSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_brands(self) -> List[Record]:
        return await self._read(CacheKey.brands(), self.source.fetch_brands)

    async def get_brand(self, brand_id: EntityId) -> Optional[Record]:
        return await self._read(
            CacheKey.brand(brand_id), lambda: self.source.fetch_brand(brand_id)
        )

    async def refresh_brands(self) -> List[Record]:
        return await self._refresh(CacheKey.brands(), self.source.fetch_brands)

    def _dependent_scopes(self, entity_id, **context):
        scopes = [
            InvalidationScope.key(CacheKey.brands()),
            InvalidationScope.prefix(CacheKey.products_prefix()),
        ]
        if entity_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.brand(entity_id)))
        return scopes


class SupplierStore(CatalogStore):
    """Cached supplier reads."""

    entity = ENTITY_SUPPLIER

    def __init__(
        self, cache: CacheManager, source: SupplierSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_suppliers(self) -> List[Record]:
        return await self._read(CacheKey.suppliers(), self.source.fetch_suppliers)

    async def get_supplier(self, supplier_id: EntityId) -> Optional[Record]:
        return await self._read(
            CacheKey.supplier(supplier_id),
            lambda: self.source.fetch_supplier(supplier_id),
        )

    async def refresh_suppliers(self) -> List[Record]:
        return await self._refresh(CacheKey.suppliers(), self.source.fetch_suppliers)

    def _dependent_scopes(self, entity_id, **context):
        scopes = [
            InvalidationScope.key(CacheKey.suppliers()),
            InvalidationScope.prefix(CacheKey.products_prefix()),
        ]
        if entity_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.supplier(entity_id)))
        return scopes


class ProductStore(CatalogStore):
    """Cached product pages and product details."""

    entity = ENTITY_PRODUCT

    def __init__(
        self, cache: CacheManager, source: ProductSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_products(
        self, page: int = 1, filters: Optional[Mapping[str, Any]] = None
    ) -> List[Record]:
        """One page of products; each page/filter combination is cached separately."""
        filters = dict(filters or {})
        key = CacheKey.products(
            page, filters, max_length=self.cache.settings.CACHE_MAX_KEY_LENGTH
        )
        return await self._read(
            key,
            lambda: self.source.fetch_products(page, filters),
        )

    async def get_product(self, product_id: EntityId) -> Optional[Record]:
        return await self._read(
            CacheKey.product(product_id),
            lambda: self.source.fetch_product(product_id),
        )

    def invalidate_page(self, page: int) -> int:
        """Drop every filter variant of one listing page."""
        return self.cache.invalidate_prefix(
            CacheKey.products_page_prefix(page), reason="product_page"
        )

    def _dependent_scopes(self, entity_id, **context):
        scopes = [InvalidationScope.prefix(CacheKey.products_prefix())]
        if entity_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.product(entity_id)))
            scopes.append(InvalidationScope.key(CacheKey.variants(entity_id)))
        return scopes


class VariantStore(CatalogStore):
    """Cached product variant reads."""

    entity = ENTITY_VARIANT

    def __init__(
        self, cache: CacheManager, source: VariantSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_variants(self, product_id: EntityId) -> List[Record]:
        return await self._read(
            CacheKey.variants(product_id),
            lambda: self.source.fetch_variants(product_id),
        )

    async def get_variant(self, variant_id: EntityId) -> Optional[Record]:
        return await self._read(
            CacheKey.variant(variant_id),
            lambda: self.source.fetch_variant(variant_id),
        )

    def _dependent_scopes(self, entity_id, product_id=None, **context):
        """Variant mutations pass ``product_id`` so the parent's list is cleared too."""
        scopes = []
        if entity_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.variant(entity_id)))
        if product_id is not None:
            scopes.append(InvalidationScope.key(CacheKey.variants(product_id)))
            scopes.append(InvalidationScope.key(CacheKey.product(product_id)))
        else:
            # Parent unknown, so every variant list may be stale
            scopes.append(InvalidationScope.prefix("variants_"))
        return scopes


class BannerStore(CatalogStore):
    entity = ENTITY_BANNER

    def __init__(
        self, cache: CacheManager, source: BannerSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_banners(self) -> List[Record]:
        return await self._read(CacheKey.banners(), self.source.fetch_banners)

    def _dependent_scopes(self, entity_id, **context):
        return [InvalidationScope.key(CacheKey.banners())]


class CarouselStore(CatalogStore):
    entity = ENTITY_CAROUSEL

    def __init__(
        self, cache: CacheManager, source: CarouselSource, ttl: Optional[float] = None
    ):
        super().__init__(cache, ttl)
        self.source = source

    async def list_carousels(self) -> List[Record]:
        return await self._read(CacheKey.carousels(), self.source.fetch_carousels)

    def _dependent_scopes(self, entity_id, **context):
        return [InvalidationScope.key(CacheKey.carousels())]
