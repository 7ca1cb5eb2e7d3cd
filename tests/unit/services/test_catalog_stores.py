"""
Unit tests for catalog data stores.

Sources are mocked; the tests check what is cached under which key and
which entries each mutation hook clears.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from storefront.core.config import Settings
from storefront.domain.cache.value_objects import CacheKey, TTL
from storefront.services.cache.cache_manager import CacheManager
from storefront.services.catalog import (
    BannerSource,
    BannerStore,
    BrandSource,
    BrandStore,
    CarouselSource,
    CarouselStore,
    CatalogStore,
    CategorySource,
    CategoryStore,
    ProductSource,
    ProductStore,
    SupplierSource,
    SupplierStore,
    VariantSource,
    VariantStore,
)


@pytest.fixture
def category_source():
    source = AsyncMock(spec=CategorySource)
    source.fetch_categories.return_value = [{"id": 1, "name": "Phones"}]
    source.fetch_categories_with_subs.return_value = [
        {"id": 1, "name": "Phones", "subs": [{"id": 2, "name": "Android"}]}
    ]
    source.fetch_category.side_effect = lambda category_id: {"id": category_id}
    return source


@pytest.fixture
def product_source():
    source = AsyncMock(spec=ProductSource)
    source.fetch_products.side_effect = lambda page, filters: [
        {"page": page, "filters": filters}
    ]
    source.fetch_product.side_effect = lambda product_id: {"id": product_id}
    return source


@pytest.fixture
def variant_source():
    source = AsyncMock(spec=VariantSource)
    source.fetch_variants.side_effect = lambda product_id: [{"product_id": product_id}]
    source.fetch_variant.side_effect = lambda variant_id: {"id": variant_id}
    return source


class TestCatalogStore:
    """Test the CatalogStore base class."""

    def test_base_class_is_abstract(self, cache_manager):
        with pytest.raises(TypeError):
            CatalogStore(cache_manager)


class TestCategoryStore:
    """Test CategoryStore reads and invalidation."""

    def test_ttl_from_settings(self, cache_manager, category_source):
        store = CategoryStore(cache_manager, category_source)

        assert store.ttl == TTL(120)
        assert store.tag.value == "entity:category"

    def test_ttl_override(self, cache_manager, category_source):
        assert CategoryStore(cache_manager, category_source, ttl=30).ttl == TTL(30)

    @pytest.mark.asyncio
    async def test_list_categories_cached(self, cache_manager, category_source):
        """Test the list is fetched once and served from cache afterwards."""
        store = CategoryStore(cache_manager, category_source)

        first = await store.list_categories()
        second = await store.list_categories()

        assert first == second == [{"id": 1, "name": "Phones"}]
        category_source.fetch_categories.assert_awaited_once()
        assert cache_manager.contains("categories")

    @pytest.mark.asyncio
    async def test_get_category_expires(self, cache_manager, category_source, clock):
        """Test a single category is refetched after its TTL."""
        store = CategoryStore(cache_manager, category_source)

        assert await store.get_category(5) == {"id": 5}
        clock.advance(60)
        await store.get_category(5)
        assert category_source.fetch_category.await_count == 1

        clock.advance(61)
        await store.get_category(5)
        assert category_source.fetch_category.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.concurrency
    async def test_concurrent_reads_share_fetch(self, cache_manager, category_source):
        store = CategoryStore(cache_manager, category_source)

        results = await asyncio.gather(*(store.list_categories() for _ in range(5)))

        assert len(results) == 5
        category_source.fetch_categories.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_on_updated_clears_dependents(
        self, cache_manager, category_source, product_source
    ):
        """Test a category update clears its lists, its detail and product pages."""
        categories = CategoryStore(cache_manager, category_source)
        products = ProductStore(cache_manager, product_source)

        await categories.list_categories()
        await categories.list_categories_with_subs()
        await categories.get_category(5)
        await categories.get_category(6)
        await products.list_products(1)
        await products.list_products(2, {"category": 5})

        assert categories.on_updated(5) == 5

        assert not cache_manager.contains("categories")
        assert not cache_manager.contains("categories_with_subs")
        assert not cache_manager.contains("category_5")
        assert cache_manager.contains("category_6")
        assert not cache_manager.contains(CacheKey.products(1))

        await categories.list_categories()
        assert category_source.fetch_categories.await_count == 2

    @pytest.mark.asyncio
    async def test_on_created_without_id(self, cache_manager, category_source):
        store = CategoryStore(cache_manager, category_source)
        await store.list_categories()
        await store.get_category(1)

        assert store.on_created() == 1
        assert cache_manager.contains("category_1")

    @pytest.mark.asyncio
    async def test_refresh_categories(self, cache_manager, category_source):
        store = CategoryStore(cache_manager, category_source)
        await store.list_categories()

        category_source.fetch_categories.return_value = [{"id": 1}, {"id": 2}]
        assert await store.refresh_categories() == [{"id": 1}, {"id": 2}]
        assert await store.list_categories() == [{"id": 1}, {"id": 2}]

    @pytest.mark.asyncio
    async def test_invalidate_all_uses_tag(self, cache_manager, category_source):
        """Test invalidate_all drops only this entity's entries."""
        store = CategoryStore(cache_manager, category_source)
        await store.list_categories()
        await store.get_category(1)
        cache_manager.set("brands", ["acme"], 120)

        assert store.invalidate_all() == 2
        assert cache_manager.contains("brands")


class TestBrandAndSupplierStores:
    """Test BrandStore and SupplierStore."""

    @pytest.mark.asyncio
    async def test_brand_reads_and_delete(self, cache_manager, product_source):
        source = AsyncMock(spec=BrandSource)
        source.fetch_brands.return_value = [{"id": 3, "name": "Acme"}]
        source.fetch_brand.return_value = {"id": 3, "name": "Acme"}
        brands = BrandStore(cache_manager, source)
        products = ProductStore(cache_manager, product_source)

        await brands.list_brands()
        await brands.get_brand(3)
        await products.list_products(1, {"brand": 3})

        assert brands.on_deleted(3) == 3
        assert not cache_manager.contains("brands")
        assert not cache_manager.contains("brand_3")

    @pytest.mark.asyncio
    async def test_refresh_brands(self, cache_manager):
        source = AsyncMock(spec=BrandSource)
        source.fetch_brands.return_value = ["old"]
        store = BrandStore(cache_manager, source)
        await store.list_brands()

        source.fetch_brands.return_value = ["new"]
        assert await store.refresh_brands() == ["new"]

    @pytest.mark.asyncio
    async def test_supplier_reads_and_update(self, cache_manager):
        source = AsyncMock(spec=SupplierSource)
        source.fetch_suppliers.return_value = [{"id": 9}]
        source.fetch_supplier.return_value = {"id": 9}
        store = SupplierStore(cache_manager, source)

        assert await store.list_suppliers() == [{"id": 9}]
        assert await store.get_supplier(9) == {"id": 9}
        assert cache_manager.contains("unique_suppliers")

        assert store.on_updated(9) == 2
        assert not cache_manager.contains("supplier_9")

        source.fetch_suppliers.return_value = [{"id": 9}, {"id": 10}]
        assert await store.refresh_suppliers() == [{"id": 9}, {"id": 10}]


class TestProductStore:
    """Test ProductStore page caching and invalidation."""

    @pytest.mark.asyncio
    async def test_short_key_limit_uses_digest(self, store, metrics, product_source):
        """Test listings stay cacheable under a lower configured key limit."""
        settings = Settings(
            ENVIRONMENT="test", CACHE_SWEEP_ENABLED=False, CACHE_MAX_KEY_LENGTH=64
        )
        cache = CacheManager(store=store, settings=settings, metrics=metrics)
        products = ProductStore(cache, product_source)
        filters = {"category": "laptops", "brand": "lenovo", "min_price": 100}

        first = await products.list_products(1, filters)
        second = await products.list_products(1, filters)

        assert first == second == [{"page": 1, "filters": filters}]
        product_source.fetch_products.assert_awaited_once()
        (key,) = store.keys()
        assert key.startswith("products_1_#")
        assert len(key) <= 64

        assert products.on_updated(42) == 1

    @pytest.mark.asyncio
    async def test_pages_cached_by_filters(self, cache_manager, product_source):
        """Test equal filters hit one entry and different filters do not."""
        store = ProductStore(cache_manager, product_source)

        await store.list_products(1, {"brand": "acme", "sort": "price"})
        await store.list_products(1, {"sort": "price", "brand": "acme"})
        await store.list_products(1, {"brand": "other"})
        await store.list_products(2)

        assert product_source.fetch_products.await_count == 3
        assert store.ttl == TTL(300)

    @pytest.mark.asyncio
    async def test_product_mutation_clears_pages(self, cache_manager, product_source):
        store = ProductStore(cache_manager, product_source)
        await store.list_products(1)
        await store.list_products(2, {"brand": "acme"})
        await store.get_product(42)
        await store.get_product(43)
        cache_manager.set(CacheKey.variants(42), [{"id": 7}], 960)

        assert store.on_updated(42) == 4
        assert cache_manager.contains("product_43")

    @pytest.mark.asyncio
    async def test_invalidate_page(self, cache_manager, product_source):
        """Test one page is dropped without touching pages sharing its digits."""
        store = ProductStore(cache_manager, product_source)
        await store.list_products(1)
        await store.list_products(1, {"brand": "acme"})
        await store.list_products(10)

        assert store.invalidate_page(1) == 2
        assert cache_manager.contains(CacheKey.products(10))


class TestVariantStore:
    """Test VariantStore invalidation with and without the parent product."""

    @pytest.mark.asyncio
    async def test_update_with_parent(self, cache_manager, variant_source):
        store = VariantStore(cache_manager, variant_source)
        await store.list_variants(42)
        await store.list_variants(43)
        await store.get_variant(7)
        cache_manager.set(CacheKey.product(42), {"id": 42}, 300)

        assert store.on_updated(7, product_id=42) == 3
        assert cache_manager.contains("variants_43")

    @pytest.mark.asyncio
    async def test_update_without_parent(self, cache_manager, variant_source):
        store = VariantStore(cache_manager, variant_source)
        await store.list_variants(42)
        await store.list_variants(43)
        await store.get_variant(7)

        assert store.on_updated(7) == 3
        assert store.ttl == TTL(960)


class TestMerchandisingStores:
    """Test BannerStore and CarouselStore."""

    @pytest.mark.asyncio
    async def test_banners(self, cache_manager):
        source = AsyncMock(spec=BannerSource)
        source.fetch_banners.return_value = [{"id": 1}]
        store = BannerStore(cache_manager, source)

        await store.list_banners()
        await store.list_banners()
        source.fetch_banners.assert_awaited_once()

        assert store.on_created() == 1
        assert not cache_manager.contains("banners")

    @pytest.mark.asyncio
    async def test_carousels(self, cache_manager):
        source = AsyncMock(spec=CarouselSource)
        source.fetch_carousels.return_value = [{"id": 1}]
        store = CarouselStore(cache_manager, source)

        assert await store.list_carousels() == [{"id": 1}]
        assert store.on_deleted(1) == 1
