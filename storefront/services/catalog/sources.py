"""
Catalog Data Source Interfaces

Abstract contracts for the server actions that load authoritative
catalog data. Implementations talk to the database or API routes; the
cache layer only ever calls these read methods on a miss.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from ...domain.cache.value_objects import EntityId

Record = Dict[str, Any]


class CategorySource(ABC):
    """Reads categories and their subcategory trees."""

    @abstractmethod
    async def fetch_categories(self) -> List[Record]:
        """Fetch all categories."""
        pass

    @abstractmethod
    async def fetch_categories_with_subs(self) -> List[Record]:
        """Fetch categories with subcategories embedded."""
        pass

    @abstractmethod
    async def fetch_category(self, category_id: EntityId) -> Optional[Record]:
        """Fetch one category, None if it does not exist."""
        pass


class BrandSource(ABC):
    """Reads brands."""

    @abstractmethod
    async def fetch_brands(self) -> List[Record]:
        pass

    @abstractmethod
    async def fetch_brand(self, brand_id: EntityId) -> Optional[Record]:
        pass


class SupplierSource(ABC):
    """Reads suppliers."""

    @abstractmethod
    async def fetch_suppliers(self) -> List[Record]:
        """Fetch distinct suppliers."""
        pass

    @abstractmethod
    async def fetch_supplier(self, supplier_id: EntityId) -> Optional[Record]:
        pass


class ProductSource(ABC):
    """Reads products and paginated, filtered product listings."""

    @abstractmethod
    async def fetch_products(
        self, page: int, filters: Mapping[str, Any]
    ) -> List[Record]:
        """Fetch one page of products matching filters."""
        pass

    @abstractmethod
    async def fetch_product(self, product_id: EntityId) -> Optional[Record]:
        pass


class VariantSource(ABC):
    """Reads product variants."""

    @abstractmethod
    async def fetch_variants(self, product_id: EntityId) -> List[Record]:
        """Fetch every variant of one product."""
        pass

    @abstractmethod
    async def fetch_variant(self, variant_id: EntityId) -> Optional[Record]:
        pass


class BannerSource(ABC):
    @abstractmethod
    async def fetch_banners(self) -> List[Record]:
        pass


class CarouselSource(ABC):
    @abstractmethod
    async def fetch_carousels(self) -> List[Record]:
        pass
