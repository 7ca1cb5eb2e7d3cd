"""
Catalog Data Stores Module

Cached read services and mutation invalidation hooks for catalog entities.
"""

from .sources import (
    BannerSource,
    BrandSource,
    CarouselSource,
    CategorySource,
    ProductSource,
    SupplierSource,
    VariantSource,
)
from .stores import (
    BannerStore,
    BrandStore,
    CarouselStore,
    CatalogStore,
    CategoryStore,
    ProductStore,
    SupplierStore,
    VariantStore,
)

__all__ = [
    "BannerSource",
    "BrandSource",
    "CarouselSource",
    "CategorySource",
    "ProductSource",
    "SupplierSource",
    "VariantSource",
    "BannerStore",
    "BrandStore",
    "CarouselStore",
    "CatalogStore",
    "CategoryStore",
    "ProductStore",
    "SupplierStore",
    "VariantStore",
]
