"""
Storefront Cache

In-process data-fetching cache for the storefront and admin dashboard.
Sits between state containers and server actions for categories, brands,
suppliers, products, variants, banners and carousels.
"""

from .constants import APP_NAME, APP_VERSION

__version__ = APP_VERSION

__all__ = ["APP_NAME", "APP_VERSION", "__version__"]
