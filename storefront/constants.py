"""
Storefront Cache Global Constants

Centralized location for time units, entity names and TTL defaults
used across the cache layer.
"""

import time

# Application Constants
APP_NAME = "Storefront Cache"
APP_VERSION = "1.0.0"

# Time units in seconds
SECOND = 1
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR

# Entity names, also used as cache tags
ENTITY_CATEGORY = "category"
ENTITY_BRAND = "brand"
ENTITY_SUPPLIER = "supplier"
ENTITY_PRODUCT = "product"
ENTITY_VARIANT = "variant"
ENTITY_BANNER = "banner"
ENTITY_CAROUSEL = "carousel"

CATALOG_ENTITIES = (
    ENTITY_CATEGORY,
    ENTITY_BRAND,
    ENTITY_SUPPLIER,
    ENTITY_PRODUCT,
    ENTITY_VARIANT,
    ENTITY_BANNER,
    ENTITY_CAROUSEL,
)

# Default TTLs observed per entity volatility
DEFAULT_TTL_SECONDS = 5 * MINUTE
CATEGORY_TTL_SECONDS = 2 * MINUTE
BRAND_TTL_SECONDS = 2 * MINUTE
SUPPLIER_TTL_SECONDS = 2 * MINUTE
BANNER_TTL_SECONDS = 2 * MINUTE
CAROUSEL_TTL_SECONDS = 2 * MINUTE
PRODUCT_TTL_SECONDS = 5 * MINUTE
VARIANT_TTL_SECONDS = 16 * MINUTE

MAX_TTL_SECONDS = DAY
MAX_KEY_LENGTH = 250


# Timestamp Functions
def now_ms() -> float:
    """Get current wall-clock time in milliseconds since epoch.

    Note: Cache expiry timestamps are absolute epoch milliseconds.
    """
    return time.time() * 1000
