"""
Storefront Cache Configuration

Configuration management with environment variable support.
Implements validated defaults for cache TTLs, timeouts and logging.
"""

from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..constants import (
    BANNER_TTL_SECONDS,
    BRAND_TTL_SECONDS,
    CAROUSEL_TTL_SECONDS,
    CATEGORY_TTL_SECONDS,
    DEFAULT_TTL_SECONDS,
    ENTITY_BANNER,
    ENTITY_BRAND,
    ENTITY_CAROUSEL,
    ENTITY_CATEGORY,
    ENTITY_PRODUCT,
    ENTITY_SUPPLIER,
    ENTITY_VARIANT,
    MAX_KEY_LENGTH,
    MAX_TTL_SECONDS,
    PRODUCT_TTL_SECONDS,
    SUPPLIER_TTL_SECONDS,
    VARIANT_TTL_SECONDS,
)

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    """Cache settings with validation and safe defaults."""

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=True, extra="ignore"
    )

    # Environment settings
    ENVIRONMENT: str = Field(
        default="development", description="Application environment"
    )

    # Logging
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(
        default=False, description="Render log events as JSON instead of console"
    )

    # Cache store
    CACHE_DEFAULT_TTL_SECONDS: int = Field(
        default=DEFAULT_TTL_SECONDS,
        ge=1,
        description="TTL applied when a caller does not pass one",
    )
    CACHE_MAX_TTL_SECONDS: int = Field(
        default=MAX_TTL_SECONDS, ge=1, description="Largest accepted TTL in seconds"
    )
    CACHE_MAX_KEY_LENGTH: int = Field(
        default=MAX_KEY_LENGTH, ge=16, le=4096, description="Longest accepted cache key"
    )
    CACHE_FETCH_TIMEOUT_SECONDS: Optional[float] = Field(
        default=None,
        gt=0,
        description="Default fetcher timeout in seconds (unset waits forever)",
    )

    # Background sweeping
    CACHE_SWEEP_ENABLED: bool = Field(
        default=True, description="Allow the background expiry sweeper to run"
    )
    CACHE_SWEEP_INTERVAL_SECONDS: float = Field(
        default=60.0, gt=0, le=3600, description="Seconds between expiry sweeps"
    )

    # Per-entity TTLs
    CACHE_TTL_CATEGORIES: int = Field(default=CATEGORY_TTL_SECONDS, ge=1)
    CACHE_TTL_BRANDS: int = Field(default=BRAND_TTL_SECONDS, ge=1)
    CACHE_TTL_SUPPLIERS: int = Field(default=SUPPLIER_TTL_SECONDS, ge=1)
    CACHE_TTL_PRODUCTS: int = Field(default=PRODUCT_TTL_SECONDS, ge=1)
    CACHE_TTL_VARIANTS: int = Field(default=VARIANT_TTL_SECONDS, ge=1)
    CACHE_TTL_BANNERS: int = Field(default=BANNER_TTL_SECONDS, ge=1)
    CACHE_TTL_CAROUSELS: int = Field(default=CAROUSEL_TTL_SECONDS, ge=1)

    @field_validator("ENVIRONMENT")
    @classmethod
    def validate_environment(cls, v):
        """Validate environment value."""
        allowed = ["development", "test", "staging", "production"]
        if v not in allowed:
            raise ValueError(f"ENVIRONMENT must be one of: {allowed}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level."""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"LOG_LEVEL must be one of: {allowed}")
        return v.upper()

    @model_validator(mode="after")
    def validate_ttl_bounds(self) -> "Settings":
        """Every configured TTL must fit under CACHE_MAX_TTL_SECONDS."""
        limit = self.CACHE_MAX_TTL_SECONDS
        for name in (
            "CACHE_DEFAULT_TTL_SECONDS",
            "CACHE_TTL_CATEGORIES",
            "CACHE_TTL_BRANDS",
            "CACHE_TTL_SUPPLIERS",
            "CACHE_TTL_PRODUCTS",
            "CACHE_TTL_VARIANTS",
            "CACHE_TTL_BANNERS",
            "CACHE_TTL_CAROUSELS",
        ):
            if getattr(self, name) > limit:
                raise ValueError(
                    f"{name} exceeds CACHE_MAX_TTL_SECONDS ({limit}s)"
                )
        return self

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.ENVIRONMENT == "development"

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.ENVIRONMENT == "production"

    def entity_ttl(self, entity: str) -> int:
        """Get configured TTL in seconds for a catalog entity."""
        ttls = {
            ENTITY_CATEGORY: self.CACHE_TTL_CATEGORIES,
            ENTITY_BRAND: self.CACHE_TTL_BRANDS,
            ENTITY_SUPPLIER: self.CACHE_TTL_SUPPLIERS,
            ENTITY_PRODUCT: self.CACHE_TTL_PRODUCTS,
            ENTITY_VARIANT: self.CACHE_TTL_VARIANTS,
            ENTITY_BANNER: self.CACHE_TTL_BANNERS,
            ENTITY_CAROUSEL: self.CACHE_TTL_CAROUSELS,
        }
        return ttls.get(entity, self.CACHE_DEFAULT_TTL_SECONDS)


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
