from .cache_manager import CacheManager
from .sweeper import CacheSweeper

__all__ = ["CacheManager", "CacheSweeper"]
