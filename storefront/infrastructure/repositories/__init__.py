from .cache_repository import InMemoryCacheStore

__all__ = ["InMemoryCacheStore"]
