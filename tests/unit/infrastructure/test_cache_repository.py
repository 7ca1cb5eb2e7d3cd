"""
Unit tests for the in-memory cache store.
"""

import pytest

from storefront.domain.cache.exceptions import InvalidKeyError, InvalidTTLError
from storefront.domain.cache.repository_interfaces import CacheStore
from storefront.domain.cache.value_objects import CacheTag
from storefront.infrastructure.repositories.cache_repository import InMemoryCacheStore


class TestInMemoryCacheStore:
    """Test InMemoryCacheStore."""

    def test_implements_interface(self, store):
        assert isinstance(store, CacheStore)

    def test_set_and_get(self, store, clock):
        """Test stored entry carries value and absolute expiry."""
        entry = store.set("category_5", {"id": 5}, 120)

        assert store.has("category_5")
        assert store.get("category_5") is entry
        assert entry.value == {"id": 5}
        assert entry.expiry == clock() + 120_000

    def test_get_absent(self, store):
        assert store.get("missing") is None
        assert not store.has("missing")

    def test_get_non_string_key_misses(self, store):
        assert store.get(None) is None
        assert store.get(42) is None

    def test_has_non_string_key(self, store):
        """Test unhashable or non-string keys report absent instead of raising."""
        store.set("k", "v", 60)

        assert store.has(None) is False
        assert store.has(["k"]) is False
        assert store.has({"k": 1}) is False

    def test_set_overwrites(self, store):
        store.set("k", "first", 60)
        store.set("k", "second", 60)

        assert store.get("k").value == "second"
        assert len(store) == 1

    def test_set_validates_key_and_ttl(self, store):
        with pytest.raises(InvalidKeyError):
            store.set("", "v", 60)
        with pytest.raises(InvalidTTLError):
            store.set("k", "v", 0)

    def test_has_ignores_expiry(self, store, clock):
        """Test raw reads report expired entries until they are removed."""
        store.set("k", "v", 1)
        clock.advance(2)

        assert store.has("k")
        assert store.get("k") is not None

    def test_lookup_removes_expired(self, store, clock):
        """Test expiry-aware read deletes stale entries."""
        store.set("k", "v", 1)
        assert store.lookup("k").value == "v"

        clock.advance(1)

        assert store.lookup("k") is None
        assert not store.has("k")

    def test_delete(self, store):
        store.set("k", "v", 60)

        assert store.delete("k") is True
        assert store.delete("k") is False
        assert store.delete(None) is False

    def test_keys_snapshot(self, store):
        store.set("a", 1, 60)
        store.set("b", 2, 60)

        keys = store.keys()
        store.delete("a")

        assert sorted(keys) == ["a", "b"]

    def test_tag_index(self, store):
        """Test tag index follows overwrites and deletes."""
        category = CacheTag.entity("category")
        brand = CacheTag.entity("brand")

        store.set("category_1", 1, 60, tags=[category])
        store.set("category_2", 2, 60, tags=[category])
        assert store.keys_with_tag(category) == ["category_1", "category_2"]

        store.set("category_2", 2, 60, tags=[brand])
        assert store.keys_with_tag(category) == ["category_1"]
        assert store.keys_with_tag(brand) == ["category_2"]

        store.delete("category_1")
        assert store.keys_with_tag(category) == []

    def test_sweep_expired(self, store, clock):
        store.set("short", 1, 10)
        store.set("long", 2, 100)
        clock.advance(50)

        assert store.sweep_expired() == 1
        assert store.keys() == ["long"]

    def test_clear(self, store):
        store.set("a", 1, 60, tags=[CacheTag.entity("brand")])
        store.set("b", 2, 60)

        assert store.clear() == 2
        assert len(store) == 0
        assert store.keys_with_tag(CacheTag.entity("brand")) == []

    def test_default_clock_is_wall_time(self):
        store = InMemoryCacheStore()
        entry = store.set("k", "v", 60)

        assert entry.expiry - entry.created_at == pytest.approx(60_000)
        assert store.lookup("k") is entry

    def test_instances_are_independent(self, clock):
        first = InMemoryCacheStore(clock=clock)
        second = InMemoryCacheStore(clock=clock)

        first.set("k", "v", 60)

        assert second.get("k") is None
