"""
Main pytest configuration for all cache tests.

Fixtures, configuration, and utilities for unit tests.
"""

import os

import pytest

# Set test environment variables before importing package modules
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "DEBUG"
os.environ["CACHE_SWEEP_ENABLED"] = "false"

from storefront.core.config import Settings
from storefront.infrastructure.repositories.cache_repository import InMemoryCacheStore
from storefront.monitoring.cache_metrics import CacheMetricsCollector
from storefront.services.cache.cache_manager import CacheManager


class FakeClock:
    """Controllable epoch-millisecond clock for expiry tests."""

    def __init__(self, start_ms: float = 1_700_000_000_000.0):
        self.now_ms = start_ms

    def __call__(self) -> float:
        return self.now_ms

    def advance(self, seconds: float) -> None:
        self.now_ms += seconds * 1000


@pytest.fixture
def clock():
    """Provide a fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def test_settings():
    """Provide settings isolated from the process environment cache."""
    return Settings(ENVIRONMENT="test", CACHE_SWEEP_ENABLED=False)


@pytest.fixture
def store(clock):
    """Create in-memory store driven by the fake clock."""
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def metrics():
    """Create metrics collector with a private registry."""
    return CacheMetricsCollector()


@pytest.fixture
def cache_manager(store, test_settings, metrics):
    """Create cache manager over the fake-clock store."""
    return CacheManager(store=store, settings=test_settings, metrics=metrics)


# Test markers and configuration
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "concurrency: marks tests exercising concurrent fetch de-duplication"
    )
