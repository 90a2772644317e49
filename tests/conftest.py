"""Pytest configuration and shared fixtures for back-office cache tests."""

import sys
from pathlib import Path

import pytest

# Add project root to path for imports
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from backoffice.utils.cache import (  # noqa: E402
    CacheInvalidator,
    MemoryCache,
    ReadThroughCache,
    RedisCacheClient,
)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ============================================================================
# Cache Fixtures
# ============================================================================


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def memory_cache(clock):
    """MemoryCache driven by the fake clock."""
    return MemoryCache(default_ttl=5, clock=clock)


@pytest.fixture
def cache_client(memory_cache):
    """Cache client with no Redis connection, served by the memory store."""
    return RedisCacheClient(enabled=True, fallback=memory_cache)


@pytest.fixture
def read_through(cache_client):
    return ReadThroughCache(cache_client)


@pytest.fixture
def invalidator(cache_client):
    return CacheInvalidator(cache_client, enabled=True)
