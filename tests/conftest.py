"""Shared pytest fixtures for smart cache tests."""

import pytest

from smart_cache.config.settings import CacheSettings
from smart_cache.core.cache_engine import SmartCacheManager


class FakeClock:
    """Manually advanced clock in seconds."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def settings():
    """Settings with the background loop disabled so tests drive optimization."""
    return CacheSettings(auto_optimize=False)


@pytest.fixture
def manager(settings, clock):
    return SmartCacheManager(settings, clock=clock)
