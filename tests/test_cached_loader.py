"""
Test module for smart_cache.services.cached_loader
"""

from unittest.mock import AsyncMock, Mock

import pytest

from smart_cache.core.errors import FetchError
from smart_cache.core.retry import RetryConfig
from smart_cache.services.cached_loader import CachedLoader

NO_DELAY = RetryConfig(max_attempts=3, base_delay=0, jitter=False)


@pytest.fixture
def loader(manager):
    return CachedLoader(manager, "users", retry_config=NO_DELAY)


class TestCachedLoader:
    """Test cases for CachedLoader."""

    @pytest.mark.asyncio
    async def test_fetches_once_then_serves_cache(self, loader, manager):
        fetch = AsyncMock(return_value={"id": 1, "role": "admin"})

        first = await loader.get("123", fetch)
        second = await loader.get("123", fetch)

        assert first == second == {"id": 1, "role": "admin"}
        fetch.assert_awaited_once()
        assert manager.counters.misses == 1
        assert manager.counters.hits == 1

    @pytest.mark.asyncio
    async def test_sync_fetch_supported(self, loader):
        fetch = Mock(return_value="value")
        assert await loader.get("k", fetch) == "value"
        assert await loader.get("k", fetch) == "value"
        fetch.assert_called_once()

    @pytest.mark.asyncio
    async def test_none_result_not_cached(self, loader, manager):
        fetch = AsyncMock(return_value=None)
        assert await loader.get("k", fetch) is None
        assert await loader.get("k", fetch) is None
        assert fetch.await_count == 2
        assert manager.size("users") == 0

    @pytest.mark.asyncio
    async def test_flaky_fetch_retried(self, loader):
        fetch = AsyncMock(side_effect=[ConnectionError("quota"), {"id": 7}])
        assert await loader.get("k", fetch) == {"id": 7}
        assert fetch.await_count == 2

    @pytest.mark.asyncio
    async def test_fetch_error_after_attempts(self, loader, manager):
        fetch = AsyncMock(side_effect=ConnectionError("down"))
        with pytest.raises(FetchError) as exc_info:
            await loader.get("k", fetch)
        assert isinstance(exc_info.value.__cause__, ConnectionError)
        assert fetch.await_count == 3
        assert manager.size("users") == 0

    @pytest.mark.asyncio
    async def test_explicit_ttl_used(self, manager):
        loader = CachedLoader(manager, "sessions", retry_config=NO_DELAY, ttl=1800)
        await loader.get("s1", AsyncMock(return_value="session"))
        assert manager.get_cache("sessions")["s1"].ttl == 1800

    def test_put_and_invalidate(self, loader, manager):
        loader.put("k", {"a": 1})
        assert manager.get("users", "k") == {"a": 1}
        assert loader.invalidate("k") is True
        assert loader.invalidate("k") is False
        assert manager.get("users", "k") is None

    def test_update_merges_dicts(self, loader, manager):
        loader.put("k", {"balance": 10, "language": "en"})
        assert loader.update("k", {"balance": 25}) is True
        assert manager.get("users", "k") == {"balance": 25, "language": "en"}

    def test_update_rejects_non_dicts(self, loader, manager):
        loader.put("k", 5)
        with pytest.raises(TypeError):
            loader.update("k", {"value": 6})
        assert manager.get("users", "k") == 5

    def test_update_does_not_count_as_hit(self, loader, manager):
        loader.put("k", {"balance": 10})
        loader.update("k", {"balance": 11})
        assert manager.counters.hits == 0
        assert manager.counters.misses == 0
        assert manager.get_cache("users")["k"].access_count == 0

    def test_update_skips_uncached(self, loader, manager):
        assert loader.update("k", {"balance": 1}) is False
        assert manager.size("users") == 0
