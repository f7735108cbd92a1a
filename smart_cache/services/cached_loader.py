"""Read-through wrapper used by service code in front of the backing store."""
import inspect
from typing import Any, Awaitable, Callable, Dict, Optional, Union

import structlog

from smart_cache.core.cache_engine import MISSING, SmartCacheManager
from smart_cache.core.retry import RetryConfig, with_retry

logger = structlog.get_logger(__name__)

Fetch = Callable[[], Union[Any, Awaitable[Any]]]


class CachedLoader:
    """Serves one named cache, fetching from the source of truth on a miss.

    Concurrent misses on the same key each fetch independently; the last
    write wins.
    """

    def __init__(
        self,
        manager: SmartCacheManager,
        cache_name: str,
        retry_config: Optional[RetryConfig] = None,
        ttl: Optional[float] = None
    ):
        self.manager = manager
        self.cache_name = cache_name
        self.retry_config = retry_config or RetryConfig()
        self.ttl = ttl

    async def get(self, key: str, fetch: Fetch) -> Any:
        """Return the cached value, or fetch, cache and return it.

        ``None`` results are returned but not cached, so a record that does
        not exist yet is looked up again next time.
        """
        value = self.manager.get(self.cache_name, key, MISSING)
        if value is not MISSING:
            return value

        logger.debug("Cache miss, fetching from source", cache=self.cache_name, key=key)

        @with_retry(self.retry_config)
        async def _fetch() -> Any:
            result = fetch()
            if inspect.isawaitable(result):
                result = await result
            return result

        value = await _fetch()
        if value is not None:
            self.manager.set(self.cache_name, key, value, self.ttl)
        return value

    def put(self, key: str, value: Any) -> None:
        """Write a freshly created or updated record through to the cache."""
        self.manager.set(self.cache_name, key, value, self.ttl)

    def update(self, key: str, changes: Dict[str, Any]) -> bool:
        """Merge changes into a live cached record; no-op when not cached.

        Reads the entry directly so the write does not count as a hit.
        """
        if not self.manager.contains(self.cache_name, key):
            return False

        current = self.manager.get_cache(self.cache_name)[key].value
        if not isinstance(current, dict):
            raise TypeError(
                f"Cannot merge changes into cached {type(current).__name__} for key {key!r}"
            )
        self.manager.set(self.cache_name, key, {**current, **changes}, self.ttl)
        return True

    def invalidate(self, key: str) -> bool:
        """Force the next ``get`` to go to the source of truth."""
        removed = self.manager.delete(self.cache_name, key)
        if removed:
            logger.debug("Cache entry invalidated", cache=self.cache_name, key=key)
        return removed
