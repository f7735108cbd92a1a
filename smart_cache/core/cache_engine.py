"""Core cache engine: named in-process TTL stores behind one manager."""
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

import structlog

from smart_cache.config.settings import CacheSettings
from smart_cache.metrics.collector import CacheMetrics, MetricsCollector
from smart_cache.metrics.stats import StatsReporter
from .access_tracker import AccessPatternTracker
from .errors import InvalidTTLError
from .optimizer import OptimizationReport, PeriodicOptimizer
from .ttl_optimizer import TTLOptimizer

logger = structlog.get_logger(__name__)


class _Missing:
    """Absence marker for caches that legitimately store None."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


@dataclass
class CacheEntry:
    """A cached value with its TTL and access metadata."""
    value: Any
    inserted_at: float
    ttl: float
    access_count: int = 0
    last_accessed_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now - self.inserted_at > self.ttl

    def touch(self, now: float) -> None:
        self.access_count += 1
        self.last_accessed_at = now


class SmartCacheManager:
    """Named TTL caches with access-temperature driven TTL rules.

    All operations are synchronous and never block. A miss is reported by
    returning the caller's ``default``; fetching from the backing store and
    writing the result back is the caller's job.
    """

    def __init__(
        self,
        settings: Optional[CacheSettings] = None,
        metrics_collector: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = time.time
    ):
        self.settings = settings or CacheSettings()
        self.metrics_collector = metrics_collector or MetricsCollector()
        self.clock = clock

        self.counters = CacheMetrics()
        self.tracker = AccessPatternTracker(clock)
        self.rules = TTLOptimizer(self.settings)
        self.optimizer = PeriodicOptimizer(self, self.settings.optimize_interval)
        self.stats = StatsReporter(self)

        self._caches: Dict[str, Dict[str, CacheEntry]] = {}

    async def initialize(self) -> None:
        """Start background optimization if enabled."""
        if self.settings.auto_optimize:
            await self.optimizer.start()

        logger.info(
            "Smart cache initialized",
            auto_optimize=self.settings.auto_optimize,
            max_cache_size=self.settings.max_cache_size,
            optimize_interval=self.settings.optimize_interval
        )

    async def close(self) -> None:
        """Stop background optimization."""
        await self.optimizer.stop()

    def get_cache(self, name: str) -> Dict[str, CacheEntry]:
        """Return the entry store for a named cache, creating it on first use."""
        cache = self._caches.get(name)
        if cache is None:
            cache = self._caches[name] = {}
            logger.debug("Created new cache", cache=name)
        return cache

    def get(self, cache_name: str, key: str, default: Any = None) -> Any:
        """Look up a key; returns ``default`` on a miss or an expired entry."""
        cache = self.get_cache(cache_name)
        entry = cache.get(key)
        now = self.clock()

        if entry is not None and entry.is_expired(now):
            del cache[key]
            self._record_dropped("expired", cache_name, 1)
            entry = None

        if entry is None:
            self.counters.misses += 1
            self.metrics_collector.record_cache_miss(cache_name)
            self.metrics_collector.update_hit_rate(self.counters.hit_rate)
            return default

        entry.touch(now)
        self.tracker.track(key)

        self.counters.hits += 1
        self.metrics_collector.record_cache_hit(cache_name)
        self.metrics_collector.update_hit_rate(self.counters.hit_rate)
        return entry.value

    def set(self, cache_name: str, key: str, value: Any, ttl: Optional[float] = None) -> None:
        """Store a value, overwriting any existing entry.

        Without an explicit ``ttl`` the key's optimization rule decides,
        falling back to the configured default TTL.
        """
        if ttl is not None and not (math.isfinite(ttl) and ttl > 0):
            raise InvalidTTLError(
                f"TTL must be a positive finite number, got {ttl}", key=key, metrics_collector=self.metrics_collector
            )
        if ttl is None:
            ttl = self.rules.ttl_for(key, self.settings.default_ttl)

        cache = self.get_cache(cache_name)
        now = self.clock()
        cache[key] = CacheEntry(value=value, inserted_at=now, ttl=ttl, last_accessed_at=now)
        self.tracker.track(key)

        self.counters.sets += 1
        self.metrics_collector.record_cache_set(cache_name)
        self.metrics_collector.update_cache_size(len(cache), cache_name)

    def delete(self, cache_name: str, key: str) -> bool:
        """Remove a key; its access pattern and rule go with it."""
        cache = self.get_cache(cache_name)
        if cache.pop(key, None) is None:
            return False

        self.tracker.remove(key)
        self.rules.remove(key)

        self.counters.deletes += 1
        self.metrics_collector.record_cache_delete(cache_name)
        self.metrics_collector.update_cache_size(len(cache), cache_name)
        return True

    def clear(self, cache_name: Optional[str] = None) -> None:
        """Empty one named cache, or everything including tracking state."""
        if cache_name is not None:
            self.get_cache(cache_name).clear()
            self.metrics_collector.update_cache_size(0, cache_name)
            logger.info("Cache cleared", cache=cache_name)
            return

        for name in self._caches:
            self.metrics_collector.remove_cache(name)
        self._caches.clear()
        self.tracker.clear()
        self.rules.clear()
        logger.info("All caches cleared")

    def contains(self, cache_name: str, key: str) -> bool:
        """Presence check that leaves stats and access tracking untouched."""
        entry = self._caches.get(cache_name, {}).get(key)
        return entry is not None and not entry.is_expired(self.clock())

    def cache_names(self) -> List[str]:
        return list(self._caches)

    def keys(self, cache_name: str) -> List[str]:
        return list(self._caches.get(cache_name, {}))

    def size(self, cache_name: str) -> int:
        return len(self._caches.get(cache_name, {}))

    def evict_oversized(self) -> Dict[str, int]:
        """Drop least recently accessed entries from caches over the size limit."""
        limit = self.settings.max_cache_size
        evicted: Dict[str, int] = {}

        for name, cache in self._caches.items():
            excess = len(cache) - limit
            if excess <= 0:
                continue

            oldest = sorted(cache.items(), key=lambda kv: kv[1].last_accessed_at)[:excess]
            for key, _ in oldest:
                del cache[key]

            evicted[name] = excess
            self._record_dropped("size", name, excess)
            logger.info("Cache size optimized", cache=name, evicted=excess, remaining=len(cache))

        return evicted

    def purge_expired(self) -> Dict[str, int]:
        """Delete every entry whose TTL has elapsed."""
        now = self.clock()
        purged: Dict[str, int] = {}

        for name, cache in self._caches.items():
            expired = [key for key, entry in cache.items() if entry.is_expired(now)]
            for key in expired:
                del cache[key]

            if expired:
                purged[name] = len(expired)
                self._record_dropped("expired", name, len(expired))
                logger.info("Cache cleaned", cache=name, expired=len(expired))

        return purged

    def forget_idle_keys(self) -> int:
        """Drop patterns and rules of keys no cache holds and nobody touched lately."""
        cached = set()
        for cache in self._caches.values():
            cached.update(cache)

        forgotten = self.tracker.prune_idle(cached.__contains__)
        for key in forgotten:
            self.rules.remove(key)

        if forgotten:
            logger.debug("Idle keys forgotten", keys=len(forgotten))
        return len(forgotten)

    def force_optimization(self) -> OptimizationReport:
        """Run one optimization pass now."""
        logger.info("Forcing cache optimization")
        return self.optimizer.force_run()

    def get_stats(self) -> Dict[str, Any]:
        return self.stats.get_stats()

    def _record_dropped(self, reason: str, cache_name: str, count: int) -> None:
        if reason == "size":
            self.counters.evictions += count
        else:
            self.counters.expirations += count
        self.metrics_collector.record_cache_eviction(reason, cache_name, count)
        self.metrics_collector.update_cache_size(len(self._caches.get(cache_name, {})), cache_name)
