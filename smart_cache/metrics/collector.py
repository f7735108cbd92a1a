from dataclasses import dataclass, asdict
from typing import Dict, Any

import psutil
import structlog
from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest


logger = structlog.get_logger(__name__)


class MetricsCollectionError(Exception):
    """Raised when metrics collection fails"""
    pass


@dataclass
class CacheMetrics:
    """Process-wide cache operation counters"""
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0
    expirations: int = 0
    optimization_runs: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class MetricsCollector:
    """Prometheus metrics for the smart cache"""

    def __init__(self, registry: CollectorRegistry = None):
        """Initialize metrics collector

        Args:
            registry: Registry to publish into. A private one is created when
                omitted so that several managers can coexist in one process.
        """
        self.registry = registry or CollectorRegistry()

        # Cache operation metrics
        self.cache_hits = Counter(
            'smart_cache_hits_total',
            'Total number of cache hits',
            ['cache'],
            registry=self.registry
        )

        self.cache_misses = Counter(
            'smart_cache_misses_total',
            'Total number of cache misses',
            ['cache'],
            registry=self.registry
        )

        self.cache_sets = Counter(
            'smart_cache_sets_total',
            'Total number of cache writes',
            ['cache'],
            registry=self.registry
        )

        self.cache_deletes = Counter(
            'smart_cache_deletes_total',
            'Total number of explicit cache deletions',
            ['cache'],
            registry=self.registry
        )

        self.cache_evictions = Counter(
            'smart_cache_evictions_total',
            'Total number of entries dropped by the optimizer',
            ['reason', 'cache'],
            registry=self.registry
        )

        self.cache_errors = Counter(
            'smart_cache_errors_total',
            'Total number of cache errors',
            ['error_type'],
            registry=self.registry
        )

        # Optimizer metrics
        self.optimization_runs = Counter(
            'smart_cache_optimization_runs_total',
            'Optimizer runs by result',
            ['result'],
            registry=self.registry
        )

        self.optimization_duration = Histogram(
            'smart_cache_optimization_duration_seconds',
            'Time spent in one optimizer run',
            buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
            registry=self.registry
        )

        # State metrics
        self.cache_size = Gauge(
            'smart_cache_size_items',
            'Current number of entries in a named cache',
            ['cache'],
            registry=self.registry
        )

        self.hit_rate = Gauge(
            'smart_cache_hit_rate',
            'Process-wide hit rate (0-1)',
            registry=self.registry
        )

        self.process_memory = Gauge(
            'smart_cache_process_memory_bytes',
            'Resident memory of the hosting process',
            registry=self.registry
        )

    def record_cache_hit(self, cache: str) -> None:
        self.cache_hits.labels(cache=cache).inc()

    def record_cache_miss(self, cache: str) -> None:
        self.cache_misses.labels(cache=cache).inc()

    def record_cache_set(self, cache: str) -> None:
        self.cache_sets.labels(cache=cache).inc()

    def record_cache_delete(self, cache: str) -> None:
        self.cache_deletes.labels(cache=cache).inc()

    def record_cache_eviction(self, reason: str, cache: str, count: int = 1) -> None:
        """Record entries dropped by size eviction or TTL purge"""
        if count > 0:
            self.cache_evictions.labels(reason=reason, cache=cache).inc(count)

    def record_error(self, error_type: str) -> None:
        self.cache_errors.labels(error_type=error_type).inc()

    def record_optimization_run(self, success: bool, duration_seconds: float) -> None:
        self.optimization_runs.labels(result="success" if success else "failure").inc()
        self.optimization_duration.observe(duration_seconds)

    def update_cache_size(self, size: int, cache: str) -> None:
        self.cache_size.labels(cache=cache).set(size)

    def remove_cache(self, cache: str) -> None:
        """Stop exporting the size of a cache that no longer exists"""
        try:
            self.cache_size.remove(cache)
        except KeyError:
            pass

    def update_hit_rate(self, hit_rate: float) -> None:
        self.hit_rate.set(hit_rate)

    def collect_process_memory(self) -> int:
        """Sample resident memory of this process"""
        try:
            rss = psutil.Process().memory_info().rss
        except psutil.Error as e:
            raise MetricsCollectionError(f"Failed to read process memory: {e}") from e
        self.process_memory.set(rss)
        return rss

    def export(self) -> bytes:
        """Prometheus text exposition of every metric in the registry"""
        return generate_latest(self.registry)
