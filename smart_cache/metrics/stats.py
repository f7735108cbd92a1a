from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

from .collector import MetricsCollectionError

if TYPE_CHECKING:
    from smart_cache.core.cache_engine import SmartCacheManager

logger = structlog.get_logger(__name__)


class StatsReporter:
    """Read-only views over the manager's current state, computed on demand."""

    def __init__(self, manager: "SmartCacheManager"):
        self.manager = manager

    def get_stats(self) -> Dict[str, Any]:
        """Entry counts, hit rate and temperature breakdown."""
        manager = self.manager
        counters = manager.counters
        sizes = {name: manager.size(name) for name in manager.cache_names()}
        temperatures = manager.tracker.temperature_counts()

        return {
            "total_caches": len(sizes),
            "total_entries": sum(sizes.values()),
            "cache_sizes": sizes,
            "hit_rate": counters.hit_rate,
            "hot_keys": temperatures["hot"],
            "warm_keys": temperatures["warm"],
            "cold_keys": temperatures["cold"],
            "total_hits": counters.hits,
            "total_misses": counters.misses,
            "total_sets": counters.sets,
            "total_deletes": counters.deletes,
            "total_evictions": counters.evictions,
            "total_expirations": counters.expirations,
            "optimization_runs": counters.optimization_runs,
            "access_patterns": len(manager.tracker),
            "optimization_rules": len(manager.rules),
        }

    def get_performance_insights(self) -> Dict[str, Any]:
        manager = self.manager
        temperatures = manager.tracker.temperature_counts()

        return {
            "hot_data": temperatures["hot"],
            "warm_data": temperatures["warm"],
            "cold_data": temperatures["cold"],
            "cache_efficiency": round(manager.counters.hit_rate * 100, 2),
            "total_entries": sum(manager.size(name) for name in manager.cache_names()),
            "frequent_keys": manager.tracker.frequent_keys(manager.settings.access_threshold),
        }

    def get_system_status(self) -> Dict[str, Any]:
        manager = self.manager
        last_report = manager.optimizer.last_report

        return {
            "auto_optimization": manager.settings.auto_optimize,
            "optimizer_running": manager.optimizer.running,
            "settings": manager.settings.to_dict(),
            "stats": self.get_stats(),
            "insights": self.get_performance_insights(),
            "last_optimization": last_report.to_dict() if last_report else None,
            "process_memory_bytes": self._process_memory(),
        }

    def _process_memory(self) -> Optional[int]:
        try:
            return self.manager.metrics_collector.collect_process_memory()
        except MetricsCollectionError as e:
            logger.warning("Failed to sample process memory", error=str(e))
            return None
