"""
Test module for smart_cache.metrics.stats
"""

from unittest.mock import patch

from smart_cache.metrics.collector import MetricsCollectionError


class TestStatsReporter:
    """Test cases for StatsReporter."""

    def test_empty_stats(self, manager):
        stats = manager.get_stats()
        assert stats["total_entries"] == 0
        assert stats["hit_rate"] == 0.0
        assert stats["cache_sizes"] == {}
        assert (stats["hot_keys"], stats["warm_keys"], stats["cold_keys"]) == (0, 0, 0)

    def test_stats_reflect_current_state(self, manager, clock):
        manager.set("users", "u1", 1)
        manager.set("users", "u2", 2)
        manager.set("companies", "c1", 3)
        for _ in range(4):
            manager.get("users", "u1")
        manager.get("users", "missing")
        manager.delete("users", "u2")
        clock.advance(40)
        manager.force_optimization()

        stats = manager.get_stats()

        assert stats["total_caches"] == 2
        assert stats["total_entries"] == 2
        assert stats["cache_sizes"] == {"users": 1, "companies": 1}
        assert stats["hit_rate"] == 4 / 5
        assert stats["total_hits"] == 4
        assert stats["total_misses"] == 1
        assert stats["total_sets"] == 3
        assert stats["total_deletes"] == 1
        assert stats["optimization_runs"] == 1
        assert stats["hot_keys"] == 1
        assert stats["warm_keys"] == 1
        assert stats["cold_keys"] == 0
        assert stats["access_patterns"] == 2
        assert stats["optimization_rules"] == 2

    def test_stats_are_not_cached(self, manager):
        assert manager.get_stats()["total_entries"] == 0
        manager.set("users", "u1", 1)
        assert manager.get_stats()["total_entries"] == 1

    def test_performance_insights(self, manager):
        manager.set("users", "u1", 1)
        manager.get("users", "u1")
        manager.get("users", "u1")
        manager.get("users", "u2")
        manager.set("users", "u3", 1)

        insights = manager.stats.get_performance_insights()

        assert insights["cache_efficiency"] == 66.67
        assert insights["total_entries"] == 2
        assert insights["frequent_keys"] == 1

    def test_system_status(self, manager):
        manager.force_optimization()
        status = manager.stats.get_system_status()

        assert status["auto_optimization"] is False
        assert status["optimizer_running"] is False
        assert status["settings"]["max_cache_size"] == 2000
        assert status["last_optimization"]["success"] is True
        assert isinstance(status["process_memory_bytes"], int)
        assert status["process_memory_bytes"] > 0

    def test_system_status_without_memory_sample(self, manager):
        with patch.object(
            manager.metrics_collector,
            "collect_process_memory",
            side_effect=MetricsCollectionError("no procfs"),
        ):
            status = manager.stats.get_system_status()
        assert status["process_memory_bytes"] is None
        assert status["last_optimization"] is None
