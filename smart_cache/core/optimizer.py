"""Background optimization loop for the smart cache."""
import asyncio
import time
from dataclasses import dataclass, field, asdict
from typing import TYPE_CHECKING, Any, Dict, Optional

import structlog

from .errors import OptimizationError

if TYPE_CHECKING:
    from .cache_engine import SmartCacheManager

logger = structlog.get_logger(__name__)


@dataclass
class OptimizationReport:
    """Outcome of one optimizer run"""
    success: bool
    duration_ms: float
    evicted: Dict[str, int] = field(default_factory=dict)
    expired: Dict[str, int] = field(default_factory=dict)
    forgotten: int = 0
    failed_step: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PeriodicOptimizer:
    """Runs analyze → size eviction → TTL purge → idle-key cleanup → rule refresh
    on a timer.

    Every step is idempotent, so a run that fails part way is simply
    logged and the next tick starts over.
    """

    def __init__(self, manager: "SmartCacheManager", interval: float):
        self.manager = manager
        self.interval = interval
        self._running = False
        self._task: Optional[asyncio.Task] = None
        self.last_report: Optional[OptimizationReport] = None

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Schedule the optimization loop on the running event loop"""
        if self._running:
            logger.warning("Cache optimizer already running")
            return

        self._running = True
        self._task = asyncio.create_task(self._optimization_loop())
        logger.info("Cache optimizer started", interval_seconds=self.interval)

    async def stop(self) -> None:
        """Cancel the optimization loop"""
        if not self._running:
            return

        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("Cache optimizer stopped")

    def force_run(self) -> OptimizationReport:
        """Run one pass immediately, outside the timer"""
        return self._run_once()

    async def _optimization_loop(self) -> None:
        while self._running:
            try:
                await asyncio.sleep(self.interval)
                self._run_once()
            except asyncio.CancelledError:
                break

    def _run_once(self) -> OptimizationReport:
        manager = self.manager
        collector = manager.metrics_collector
        start_time = time.perf_counter()
        step = "analyze"
        evicted: Dict[str, int] = {}
        expired: Dict[str, int] = {}
        forgotten = 0

        try:
            manager.tracker.analyze()
            step = "evict"
            evicted = manager.evict_oversized()
            step = "purge"
            expired = manager.purge_expired()
            step = "forget_idle"
            forgotten = manager.forget_idle_keys()
            step = "refresh_rules"
            manager.rules.refresh_rules(manager.tracker)
        except Exception as e:
            duration = time.perf_counter() - start_time
            error = OptimizationError(f"Optimization step '{step}' failed: {e}", step, collector)
            logger.error("Cache optimization error", step=step, error=str(e), exc_info=True)
            collector.record_optimization_run(False, duration)
            report = OptimizationReport(
                success=False,
                duration_ms=duration * 1000,
                evicted=evicted,
                expired=expired,
                forgotten=forgotten,
                failed_step=step,
                error=str(error)
            )
            self.last_report = report
            return report

        duration = time.perf_counter() - start_time
        manager.counters.optimization_runs += 1
        collector.record_optimization_run(True, duration)

        report = OptimizationReport(
            success=True,
            duration_ms=duration * 1000,
            evicted=evicted,
            expired=expired,
            forgotten=forgotten
        )
        self.last_report = report
        logger.info(
            "Smart cache optimization completed",
            evicted=sum(evicted.values()),
            expired=sum(expired.values()),
            forgotten=forgotten,
            duration_ms=report.duration_ms
        )
        return report
