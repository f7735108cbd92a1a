from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

import structlog

from smart_cache.config.settings import CacheSettings
from .access_tracker import AccessPatternTracker, Temperature

logger = structlog.get_logger(__name__)


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(frozen=True)
class OptimizationRule:
    """TTL policy derived from a key's temperature"""
    ttl: float
    priority: Priority


class TTLOptimizer:
    """Access-pattern driven TTL rules"""

    def __init__(self, settings: CacheSettings):
        self.settings = settings
        self._rules: Dict[str, OptimizationRule] = {}
        self._by_temperature = {
            Temperature.HOT: OptimizationRule(settings.hot_data_ttl, Priority.HIGH),
            Temperature.WARM: OptimizationRule(settings.default_ttl, Priority.MEDIUM),
            Temperature.COLD: OptimizationRule(settings.cold_data_ttl, Priority.LOW),
        }

    def refresh_rules(self, tracker: AccessPatternTracker) -> None:
        """Rewrite the rule of every tracked key from its current temperature"""
        for key, pattern in tracker.items():
            self._rules[key] = self._by_temperature[pattern.temperature]

        logger.debug("Optimization rules refreshed", rules=len(self._rules))

    def rule_for(self, key: str) -> Optional[OptimizationRule]:
        return self._rules.get(key)

    def ttl_for(self, key: str, default: float) -> float:
        """TTL for a write without an explicit one"""
        rule = self._rules.get(key)
        return rule.ttl if rule else default

    def remove(self, key: str) -> None:
        self._rules.pop(key, None)

    def clear(self) -> None:
        self._rules.clear()

    def __len__(self) -> int:
        return len(self._rules)
