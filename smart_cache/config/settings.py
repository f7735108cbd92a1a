import math
import os
from dataclasses import dataclass, asdict
from typing import Any, Dict

import structlog

from smart_cache.core.errors import CacheConfigError

logger = structlog.get_logger(__name__)

MINUTE = 60.0


@dataclass
class CacheSettings:
    """Tuning knobs for the smart cache. Durations are in seconds."""
    max_cache_size: int = 2000
    default_ttl: float = 5 * MINUTE
    hot_data_ttl: float = 30 * MINUTE
    cold_data_ttl: float = 1 * MINUTE
    access_threshold: int = 3
    auto_optimize: bool = True
    optimize_interval: float = 5 * MINUTE

    def __post_init__(self):
        if self.max_cache_size < 1:
            raise CacheConfigError(f"max_cache_size must be positive, got {self.max_cache_size}")
        for name in ("default_ttl", "hot_data_ttl", "cold_data_ttl"):
            value = getattr(self, name)
            if not (math.isfinite(value) and value > 0):
                raise CacheConfigError(f"{name} must be a positive finite number, got {value}")
        if self.access_threshold < 1:
            raise CacheConfigError(f"access_threshold must be positive, got {self.access_threshold}")
        if not (math.isfinite(self.optimize_interval) and self.optimize_interval > 0):
            raise CacheConfigError(f"optimize_interval must be a positive finite number, got {self.optimize_interval}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as e:
        raise CacheConfigError(f"{name} must be a number, got {raw!r}") from e


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as e:
        raise CacheConfigError(f"{name} must be an integer, got {raw!r}") from e


def create_settings_from_env() -> CacheSettings:
    """Create cache settings from SMART_CACHE_* environment variables."""
    defaults = CacheSettings()
    settings = CacheSettings(
        max_cache_size=_env_int("SMART_CACHE_MAX_SIZE", defaults.max_cache_size),
        default_ttl=_env_float("SMART_CACHE_DEFAULT_TTL", defaults.default_ttl),
        hot_data_ttl=_env_float("SMART_CACHE_HOT_TTL", defaults.hot_data_ttl),
        cold_data_ttl=_env_float("SMART_CACHE_COLD_TTL", defaults.cold_data_ttl),
        access_threshold=_env_int("SMART_CACHE_ACCESS_THRESHOLD", defaults.access_threshold),
        auto_optimize=os.getenv("SMART_CACHE_AUTO_OPTIMIZE", "true").lower() == "true",
        optimize_interval=_env_float("SMART_CACHE_OPTIMIZE_INTERVAL", defaults.optimize_interval),
    )
    logger.debug("Cache settings loaded", **settings.to_dict())
    return settings
