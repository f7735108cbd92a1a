"""Cache-specific error types with metrics integration."""

import time
from enum import Enum
from typing import Any, Optional


class CacheErrorType(Enum):
    """Cache error categories for metrics and monitoring."""
    INVALID_CONFIG = "invalid_config"
    INVALID_TTL = "invalid_ttl"
    OPTIMIZATION_FAILED = "optimization_failed"
    FETCH_FAILED = "fetch_failed"


class CacheError(Exception):
    """Base cache exception with automatic metrics tracking."""

    def __init__(
        self,
        message: str,
        error_type: CacheErrorType,
        key: Optional[str] = None,
        metrics_collector: Optional[Any] = None
    ):
        super().__init__(message)
        self.error_type = error_type
        self.key = key
        self.timestamp = time.time()

        if metrics_collector:
            metrics_collector.record_error(error_type.value)


class CacheConfigError(CacheError):
    """Invalid cache settings."""

    def __init__(self, message: str):
        super().__init__(message, CacheErrorType.INVALID_CONFIG)


class InvalidTTLError(CacheError):
    """Explicit TTL passed to a write is not usable."""

    def __init__(self, message: str, key: Optional[str] = None, metrics_collector: Optional[Any] = None):
        super().__init__(message, CacheErrorType.INVALID_TTL, key, metrics_collector)


class OptimizationError(CacheError):
    """A periodic optimization run failed part way through."""

    def __init__(self, message: str, step: str, metrics_collector: Optional[Any] = None):
        super().__init__(message, CacheErrorType.OPTIMIZATION_FAILED, None, metrics_collector)
        self.step = step


class FetchError(CacheError):
    """Caller-supplied fetch failed after all retry attempts."""

    def __init__(self, message: str, key: Optional[str] = None, metrics_collector: Optional[Any] = None):
        super().__init__(message, CacheErrorType.FETCH_FAILED, key, metrics_collector)
