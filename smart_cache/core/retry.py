"""Retry mechanism for caller-side fetches from the backing store."""

import asyncio
import logging
from typing import Callable, TypeVar
from functools import wraps
import random

from .errors import FetchError

T = TypeVar('T')

logger = logging.getLogger(__name__)

class RetryConfig:
    """Configuration for retry mechanism."""

    def __init__(
        self,
        max_attempts: int = 3,
        base_delay: float = 0.1,
        max_delay: float = 2.0,
        jitter: bool = True
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay
        self.jitter = jitter

    def delay_for(self, attempt: int) -> float:
        """Backoff before the retry that follows ``attempt`` (0-based)."""
        delay = min(self.base_delay * (2 ** attempt), self.max_delay)

        # Add jitter to prevent thundering herd
        if self.jitter:
            delay *= (0.5 + random.random() * 0.5)
        return delay

def with_retry(config: RetryConfig):
    """Decorator for adding retry logic to async fetch functions."""

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            last_exception = None

            for attempt in range(config.max_attempts):
                try:
                    result = await func(*args, **kwargs)

                    if attempt > 0:
                        logger.info(f"Fetch succeeded on attempt {attempt + 1}")

                    return result

                except Exception as e:
                    last_exception = e

                    # Don't retry on last attempt
                    if attempt == config.max_attempts - 1:
                        break

                    delay = config.delay_for(attempt)
                    logger.warning(
                        f"Attempt {attempt + 1} failed: {e}. "
                        f"Retrying in {delay:.2f}s"
                    )

                    await asyncio.sleep(delay)

            # All attempts failed
            logger.error(f"All {config.max_attempts} attempts failed")
            raise FetchError(f"Fetch failed after {config.max_attempts} attempts") from last_exception

        return wrapper
    return decorator
