"""Per-key access history and hot/warm/cold classification."""
import time
from collections import deque
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Deque, Dict, Iterator, List, Optional, Tuple

import structlog

logger = structlog.get_logger(__name__)

ANALYSIS_WINDOW = 30 * 60.0  # seconds
MIN_RATE_SPAN = 60.0
HOT_FREQUENCY = 2.0  # accesses per minute
WARM_FREQUENCY = 0.5


class Temperature(Enum):
    """Coarse access-frequency classes."""
    HOT = "hot"
    WARM = "warm"
    COLD = "cold"


@dataclass
class AccessPattern:
    """Track access patterns for cache keys"""
    accesses: Deque[float] = field(default_factory=deque)
    frequency: float = 0.0
    temperature: Temperature = Temperature.COLD

    def add_access(self, now: float) -> None:
        self.accesses.append(now)
        self.prune(now)

    def prune(self, now: float) -> None:
        """Drop accesses that fell out of the analysis window."""
        while self.accesses and now - self.accesses[0] >= ANALYSIS_WINDOW:
            self.accesses.popleft()

    def recompute(self, now: float) -> None:
        self.prune(now)
        if not self.accesses:
            self.frequency = 0.0
        else:
            span = min(max(now - self.accesses[0], MIN_RATE_SPAN), ANALYSIS_WINDOW)
            self.frequency = len(self.accesses) / (span / 60.0)

        if self.frequency > HOT_FREQUENCY:
            self.temperature = Temperature.HOT
        elif self.frequency > WARM_FREQUENCY:
            self.temperature = Temperature.WARM
        else:
            self.temperature = Temperature.COLD


class AccessPatternTracker:
    """Sliding-window access tracker shared by every named cache."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._patterns: Dict[str, AccessPattern] = {}

    def track(self, key: str) -> None:
        """Record one access (read hit or write) for a key."""
        pattern = self._patterns.get(key)
        if pattern is None:
            pattern = self._patterns[key] = AccessPattern()
        pattern.add_access(self._clock())

    def analyze(self) -> None:
        """Recompute frequency and temperature for every tracked key."""
        now = self._clock()
        for pattern in self._patterns.values():
            pattern.recompute(now)

        logger.debug("Access patterns analyzed", tracked_keys=len(self._patterns))

    def prune_idle(self, is_cached: Callable[[str], bool]) -> List[str]:
        """Forget keys with an empty window that no cache holds any more."""
        idle = [
            key for key, pattern in self._patterns.items()
            if not pattern.accesses and not is_cached(key)
        ]
        for key in idle:
            del self._patterns[key]
        return idle

    def get(self, key: str) -> Optional[AccessPattern]:
        return self._patterns.get(key)

    def remove(self, key: str) -> None:
        self._patterns.pop(key, None)

    def clear(self) -> None:
        self._patterns.clear()

    def items(self) -> Iterator[Tuple[str, AccessPattern]]:
        return iter(self._patterns.items())

    def temperature_counts(self) -> Dict[str, int]:
        counts = {t.value: 0 for t in Temperature}
        for pattern in self._patterns.values():
            counts[pattern.temperature.value] += 1
        return counts

    def frequent_keys(self, threshold: int) -> int:
        """Number of keys with at least `threshold` accesses in the window."""
        return sum(1 for p in self._patterns.values() if len(p.accesses) >= threshold)

    def __len__(self) -> int:
        return len(self._patterns)

    def __contains__(self, key: str) -> bool:
        return key in self._patterns
