"""
Inter-beat interval history.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional

from pulse_monitor.peak_detector import DEFAULT_REFRACTORY_MS

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 20


class IntervalTracker:
    """
    Bounded FIFO of peak-to-peak intervals in milliseconds.

    Parameters
    ----------
    history_size:
        Maximum number of intervals kept; the oldest is dropped first.
    refractory_ms:
        Intervals at or below this value are rejected as noise.
    """

    def __init__(
        self,
        history_size: int = DEFAULT_HISTORY_SIZE,
        refractory_ms: float = DEFAULT_REFRACTORY_MS,
    ) -> None:
        if history_size < 1:
            raise ValueError(f"history_size must be >= 1, got {history_size}")
        self.refractory_ms = refractory_ms
        self._intervals: Deque[float] = deque(maxlen=history_size)

    def add(self, interval_ms: float) -> bool:
        """Record *interval_ms*; returns *False* if it was rejected."""
        if interval_ms <= self.refractory_ms:
            logger.debug("Interval %.1f ms below refractory period – rejected.", interval_ms)
            return False
        self._intervals.append(float(interval_ms))
        return True

    def recent_average(self, n: int) -> Optional[float]:
        """
        Mean of the last ``min(n, len(self))`` intervals, or *None* when the
        history is empty.
        """
        if not self._intervals or n < 1:
            return None
        recent = list(self._intervals)[-n:]
        return sum(recent) / len(recent)

    def clear(self) -> None:
        self._intervals.clear()

    @property
    def intervals(self) -> List[float]:
        return list(self._intervals)

    @property
    def capacity(self) -> int:
        return self._intervals.maxlen

    def __len__(self) -> int:
        return len(self._intervals)
