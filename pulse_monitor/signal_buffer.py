"""
Bounded, time-ordered ring of recent brightness samples.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, NamedTuple, Optional

import numpy as np

logger = logging.getLogger(__name__)

DEFAULT_FPS = 30.0
DEFAULT_RETENTION_SECONDS = 5.0


class Sample(NamedTuple):
    """One brightness reading taken from one frame."""

    timestamp_ms: float
    brightness: float


class SignalBuffer:
    """
    FIFO ring of the most recent :class:`Sample` objects.

    Parameters
    ----------
    fps:
        Capture rate of the frame source.
    retention_seconds:
        How much signal to keep.  Capacity is ``int(fps * retention_seconds)``
        samples (150 at the defaults).
    """

    def __init__(
        self,
        fps: float = DEFAULT_FPS,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
    ) -> None:
        capacity = int(fps * retention_seconds)
        if capacity < 1:
            raise ValueError(
                f"Buffer capacity must be positive (fps={fps}, "
                f"retention_seconds={retention_seconds})"
            )
        self._samples: Deque[Sample] = deque(maxlen=capacity)

    def push(self, sample: Sample) -> bool:
        """
        Append *sample*, evicting the oldest one when full.

        Returns *False* (and keeps the buffer unchanged) if *sample* is older
        than the current tail.
        """
        if self._samples and sample.timestamp_ms < self._samples[-1].timestamp_ms:
            logger.debug(
                "Out-of-order sample at %.1f ms (tail %.1f ms) dropped.",
                sample.timestamp_ms, self._samples[-1].timestamp_ms,
            )
            return False
        self._samples.append(sample)
        return True

    def window(self, center: int, radius: int) -> Optional[List[Sample]]:
        """
        Samples ``center - radius`` … ``center + radius`` inclusive, or *None*
        when either bound lies outside the buffer.
        """
        lo, hi = center - radius, center + radius
        if radius < 0 or lo < 0 or hi >= len(self._samples):
            return None
        samples = self._samples
        return [samples[i] for i in range(lo, hi + 1)]

    def clear(self) -> None:
        self._samples.clear()

    def values(self) -> np.ndarray:
        """Brightness values oldest-first (for plotting)."""
        return np.fromiter(
            (s.brightness for s in self._samples),
            dtype=np.float64,
            count=len(self._samples),
        )

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    @property
    def fill_ratio(self) -> float:
        """How full the buffer is (0 – 1)."""
        return len(self._samples) / self._samples.maxlen

    def __len__(self) -> int:
        return len(self._samples)

    def __getitem__(self, index: int) -> Sample:
        return self._samples[index]
