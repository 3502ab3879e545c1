"""
Streaming local-maximum detector.

Algorithm
---------
After every pushed sample the detector looks ``radius`` samples behind the
newest one, so the candidate has ``radius`` neighbours on each side:

    candidate = len(buffer) - 1 - radius

The candidate is a peak when its brightness is greater than or equal to
every other value in the ``2 * radius + 1`` window.  Ties are accepted so a
flat-topped pulse still produces a peak; a completely flat window does not,
because a constant signal has no maximum to speak of.

Accepted peaks pass a refractory gate: a peak closer than
``refractory_ms`` to the previous accepted one is treated as jitter on the
same heartbeat and dropped.  300 ms corresponds to 200 BPM.

Limits
------
At 30 fps with radius 5 and a 300 ms gate, rates above roughly 180 BPM
are undercounted.  There the beat period is about one frame longer than
the gate, so one frame of jitter puts a peak inside the refractory period.
The next interval then spans two beats (a 190 BPM pulse reads near 100).
"""

from __future__ import annotations

import enum
import logging
from typing import NamedTuple, Optional

from pulse_monitor.signal_buffer import SignalBuffer

logger = logging.getLogger(__name__)

DEFAULT_RADIUS = 5
DEFAULT_REFRACTORY_MS = 300.0


class PeakOutcome(enum.Enum):
    INSUFFICIENT_WINDOW = "insufficient_window"
    NO_PEAK = "no_peak"
    FIRST_PEAK = "first_peak"
    INTERVAL = "interval"
    NOISY_PEAK = "noisy_peak"


class Detection(NamedTuple):
    """Result of one :meth:`PeakDetector.update` call."""

    outcome: PeakOutcome
    interval_ms: Optional[float] = None


class PeakDetector:
    """
    Symmetric-window peak detector with a refractory gate.

    Parameters
    ----------
    radius:
        Half-width of the comparison window (default 5 → 11 samples).
    refractory_ms:
        Minimum gap between two accepted peaks.
    """

    def __init__(
        self,
        radius: int = DEFAULT_RADIUS,
        refractory_ms: float = DEFAULT_REFRACTORY_MS,
    ) -> None:
        if radius < 1:
            raise ValueError(f"radius must be >= 1, got {radius}")
        self.radius = radius
        self.refractory_ms = refractory_ms
        self._last_peak_ms: Optional[float] = None

    @property
    def window_size(self) -> int:
        return 2 * self.radius + 1

    @property
    def last_peak_ms(self) -> Optional[float]:
        return self._last_peak_ms

    def update(self, buffer: SignalBuffer, now_ms: float) -> Detection:
        """Evaluate the current candidate; call once per pushed sample."""
        if len(buffer) < self.window_size:
            return Detection(PeakOutcome.INSUFFICIENT_WINDOW)

        center = len(buffer) - 1 - self.radius
        window = buffer.window(center, self.radius)
        if window is None:
            return Detection(PeakOutcome.INSUFFICIENT_WINDOW)

        values = [s.brightness for s in window]
        candidate = values[self.radius]
        if candidate < max(values) or candidate == min(values):
            return Detection(PeakOutcome.NO_PEAK)

        if self._last_peak_ms is None:
            self._last_peak_ms = now_ms
            logger.debug("First peak at %.1f ms.", now_ms)
            return Detection(PeakOutcome.FIRST_PEAK)

        interval = now_ms - self._last_peak_ms
        if interval > self.refractory_ms:
            self._last_peak_ms = now_ms
            return Detection(PeakOutcome.INTERVAL, interval)

        logger.debug("Peak %.1f ms after the previous one – ignored.", interval)
        return Detection(PeakOutcome.NOISY_PEAK)

    def reset(self) -> None:
        self._last_peak_ms = None
