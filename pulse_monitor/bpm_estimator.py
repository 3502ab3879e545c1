"""
BPM estimator.

Two views over the same interval history:

* **live** – mean of the last 5 intervals, recomputed after every new
  interval and shown as-is while measuring;
* **final** – mean of the last 10 intervals, computed once at the end of a
  session and accepted only inside the open range (40, 200) BPM.
"""

from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import Optional

from pulse_monitor.interval_tracker import IntervalTracker

MS_PER_MINUTE = 60000.0

DEFAULT_LIVE_WINDOW = 5
DEFAULT_FINAL_WINDOW = 10
DEFAULT_MIN_INTERVALS = 3
DEFAULT_BPM_LOW = 40
DEFAULT_BPM_HIGH = 200
DISPLAY_FLOOR_BPM = 30
PLACEHOLDER = "--"


class SignalIssue(enum.Enum):
    """
    Expected, non-fatal signal conditions at frame and session level.

    Per-sample detector outcomes (not enough samples, a peak inside the
    refractory period) are :class:`~pulse_monitor.peak_detector.PeakOutcome`
    values.
    """

    NO_FRAME_DATA = "no_frame_data"
    TOO_FEW_INTERVALS = "too_few_intervals"
    OUT_OF_RANGE = "out_of_range"


@dataclass(frozen=True)
class SessionResult:
    """Outcome of one measurement session."""

    bpm: Optional[int] = None
    insufficient_signal: bool = False
    reason: Optional[SignalIssue] = None

    @classmethod
    def insufficient(cls, reason: SignalIssue) -> "SessionResult":
        return cls(bpm=None, insufficient_signal=True, reason=reason)

    @property
    def ok(self) -> bool:
        return self.bpm is not None and not self.insufficient_signal


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def interval_to_bpm(interval_ms: float) -> int:
    return round_half_up(MS_PER_MINUTE / interval_ms)


def display_live(bpm: Optional[int]) -> str:
    """Text for a live reading; a placeholder while it is clearly invalid."""
    if bpm is None or bpm <= DISPLAY_FLOOR_BPM:
        return PLACEHOLDER
    return str(bpm)


class BpmEstimator:
    """
    Parameters
    ----------
    live_window:
        Number of most recent intervals averaged for the live value.
    final_window:
        Number of most recent intervals averaged for the final value.
    min_intervals:
        Minimum history length for a final value (default 3).
    bpm_low, bpm_high:
        Exclusive plausibility bounds for the final value.
    """

    def __init__(
        self,
        live_window: int = DEFAULT_LIVE_WINDOW,
        final_window: int = DEFAULT_FINAL_WINDOW,
        min_intervals: int = DEFAULT_MIN_INTERVALS,
        bpm_low: int = DEFAULT_BPM_LOW,
        bpm_high: int = DEFAULT_BPM_HIGH,
    ) -> None:
        if bpm_low >= bpm_high:
            raise ValueError(f"bpm_low ({bpm_low}) must be below bpm_high ({bpm_high})")
        self.live_window = live_window
        self.final_window = final_window
        self.min_intervals = min_intervals
        self.bpm_low = bpm_low
        self.bpm_high = bpm_high

    def live_bpm(self, tracker: IntervalTracker) -> Optional[int]:
        avg = tracker.recent_average(self.live_window)
        if avg is None:
            return None
        return interval_to_bpm(avg)

    def accepts(self, bpm: int) -> bool:
        return self.bpm_low < bpm < self.bpm_high

    def final_result(self, tracker: IntervalTracker) -> SessionResult:
        if len(tracker) < self.min_intervals:
            return SessionResult.insufficient(SignalIssue.TOO_FEW_INTERVALS)
        bpm = interval_to_bpm(tracker.recent_average(self.final_window))
        if not self.accepts(bpm):
            return SessionResult.insufficient(SignalIssue.OUT_OF_RANGE)
        return SessionResult(bpm=bpm)
