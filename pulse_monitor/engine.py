"""
Pulse-signal estimation engine.

One :class:`PulseEngine` owns every buffer of a measurement session and
runs the pipeline

    frame → red mean → signal buffer → peak detector → intervals → BPM

synchronously on each delivered frame.  Session lifecycle::

    IDLE ──start()──▶ MEASURING ──stop()──▶ STOPPED_WITH_RESULT
                                        └──▶ STOPPED_NO_RESULT

``stop()`` is a barrier: once it has run, no further frame touches the
buffers, so a countdown timer firing on another thread cannot race the
frame loop.
"""

from __future__ import annotations

import enum
import logging
import threading
from typing import Callable, Optional

from pulse_monitor.bpm_estimator import (
    DEFAULT_BPM_HIGH,
    DEFAULT_BPM_LOW,
    DEFAULT_FINAL_WINDOW,
    DEFAULT_LIVE_WINDOW,
    DEFAULT_MIN_INTERVALS,
    BpmEstimator,
    SessionResult,
    SignalIssue,
)
from pulse_monitor.frame_reducer import FrameReducer
from pulse_monitor.interval_tracker import DEFAULT_HISTORY_SIZE, IntervalTracker
from pulse_monitor.peak_detector import (
    DEFAULT_RADIUS,
    DEFAULT_REFRACTORY_MS,
    PeakDetector,
    PeakOutcome,
)
from pulse_monitor.signal_buffer import (
    DEFAULT_FPS,
    DEFAULT_RETENTION_SECONDS,
    Sample,
    SignalBuffer,
)

logger = logging.getLogger(__name__)

LiveBpmCallback = Callable[[int], None]
SessionEndedCallback = Callable[[SessionResult], None]


class SessionState(enum.Enum):
    IDLE = "idle"
    MEASURING = "measuring"
    STOPPED_WITH_RESULT = "stopped_with_result"
    STOPPED_NO_RESULT = "stopped_no_result"


class PulseEngine:
    """
    Streaming heart-rate estimator for one fingertip measurement.

    Parameters
    ----------
    on_live_bpm_changed:
        Called with the live BPM after every accepted beat interval.
    on_session_ended:
        Called exactly once per session with the :class:`SessionResult`.
    fps:
        Capture rate of the frame source; sizes the signal buffer.
    retention_seconds:
        Seconds of signal kept for peak detection.
    radius:
        Half-width of the peak-detection window.
    refractory_ms:
        Minimum gap between accepted peaks.
    history_size:
        Number of beat intervals kept.
    live_window, final_window:
        Intervals averaged for the live and the final estimate.
    min_intervals:
        Intervals required for a final estimate.
    bpm_low, bpm_high:
        Exclusive plausibility bounds of the final estimate.
    """

    def __init__(
        self,
        on_live_bpm_changed: Optional[LiveBpmCallback] = None,
        on_session_ended: Optional[SessionEndedCallback] = None,
        fps: float = DEFAULT_FPS,
        retention_seconds: float = DEFAULT_RETENTION_SECONDS,
        radius: int = DEFAULT_RADIUS,
        refractory_ms: float = DEFAULT_REFRACTORY_MS,
        history_size: int = DEFAULT_HISTORY_SIZE,
        live_window: int = DEFAULT_LIVE_WINDOW,
        final_window: int = DEFAULT_FINAL_WINDOW,
        min_intervals: int = DEFAULT_MIN_INTERVALS,
        bpm_low: int = DEFAULT_BPM_LOW,
        bpm_high: int = DEFAULT_BPM_HIGH,
    ) -> None:
        self.on_live_bpm_changed = on_live_bpm_changed
        self.on_session_ended = on_session_ended

        self.reducer = FrameReducer()
        self.buffer = SignalBuffer(fps=fps, retention_seconds=retention_seconds)
        self.detector = PeakDetector(radius=radius, refractory_ms=refractory_ms)
        self.tracker = IntervalTracker(history_size=history_size, refractory_ms=refractory_ms)
        self.estimator = BpmEstimator(
            live_window=live_window,
            final_window=final_window,
            min_intervals=min_intervals,
            bpm_low=bpm_low,
            bpm_high=bpm_high,
        )

        self._lock = threading.Lock()
        # Held while outbound events fire; stop() takes it before _lock.
        self._events = threading.RLock()
        self._state = SessionState.IDLE
        self._live_bpm: Optional[int] = None
        self._result: Optional[SessionResult] = None

    # ------------------------------------------------------------------
    # Session lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Clear all state and begin measuring."""
        with self._lock:
            if self._state is SessionState.MEASURING:
                raise RuntimeError("A measurement is already running.  Call stop() first.")
            self._reset()
            self._state = SessionState.MEASURING
        logger.info("Measurement started.")

    def stop(self) -> Optional[SessionResult]:
        """
        End the session and compute the final estimate.

        Returns the :class:`SessionResult`, or *None* when no session was
        running (repeated calls are no-ops).
        """
        with self._events:
            with self._lock:
                if self._state is not SessionState.MEASURING:
                    return None
                result = self.estimator.final_result(self.tracker)
                self._state = (
                    SessionState.STOPPED_WITH_RESULT if result.ok
                    else SessionState.STOPPED_NO_RESULT
                )
                self._result = result
                self._live_bpm = None

            if result.ok:
                logger.info("Measurement complete: %d BPM (%d intervals).", result.bpm, len(self.tracker))
            else:
                logger.info(
                    "Measurement ended without a reading (%s, %d intervals).",
                    result.reason.value, len(self.tracker),
                )
            if self.on_session_ended is not None:
                self.on_session_ended(result)
        return result

    def reset(self) -> None:
        """Return to IDLE, discarding all buffers.  Not allowed while measuring."""
        with self._lock:
            if self._state is SessionState.MEASURING:
                raise RuntimeError("Cannot reset while measuring.  Call stop() first.")
            self._reset()
            self._state = SessionState.IDLE

    # ------------------------------------------------------------------
    # Frame intake
    # ------------------------------------------------------------------

    def on_frame(self, pixels, width: int, height: int, timestamp_ms: float) -> None:
        """Process one RGBA frame captured at *timestamp_ms* (monotonic)."""
        brightness = self.reducer.reduce(pixels, width, height)
        if brightness is None:
            logger.debug("Frame skipped: %s.", SignalIssue.NO_FRAME_DATA.value)
            return
        self.push_sample(timestamp_ms, brightness)

    def push_sample(self, timestamp_ms: float, brightness: float) -> None:
        """Feed one already-reduced brightness sample through the pipeline."""
        live = None
        with self._lock:
            if self._state is not SessionState.MEASURING:
                logger.debug("Sample at %.1f ms ignored in state %s.", timestamp_ms, self._state.value)
                return
            if not self.buffer.push(Sample(timestamp_ms, brightness)):
                return
            detection = self.detector.update(self.buffer, timestamp_ms)
            if detection.outcome is PeakOutcome.INTERVAL:
                if self.tracker.add(detection.interval_ms):
                    live = self.estimator.live_bpm(self.tracker)
                    self._live_bpm = live

        if live is None or self.on_live_bpm_changed is None:
            return
        with self._events:
            # A stop() that slipped in after _lock was released has already
            # reported the end of the session.
            if self._state is SessionState.MEASURING:
                self.on_live_bpm_changed(live)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_measuring(self) -> bool:
        return self._state is SessionState.MEASURING

    @property
    def live_bpm(self) -> Optional[int]:
        return self._live_bpm

    @property
    def result(self) -> Optional[SessionResult]:
        """Result of the last finished session."""
        return self._result

    def _reset(self) -> None:
        self.buffer.clear()
        self.detector.reset()
        self.tracker.clear()
        self._live_bpm = None
        self._result = None
