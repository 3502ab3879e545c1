"""
Measurement session controller.

Drives one fixed-length measurement: opens the frame source, runs a 1 Hz
countdown on a timer thread, feeds every frame to a :class:`PulseEngine`
and stops everything when the countdown expires, the source runs dry or
the caller asks to stop.

Stopping is ordered: frame intake is halted first (the engine's own
``stop()`` is a barrier), then the countdown is cancelled, then the final
estimate is computed.  The frame source is released by the thread that
reads from it.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

import numpy as np

from pulse_monitor.bpm_estimator import SessionResult, SignalIssue
from pulse_monitor.camera import CaptureUnavailableError
from pulse_monitor.engine import PulseEngine

logger = logging.getLogger(__name__)

MEASUREMENT_DURATION_S = 20

STATUS_READY = "Click 'Start Measurement' to begin."
STATUS_MEASURING = "Measuring... Please hold still."
STATUS_COMPLETE = "Measurement Complete. Your estimated pulse is {bpm} BPM."
STATUS_UNSTABLE = "Could not get a stable reading. Please try again in a well-lit room."
STATUS_NOT_ENOUGH_DATA = "Measurement stopped. Not enough data for a reading."
STATUS_CAMERA_REQUIRED = (
    "Camera access is required. Please enable camera permissions and try again."
)


def status_for(result: SessionResult) -> str:
    """User-facing message for a finished session."""
    if result.ok:
        return STATUS_COMPLETE.format(bpm=result.bpm)
    if result.reason is SignalIssue.OUT_OF_RANGE:
        return STATUS_UNSTABLE
    return STATUS_NOT_ENOUGH_DATA


class Countdown:
    """
    Wall-clock countdown ticking once per *interval* seconds.

    Each tick runs on its own ``threading.Timer``; *on_tick* receives the
    seconds left and *on_expired* fires once when it reaches zero.
    """

    def __init__(
        self,
        seconds: int,
        on_expired: Callable[[], Any],
        on_tick: Optional[Callable[[int], Any]] = None,
        interval: float = 1.0,
    ) -> None:
        self.seconds = seconds
        self.on_expired = on_expired
        self.on_tick = on_tick
        self.interval = interval
        self._left = seconds
        self._timer: Optional[threading.Timer] = None
        self._lock = threading.Lock()
        self._cancelled = False

    @property
    def seconds_left(self) -> int:
        return self._left

    def start(self) -> None:
        with self._lock:
            self._left = self.seconds
            self._cancelled = False
            self._schedule()

    def cancel(self) -> None:
        with self._lock:
            self._cancelled = True
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None

    def _schedule(self) -> None:
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._left -= 1
            left = self._left
            self._timer = None
        if self.on_tick is not None:
            self.on_tick(left)
        if left <= 0:
            logger.info("Countdown expired.")
            self.on_expired()
            return
        with self._lock:
            if not self._cancelled:
                self._schedule()


class MeasurementSession:
    """
    One measurement from start to result.

    Parameters
    ----------
    source:
        Frame source with ``open()``, ``close()``, ``fps`` and a ``frames()``
        generator of ``(rgba_frame, timestamp_ms)``; see
        :class:`~pulse_monitor.camera.Camera` and
        :class:`~pulse_monitor.simulator.SyntheticSource`.
    duration_s:
        Length of the countdown in seconds.
    on_live_bpm:
        Forwarded the live BPM after every detected beat interval.
    on_result:
        Called once with the :class:`SessionResult`.
    on_preview:
        Called with ``(frame, session)`` after each processed frame; return
        *False* to stop the measurement (e.g. the user pressed ``q``).
    engine_kwargs:
        Tuning parameters passed through to :class:`PulseEngine`.
    """

    def __init__(
        self,
        source,
        duration_s: int = MEASUREMENT_DURATION_S,
        on_live_bpm: Optional[Callable[[int], Any]] = None,
        on_result: Optional[Callable[[SessionResult], Any]] = None,
        on_preview: Optional[Callable[[np.ndarray, "MeasurementSession"], Any]] = None,
        **engine_kwargs: Any,
    ) -> None:
        self.source = source
        self.duration_s = duration_s
        self.on_live_bpm = on_live_bpm
        self.on_result = on_result
        self.on_preview = on_preview

        engine_kwargs.setdefault("fps", float(getattr(source, "fps", 30.0)))
        self.engine = PulseEngine(
            on_live_bpm_changed=self._handle_live_bpm,
            on_session_ended=self._handle_session_ended,
            **engine_kwargs,
        )
        self.countdown = Countdown(duration_s, on_expired=self.stop)
        self.status = STATUS_READY
        self.frames_processed = 0
        self._stop_requested = threading.Event()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def seconds_left(self) -> int:
        return self.countdown.seconds_left

    @property
    def live_bpm(self) -> Optional[int]:
        return self.engine.live_bpm

    @property
    def result(self) -> Optional[SessionResult]:
        return self.engine.result

    def run(self) -> Optional[SessionResult]:
        """
        Measure until the countdown expires or :meth:`stop` is called.

        Returns the session result, or *None* if the source could not be
        opened.
        """
        try:
            self.source.open()
        except CaptureUnavailableError as exc:
            logger.error("Capture unavailable: %s", exc)
            self.status = STATUS_CAMERA_REQUIRED
            return None

        self._stop_requested.clear()
        self.frames_processed = 0
        self.engine.start()
        self.status = STATUS_MEASURING
        self.countdown.start()

        try:
            for frame, timestamp_ms in self.source.frames():
                if self._stop_requested.is_set():
                    break
                height, width = frame.shape[:2]
                self.engine.on_frame(frame, width, height, timestamp_ms)
                self.frames_processed += 1
                if self.on_preview is not None and self.on_preview(frame, self) is False:
                    logger.info("Stop requested from preview.")
                    break
        except KeyboardInterrupt:
            logger.info("Interrupted.")
        finally:
            self.stop()
            self.source.close()

        return self.engine.result

    def stop(self) -> None:
        """Halt intake and the countdown, then compute the final estimate."""
        self._stop_requested.set()
        self.countdown.cancel()
        self.engine.stop()

    # ------------------------------------------------------------------
    # Engine callbacks
    # ------------------------------------------------------------------

    def _handle_live_bpm(self, bpm: int) -> None:
        if self.on_live_bpm is not None:
            self.on_live_bpm(bpm)

    def _handle_session_ended(self, result: SessionResult) -> None:
        self.status = status_for(result)
        logger.info(self.status)
        if self.on_result is not None:
            self.on_result(result)
