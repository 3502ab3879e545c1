"""
Tests for the measurement session controller and frame sources.
Run with:  pytest tests/test_session.py
"""

from __future__ import annotations

import threading

import numpy as np
import pytest

from pulse_monitor.bpm_estimator import SessionResult, SignalIssue
from pulse_monitor.camera import CaptureUnavailableError
from pulse_monitor.engine import SessionState
from pulse_monitor.session import (
    STATUS_CAMERA_REQUIRED,
    STATUS_NOT_ENOUGH_DATA,
    STATUS_UNSTABLE,
    Countdown,
    MeasurementSession,
    status_for,
)
from pulse_monitor.simulator import SyntheticSource


class _UnavailableSource:
    fps = 30

    def open(self):
        raise CaptureUnavailableError("permission denied")

    def close(self):
        pass

    def frames(self):
        raise AssertionError("frames() must not be called")


# ---------------------------------------------------------------------------
# SyntheticSource tests
# ---------------------------------------------------------------------------

class TestSyntheticSource:

    def test_frame_shape_and_timestamps(self):
        source = SyntheticSource(bpm=60, fps=30, duration_s=1, resolution=(8, 6))
        with source:
            frames = list(source.frames())
        assert len(frames) == 30
        frame, ts = frames[3]
        assert frame.shape == (6, 8, 4)
        assert frame.dtype == np.uint8
        assert ts == pytest.approx(100.0)

    def test_red_channel_follows_pulse(self):
        source = SyntheticSource(bpm=60, fps=30, duration_s=1, base=150, amplitude=20)
        with source:
            reds = [int(f[0, 0, 0]) for f, _ in source.frames()]
        assert reds[0] == 170
        assert reds[15] == 130

    def test_closed_source_yields_nothing(self):
        source = SyntheticSource(duration_s=1)
        assert list(source.frames()) == []


# ---------------------------------------------------------------------------
# Countdown tests
# ---------------------------------------------------------------------------

class TestCountdown:

    def test_expires_after_all_ticks(self):
        expired = threading.Event()
        ticks = []
        countdown = Countdown(3, on_expired=expired.set, on_tick=ticks.append, interval=0.01)
        countdown.start()
        assert expired.wait(timeout=2.0)
        assert ticks == [2, 1, 0]
        assert countdown.seconds_left == 0

    def test_cancel_prevents_expiry(self):
        expired = threading.Event()
        countdown = Countdown(5, on_expired=expired.set, interval=0.05)
        countdown.start()
        countdown.cancel()
        assert not expired.wait(timeout=0.4)


# ---------------------------------------------------------------------------
# MeasurementSession tests
# ---------------------------------------------------------------------------

class TestMeasurementSession:

    def test_clean_pulse_gives_reading(self):
        results, live = [], []
        source = SyntheticSource(bpm=72, fps=30, duration_s=10)
        session = MeasurementSession(
            source, duration_s=60, on_result=results.append, on_live_bpm=live.append,
        )
        result = session.run()
        assert result == SessionResult(bpm=72)
        assert results == [result]
        assert live and live[-1] == 72
        assert session.status == "Measurement Complete. Your estimated pulse is 72 BPM."
        assert session.frames_processed == 300
        assert not source.is_open

    def test_flat_signal_reports_not_enough_data(self):
        session = MeasurementSession(SyntheticSource(bpm=0, duration_s=5), duration_s=60)
        result = session.run()
        assert result.insufficient_signal
        assert session.status == STATUS_NOT_ENOUGH_DATA
        assert session.engine.state is SessionState.STOPPED_NO_RESULT

    def test_capture_unavailable(self):
        results = []
        session = MeasurementSession(_UnavailableSource(), on_result=results.append)
        assert session.run() is None
        assert session.status == STATUS_CAMERA_REQUIRED
        assert session.engine.state is SessionState.IDLE
        assert results == []

    def test_preview_can_stop_measurement(self):
        results = []
        session = MeasurementSession(
            SyntheticSource(bpm=72),            # endless
            duration_s=60,
            on_result=results.append,
            on_preview=lambda frame, s: s.frames_processed < 5,
        )
        result = session.run()
        assert session.frames_processed == 5
        assert result.reason is SignalIssue.TOO_FEW_INTERVALS
        assert len(results) == 1

    def test_countdown_expiry_stops_session(self):
        results = []
        source = SyntheticSource(bpm=72, fps=30, realtime=True)
        session = MeasurementSession(source, duration_s=1, on_result=results.append)
        result = session.run()
        assert result is not None
        assert len(results) == 1
        assert not session.engine.is_measuring
        assert not source.is_open

    def test_stop_twice_reports_once(self):
        results = []
        session = MeasurementSession(SyntheticSource(bpm=72, duration_s=10), on_result=results.append)
        session.run()
        session.stop()
        assert len(results) == 1


def test_status_messages():
    assert status_for(SessionResult(bpm=65)).endswith("65 BPM.")
    assert status_for(SessionResult.insufficient(SignalIssue.OUT_OF_RANGE)) == STATUS_UNSTABLE
    assert status_for(SessionResult.insufficient(SignalIssue.TOO_FEW_INTERVALS)) == STATUS_NOT_ENOUGH_DATA
