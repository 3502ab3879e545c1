"""
Tests for the preview overlay.
Run with:  pytest tests/test_visualizer.py
"""

from __future__ import annotations

import numpy as np

from pulse_monitor.signal_buffer import Sample, SignalBuffer
from pulse_monitor.visualizer import Visualizer


class TestVisualizer:

    def _blank(self) -> np.ndarray:
        return np.zeros((480, 640, 3), dtype=np.uint8)

    def test_fill_bar_tracks_buffer(self):
        buf = SignalBuffer(fps=10.0, retention_seconds=1.0)
        for i in range(5):
            buf.push(Sample(float(i), 100.0))
        frame = Visualizer().draw(
            self._blank(), live_bpm=None, seconds_left=18, status="",
            measuring=True, buffer_fill=buf.fill_ratio,
        )
        # Bar row sits just above the waveform strip.
        assert tuple(frame[392, 20]) == (200, 160, 0)        # filled part
        assert tuple(frame[392, 600]) == (30, 30, 30)        # empty part

    def test_no_fill_bar_once_buffer_full(self):
        frame = Visualizer().draw(
            self._blank(), live_bpm=72, seconds_left=5, status="",
            measuring=True, buffer_fill=1.0,
        )
        assert tuple(frame[392, 20]) == (0, 0, 0)

    def test_waveform_strip_drawn(self):
        signal = 100 + 5 * np.sin(np.linspace(0, 6 * np.pi, 150))
        frame = Visualizer().draw(
            self._blank(), live_bpm=None, seconds_left=0,
            status="Measurement stopped. Not enough data for a reading.",
            measuring=False, signal=signal,
        )
        assert tuple(frame[479, 0]) == (30, 30, 30)
