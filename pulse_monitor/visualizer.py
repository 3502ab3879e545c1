"""
Real-time overlay visualiser.

Draws onto each preview frame:
  • The live BPM readout (``--`` until a plausible value exists).
  • Seconds left in the measurement.
  • A status line.
  • A scrolling strip of the raw red-channel signal.
"""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from pulse_monitor.bpm_estimator import display_live


# ---------------------------------------------------------------------------
# Colour palette (BGR)
# ---------------------------------------------------------------------------
_RED    = (60,  60, 230)
_CYAN   = (200, 160,  0)
_WHITE  = (255, 255, 255)
_BLACK  = (0, 0, 0)
_GREY   = (170, 170, 170)
_DARK   = (30, 30, 30)


class Visualizer:
    """
    Draws the measurement UI onto OpenCV BGR frames in-place.

    Parameters
    ----------
    resolution:
        (width, height) of the preview frame.
    waveform_height:
        Pixel height of the signal strip at the bottom of the frame.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        waveform_height: int = 80,
    ) -> None:
        self.w, self.h = resolution
        self.waveform_height = waveform_height

    def draw(
        self,
        frame: np.ndarray,
        live_bpm: Optional[int],
        seconds_left: int,
        status: str,
        measuring: bool,
        signal: Optional[np.ndarray] = None,
        buffer_fill: float = 1.0,
    ) -> np.ndarray:
        """
        Annotate *frame* in-place and return it.

        Parameters
        ----------
        frame:
            BGR preview frame.
        live_bpm:
            Latest live estimate, or *None*.
        seconds_left:
            Countdown value.
        status:
            Status message shown when not measuring.
        measuring:
            Whether a session is in progress.
        signal:
            Recent red-channel samples, oldest first.
        buffer_fill:
            How full the signal buffer is (0 – 1).  A loading bar is drawn
            until it is full.
        """
        if measuring:
            self._draw_bpm(frame, live_bpm)
            cv2.putText(
                frame, f"Time remaining: {seconds_left}s",
                (16, 88), cv2.FONT_HERSHEY_SIMPLEX, 0.6, _CYAN, 2, cv2.LINE_AA,
            )
        else:
            cv2.putText(
                frame, status,
                (16, 40), cv2.FONT_HERSHEY_SIMPLEX, 0.5, _WHITE, 1, cv2.LINE_AA,
            )

        if measuring and buffer_fill < 1.0:
            self._draw_fill_bar(frame, buffer_fill)
        if signal is not None and len(signal) > 1:
            self._draw_waveform(frame, signal)
        return frame

    def _draw_bpm(self, frame: np.ndarray, bpm: Optional[int]) -> None:
        text = f"{display_live(bpm)} BPM"
        cv2.putText(
            frame, text,
            (16, 56), cv2.FONT_HERSHEY_SIMPLEX, 1.6, _BLACK, 5, cv2.LINE_AA,
        )
        cv2.putText(
            frame, text,
            (16, 56), cv2.FONT_HERSHEY_SIMPLEX, 1.6, _RED, 3, cv2.LINE_AA,
        )

    def _draw_fill_bar(self, frame: np.ndarray, fill: float) -> None:
        bar_w = int((self.w - 32) * min(max(fill, 0.0), 1.0))
        y0, y1 = self.h - self.waveform_height - 12, self.h - self.waveform_height - 4
        cv2.rectangle(frame, (16, y0), (self.w - 16, y1), _DARK, -1)
        cv2.rectangle(frame, (16, y0), (16 + bar_w, y1), _CYAN, -1)
        cv2.putText(
            frame, "buffer",
            (16, y0 - 2), cv2.FONT_HERSHEY_SIMPLEX, 0.35, _CYAN, 1, cv2.LINE_AA,
        )

    def _draw_waveform(self, frame: np.ndarray, signal: np.ndarray) -> None:
        """Draw the red-mean signal in a dark strip at the bottom of the frame."""
        panel_top = self.h - self.waveform_height
        cv2.rectangle(frame, (0, panel_top), (self.w, self.h), _DARK, -1)

        mn, mx = signal.min(), signal.max()
        rng = mx - mn if mx != mn else 1.0
        norm = (signal - mn) / rng

        margin = 6
        plot_h = self.waveform_height - 2 * margin
        xs = np.linspace(0, self.w - 1, len(norm)).astype(np.int32)
        ys = (panel_top + margin + (1.0 - norm) * plot_h).astype(np.int32)

        pts = np.column_stack([xs, ys])
        cv2.polylines(frame, [pts[:, None, :]], False, _RED, 1, cv2.LINE_AA)
        cv2.putText(
            frame, "red",
            (4, panel_top + 14), cv2.FONT_HERSHEY_SIMPLEX, 0.4, _GREY, 1, cv2.LINE_AA,
        )
