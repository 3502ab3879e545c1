"""
Synthetic fingertip frame source.

Produces RGBA frames whose red channel follows a cosine pulse, so the
whole pipeline can be exercised without a camera (``--simulate``) and in
tests.  Timestamps are synthetic: frame *i* is stamped ``i * 1000 / fps``.
"""

from __future__ import annotations

import logging
import time
from typing import Generator, Optional, Tuple

import numpy as np

logger = logging.getLogger(__name__)


class SyntheticSource:
    """
    Parameters
    ----------
    bpm:
        Pulse rate of the simulated signal.  ``0`` gives a flat signal.
    fps:
        Frame rate.
    duration_s:
        Stop after this many seconds of frames (*None* = endless).
    resolution:
        (width, height) of generated frames.
    base:
        Mean red intensity (0 – 255).
    amplitude:
        Peak deviation of the pulse around *base*.
    noise:
        Standard deviation of Gaussian noise added to every frame's red level.
    realtime:
        Sleep between frames so they arrive at *fps*.
    seed:
        Seed for the noise generator.
    """

    def __init__(
        self,
        bpm: float = 72.0,
        fps: float = 30.0,
        duration_s: Optional[float] = None,
        resolution: Tuple[int, int] = (64, 48),
        base: float = 150.0,
        amplitude: float = 20.0,
        noise: float = 0.0,
        realtime: bool = False,
        seed: Optional[int] = None,
    ) -> None:
        self.bpm = bpm
        self.fps = fps
        self.duration_s = duration_s
        self.resolution = resolution
        self.base = base
        self.amplitude = amplitude
        self.noise = noise
        self.realtime = realtime
        self._rng = np.random.default_rng(seed)
        self._open = False

    def open(self) -> None:
        self._open = True
        logger.info(
            "Synthetic source opened – %.0f BPM, fps=%.0f, noise=%.1f",
            self.bpm, self.fps, self.noise,
        )

    def close(self) -> None:
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def __enter__(self) -> "SyntheticSource":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    def red_level(self, t_s: float) -> float:
        """Noise-free red intensity at *t_s* seconds."""
        return self.base + self.amplitude * np.cos(2 * np.pi * (self.bpm / 60.0) * t_s)

    def frames(self) -> Generator[Tuple[np.ndarray, float], None, None]:
        """Yield ``(rgba_frame, timestamp_ms)`` while the source is open."""
        w, h = self.resolution
        n_frames = None if self.duration_s is None else int(self.duration_s * self.fps)
        i = 0
        while self._open and (n_frames is None or i < n_frames):
            level = self.red_level(i / self.fps)
            if self.noise > 0:
                level += self._rng.normal(0.0, self.noise)
            frame = np.empty((h, w, 4), dtype=np.uint8)
            frame[:, :, 0] = int(np.clip(round(level), 0, 255))
            frame[:, :, 1] = 40
            frame[:, :, 2] = 30
            frame[:, :, 3] = 255
            yield frame, i * 1000.0 / self.fps
            i += 1
            if self.realtime:
                time.sleep(1.0 / self.fps)
