"""
Camera frame source.

Wraps OpenCV ``VideoCapture`` and yields RGBA frames together with a
monotonic capture timestamp in milliseconds, which is what
:meth:`pulse_monitor.engine.PulseEngine.on_frame` consumes.
"""

from __future__ import annotations

import logging
import time
from typing import Generator, Tuple

import cv2
import numpy as np

logger = logging.getLogger(__name__)

MAX_FAILED_READS = 10


class CaptureUnavailableError(RuntimeError):
    """The capture device could not be opened (missing, busy or not permitted)."""


class Camera:
    """
    Thin wrapper around an OpenCV capture device.

    Parameters
    ----------
    resolution:
        (width, height) requested from the device.
    fps:
        Requested frame rate.  Actual rate may differ slightly.
    camera_index:
        OpenCV device index.
    """

    def __init__(
        self,
        resolution: Tuple[int, int] = (640, 480),
        fps: int = 30,
        camera_index: int = 0,
    ) -> None:
        self.resolution = resolution
        self.fps = fps
        self.camera_index = camera_index
        self._cap: "cv2.VideoCapture | None" = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def open(self) -> None:
        """Initialise the capture device."""
        cap = cv2.VideoCapture(self.camera_index)
        if not cap.isOpened():
            cap.release()
            raise CaptureUnavailableError(
                f"Cannot open video capture device index={self.camera_index}"
            )
        w, h = self.resolution
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, w)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, h)
        cap.set(cv2.CAP_PROP_FPS, self.fps)
        self._cap = cap
        logger.info(
            "Camera opened – index=%d resolution=%s fps=%d",
            self.camera_index, self.resolution, self.fps,
        )

    def close(self) -> None:
        """Release the capture device."""
        if self._cap is None:
            return
        self._cap.release()
        self._cap = None
        logger.info("Camera closed.")

    @property
    def is_open(self) -> bool:
        return self._cap is not None

    def __enter__(self) -> "Camera":
        self.open()
        return self

    def __exit__(self, *_) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Frame acquisition
    # ------------------------------------------------------------------

    def read_frame(self) -> "np.ndarray | None":
        """
        Capture a single frame.

        Returns
        -------
        numpy.ndarray
            RGBA image array (H × W × 4, dtype uint8), or *None* on failure.
        """
        if self._cap is None:
            raise RuntimeError("Camera is not open.  Call open() first.")
        ok, frame = self._cap.read()
        if not ok:
            logger.warning("VideoCapture.read() returned False.")
            return None
        return cv2.cvtColor(frame, cv2.COLOR_BGR2RGBA)

    def frames(self) -> Generator[Tuple[np.ndarray, float], None, None]:
        """
        Yield ``(rgba_frame, timestamp_ms)`` until the camera is closed or
        keeps failing.
        """
        failed = 0
        while self._cap is not None:
            frame = self.read_frame()
            if frame is None:
                failed += 1
                if failed >= MAX_FAILED_READS:
                    logger.error(
                        "Camera returned %d consecutive empty frames – aborting.",
                        MAX_FAILED_READS,
                    )
                    break
                continue
            failed = 0
            yield frame, time.monotonic() * 1000.0
