"""
Frame reducer.

Turns one captured frame into a single brightness sample: the arithmetic
mean of the red channel over every pixel.  With a fingertip covering the
lens the image is a nearly uniform red field, and its brightness rises and
falls with the blood volume in the capillaries.
"""

from __future__ import annotations

import logging
from typing import Optional

import numpy as np

logger = logging.getLogger(__name__)

RGBA_CHANNELS = 4


class FrameReducer:
    """
    Mean red-channel reducer.

    Parameters
    ----------
    channels:
        Number of interleaved channels per pixel (4 for RGBA).
    red_index:
        Position of the red channel within a pixel.
    """

    def __init__(self, channels: int = RGBA_CHANNELS, red_index: int = 0) -> None:
        if not 0 <= red_index < channels:
            raise ValueError(f"red_index {red_index} outside 0..{channels - 1}")
        self.channels = channels
        self.red_index = red_index

    def reduce(self, pixels, width: int, height: int) -> Optional[float]:
        """
        Return the mean red intensity of *pixels*, or *None* for an empty frame.

        Parameters
        ----------
        pixels:
            Interleaved pixel data: any bytes-like object or ``numpy`` array
            holding ``width * height * channels`` values (a flat buffer or an
            ``H × W × channels`` array).  It is only read, never modified.
        width, height:
            Frame dimensions in pixels.
        """
        n_pixels = width * height
        if n_pixels <= 0:
            logger.debug("Empty frame (%dx%d) – no sample.", width, height)
            return None

        if isinstance(pixels, np.ndarray):
            data = pixels.reshape(-1)
        else:
            data = np.frombuffer(pixels, dtype=np.uint8)

        expected = n_pixels * self.channels
        if data.size != expected:
            raise ValueError(
                f"Pixel buffer holds {data.size} values, expected {expected} "
                f"({width}x{height}x{self.channels})"
            )

        red = data[self.red_index::self.channels]
        return float(np.mean(red, dtype=np.float64))
