#!/usr/bin/env python3
"""
Pulse Monitor – main entry point.

Usage
-----
    python main.py [OPTIONS]

Options
-------
    --resolution WxH     Camera resolution (default: 640x480)
    --fps INT            Capture frame rate (default: 30)
    --duration INT       Measurement length in seconds (default: 20)
    --camera-index INT   OpenCV camera index (default: 0)
    --simulate BPM       Use a synthetic pulse instead of the camera
    --noise FLOAT        Noise level of the synthetic pulse
    --headless           Run without display window (log BPM to stdout)

Keyboard shortcuts (when a window is open)
------------------------------------------
    q / ESC  – stop the measurement early
"""

from __future__ import annotations

import argparse
import logging
import sys
import time

import cv2

from pulse_monitor.bpm_estimator import display_live
from pulse_monitor.camera import Camera
from pulse_monitor.session import MEASUREMENT_DURATION_S, MeasurementSession
from pulse_monitor.simulator import SyntheticSource
from pulse_monitor.visualizer import Visualizer

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s – %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("pulse_monitor")

WINDOW_NAME = "Pulse Monitor"


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fingertip pulse monitor (rPPG, red channel)",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("--resolution", default="640x480",
                        help="Camera resolution, e.g. 640x480")
    parser.add_argument("--fps", type=int, default=30,
                        help="Capture frame rate")
    parser.add_argument("--duration", type=int, default=MEASUREMENT_DURATION_S,
                        help="Measurement length in seconds")
    parser.add_argument("--camera-index", type=int, default=0,
                        help="OpenCV VideoCapture index")
    parser.add_argument("--simulate", type=float, default=None, metavar="BPM",
                        help="Feed a synthetic pulse at this rate instead of the camera")
    parser.add_argument("--noise", type=float, default=0.0,
                        help="Gaussian noise (red levels) added to the synthetic pulse")
    parser.add_argument("--headless", action="store_true",
                        help="No display window; log BPM to stdout only")
    return parser.parse_args(argv)


# ---------------------------------------------------------------------------
# Main loop
# ---------------------------------------------------------------------------

def run(args: argparse.Namespace) -> int:
    try:
        res_w, res_h = (int(v) for v in args.resolution.lower().split("x"))
    except ValueError:
        logger.error("Invalid --resolution format.  Use WxH, e.g. 640x480.")
        return 1
    resolution = (res_w, res_h)

    if args.simulate is not None:
        source = SyntheticSource(
            bpm=args.simulate,
            fps=float(args.fps),
            resolution=resolution,
            noise=args.noise,
            realtime=True,
        )
    else:
        source = Camera(resolution=resolution, fps=args.fps, camera_index=args.camera_index)

    vis = Visualizer(resolution=resolution)

    def on_live_bpm(bpm: int) -> None:
        if args.headless:
            ts = time.strftime("%H:%M:%S")
            print(f"[{ts}] BPM={display_live(bpm)}")

    def on_preview(frame, session: MeasurementSession) -> bool:
        bgr = cv2.cvtColor(frame, cv2.COLOR_RGBA2BGR)
        vis.draw(
            bgr,
            live_bpm=session.live_bpm,
            seconds_left=session.seconds_left,
            status=session.status,
            measuring=session.engine.is_measuring,
            signal=session.engine.buffer.values(),
            buffer_fill=session.engine.buffer.fill_ratio,
        )
        cv2.imshow(WINDOW_NAME, bgr)
        key = cv2.waitKey(1) & 0xFF
        return key not in (ord("q"), 27)        # q or ESC

    session = MeasurementSession(
        source,
        duration_s=args.duration,
        on_live_bpm=on_live_bpm,
        on_preview=None if args.headless else on_preview,
    )

    if not args.headless:
        cv2.namedWindow(WINDOW_NAME, cv2.WINDOW_NORMAL)
        cv2.resizeWindow(WINDOW_NAME, res_w, res_h)

    logger.info("Place your fingertip over the camera lens, covering it completely.")
    try:
        result = session.run()
    finally:
        if not args.headless:
            cv2.destroyAllWindows()

    print(session.status)
    if result is None:
        return 2
    return 0 if result.ok else 3


def main(argv: list[str] | None = None) -> int:
    return run(parse_args(argv))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    sys.exit(main())
