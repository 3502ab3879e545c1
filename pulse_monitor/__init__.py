"""
Pulse Monitor — fingertip rPPG heart-rate estimation.
Press a fingertip against the camera lens; the mean red-channel brightness
of each frame carries the blood-volume pulse, and a time-domain peak
detector turns it into a BPM reading.
"""

from pulse_monitor.engine import PulseEngine, SessionState
from pulse_monitor.bpm_estimator import SessionResult

__version__ = "0.1.0"
__author__ = "pulse_monitor"

__all__ = ["PulseEngine", "SessionResult", "SessionState"]
