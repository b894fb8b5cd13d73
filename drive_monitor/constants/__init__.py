"""Constants for drive-monitor.

All classes and constants can be imported directly from this package:
    from drive_monitor.constants import Timeouts, Site, Selectors
"""

from .captcha import CaptchaConfig, CaptchaSignals
from .site import SOLD_OUT_MARKERS, Selectors, Site, StealthProfile
from .timing import Delays, Intervals, LoginBudget, Timeouts

__all__ = [
    "CaptchaConfig",
    "CaptchaSignals",
    "SOLD_OUT_MARKERS",
    "Selectors",
    "Site",
    "StealthProfile",
    "Delays",
    "Intervals",
    "LoginBudget",
    "Timeouts",
]
