"""Polling loop and its wiring."""

from .builder import build_driver, playwright_factory
from .poll_loop import LoopState, PollLoopDriver

__all__ = ["LoopState", "PollLoopDriver", "build_driver", "playwright_factory"]
