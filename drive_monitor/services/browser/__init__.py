"""Controlled browser abstraction and its Playwright implementation."""

from .controlled_browser import ControlledBrowser, ElementHandle

__all__ = ["ControlledBrowser", "ElementHandle"]
