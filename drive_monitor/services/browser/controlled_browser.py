"""Controlled browser capability consumed by the session and availability services."""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from drive_monitor.models.selector import SelectorSpec

# Storage state exported from a browser context ({"cookies": [...], "origins": [...]})
StateBlob = Dict[str, Any]


class ElementHandle(ABC):
    """A located page element."""

    @abstractmethod
    async def click(self) -> None:
        pass

    @abstractmethod
    async def type(self, text: str) -> None:
        """Replace the element's value with ``text``."""
        pass

    @abstractmethod
    async def wait_visible(self, timeout: float) -> bool:
        """
        Wait for the element to become visible.

        Args:
            timeout: Seconds to wait

        Returns:
            True if the element became visible in time
        """
        pass

    @abstractmethod
    async def get_attribute(self, name: str) -> Optional[str]:
        pass

    @abstractmethod
    async def is_enabled(self) -> bool:
        pass

    @abstractmethod
    async def is_visible(self) -> bool:
        pass

    @abstractmethod
    async def text(self) -> str:
        pass


class ControlledBrowser(ABC):
    """
    A single browser tab driven by an automation engine.

    Implementations raise :class:`~drive_monitor.core.exceptions.BrowserError`
    for engine failures so callers never depend on engine-specific errors.
    """

    @abstractmethod
    async def navigate(self, url: str, wait_until: str = "domcontentloaded") -> None:
        pass

    @abstractmethod
    async def refresh(self) -> None:
        pass

    @abstractmethod
    async def current_url(self) -> str:
        pass

    @abstractmethod
    async def content(self) -> str:
        """Return the full serialized page markup."""
        pass

    @abstractmethod
    async def find(self, spec: SelectorSpec) -> Optional[ElementHandle]:
        """
        Locate the first element matching any selector of ``spec``.

        Selectors are tried in order; returns None when none matches.
        """
        pass

    @abstractmethod
    async def execute_script(self, script: str, arg: Any = None) -> Any:
        """Evaluate a JavaScript function expression, passing ``arg`` as its parameter."""
        pass

    @abstractmethod
    async def export_state(self) -> StateBlob:
        pass

    @abstractmethod
    async def import_state(self, blob: StateBlob) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        """Release the browser. Safe to call more than once."""
        pass
