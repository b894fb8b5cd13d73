"""drive-monitor - BMW Driving Center reservation availability monitor."""

import importlib as _importlib
from typing import TYPE_CHECKING, Any

__version__ = "1.0.0"

if TYPE_CHECKING:
    from .core.config.config_loader import load_config as load_config
    from .core.logger import setup_logging as setup_logging
    from .services.availability.checker import AvailabilityChecker as AvailabilityChecker
    from .services.monitor.poll_loop import PollLoopDriver as PollLoopDriver
    from .services.notification.coordinator import (
        NotificationCoordinator as NotificationCoordinator,
    )
    from .services.session.session_manager import SessionManager as SessionManager

# Explicit lazy-loading map: name -> (module_path, attribute_name)
_LAZY_MODULE_MAP = {
    "load_config": ("drive_monitor.core.config.config_loader", "load_config"),
    "setup_logging": ("drive_monitor.core.logger", "setup_logging"),
    "AvailabilityChecker": ("drive_monitor.services.availability.checker", "AvailabilityChecker"),
    "PollLoopDriver": ("drive_monitor.services.monitor.poll_loop", "PollLoopDriver"),
    "NotificationCoordinator": (
        "drive_monitor.services.notification.coordinator",
        "NotificationCoordinator",
    ),
    "SessionManager": ("drive_monitor.services.session.session_manager", "SessionManager"),
}

__all__ = list(_LAZY_MODULE_MAP.keys())


def __getattr__(name: str) -> Any:
    """Lazy import with explicit mapping - importlib based."""
    if name in _LAZY_MODULE_MAP:
        module_path, attr_name = _LAZY_MODULE_MAP[name]
        module = _importlib.import_module(module_path)
        attr = getattr(module, attr_name)
        globals()[name] = attr
        return attr
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
