"""Notification sinks and the cooldown-aware coordinator."""

from .base import EmailConfig, NotificationSink
from .channels.email import EmailChannel
from .coordinator import COOLDOWN, NotificationCoordinator

__all__ = ["COOLDOWN", "EmailChannel", "EmailConfig", "NotificationCoordinator", "NotificationSink"]
