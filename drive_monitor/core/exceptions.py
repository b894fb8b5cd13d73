"""Custom exception classes for drive-monitor."""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional


class MonitorError(Exception):
    """Base exception for drive-monitor."""

    def __init__(
        self, message: str, recoverable: bool = True, details: Optional[Dict[str, Any]] = None
    ):
        """
        Initialize monitor error.

        Args:
            message: Error message
            recoverable: Whether the error is recoverable with retry
            details: Additional error details
        """
        self.message = message
        self.recoverable = recoverable
        self.details = details or {}
        self.timestamp = datetime.now(timezone.utc).isoformat()
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "recoverable": self.recoverable,
            "details": self.details,
            "timestamp": self.timestamp,
        }


class ConfigurationError(MonitorError):
    """Configuration is missing or invalid."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message, recoverable=False)


# --- Authentication -------------------------------------------------------


class AuthError(MonitorError):
    """Login state machine failed."""

    def __init__(
        self,
        message: str = "Login failed",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class CredentialsRejectedError(AuthError):
    """The identity provider rejected the submitted credentials."""

    def __init__(self, reason: str = ""):
        message = "Credentials rejected by identity provider"
        if reason:
            message += f": {reason}"
        super().__init__(message, recoverable=False, details={"reason": reason})


class FieldNotFoundError(AuthError):
    """A login form element was not found with any known selector."""

    def __init__(self, selector_name: str, tried_selectors: Optional[List[str]] = None):
        """
        Initialize field not found error.

        Args:
            selector_name: Name of the selector that was not found
            tried_selectors: List of selector strings that were tried
        """
        self.selector_name = selector_name
        self.tried_selectors = tried_selectors or []
        message = f"Field '{selector_name}' not found."
        if self.tried_selectors:
            message += f" Tried: {', '.join(self.tried_selectors)}"
        super().__init__(
            message,
            recoverable=True,
            details={"selector_name": selector_name, "tried_selectors": self.tried_selectors},
        )


class LoginTimeoutError(AuthError):
    """A bounded wait in the login flow elapsed."""

    def __init__(self, step: str, timeout: Optional[float] = None):
        self.step = step
        message = f"Login timed out during {step}"
        if timeout is not None:
            message += f" after {timeout:g}s"
        super().__init__(message, recoverable=True, details={"step": step, "timeout": timeout})


# --- CAPTCHA ---------------------------------------------------------------


class CaptchaError(MonitorError):
    """Captcha handling failed."""

    def __init__(
        self,
        message: str = "Captcha verification failed",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class CaptchaServiceError(CaptchaError):
    """The automated solving service failed or returned no token."""

    def __init__(self, message: str = "Captcha solving service failed"):
        super().__init__(message, recoverable=True)


class CaptchaUnresolvedError(AuthError, CaptchaError):
    """A challenge was still present when the resolution budget ran out."""

    def __init__(self, message: str = "Captcha was not resolved", timeout: Optional[float] = None):
        details = {"timeout": timeout} if timeout is not None else {}
        super().__init__(message, recoverable=True, details=details)


# --- Availability checks ---------------------------------------------------


class CheckError(MonitorError):
    """Availability check failed."""

    def __init__(
        self,
        message: str = "Availability check failed",
        recoverable: bool = True,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, recoverable, details)


class NavigationFailedError(CheckError):
    """Navigating to or refreshing the listing page failed."""

    def __init__(self, url: str, reason: str = ""):
        message = f"Navigation to {url} failed"
        if reason:
            message += f": {reason}"
        super().__init__(message, details={"url": url})


class ContentUnavailableError(CheckError):
    """The listing page content could not be retrieved."""

    def __init__(self, message: str = "Page content unavailable"):
        super().__init__(message)


class SessionExpiredError(CheckError):
    """The listing request was redirected to the identity provider."""

    def __init__(self, url: str = ""):
        super().__init__("Session has expired", details={"url": url})


# --- Notifications ---------------------------------------------------------


class NotificationError(MonitorError):
    """Notification delivery failed."""

    def __init__(self, message: str = "Notification failed", recoverable: bool = True):
        super().__init__(message, recoverable)


class SinkUnavailableError(NotificationError):
    """The notification sink could not deliver the message."""

    def __init__(self, sink: str, reason: str = ""):
        self.sink = sink
        message = f"Notification sink '{sink}' unavailable"
        if reason:
            message += f": {reason}"
        super().__init__(message)


# --- Browser ---------------------------------------------------------------


class BrowserError(MonitorError):
    """The controlled browser failed to perform an operation."""

    def __init__(self, operation: str, reason: str = ""):
        self.operation = operation
        message = f"Browser operation '{operation}' failed"
        if reason:
            message += f": {reason}"
        super().__init__(message, recoverable=True, details={"operation": operation})
