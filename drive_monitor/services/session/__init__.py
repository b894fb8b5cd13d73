"""Authenticated session lifecycle."""

from .session_manager import LoginState, ProbeResult, SessionManager
from .session_store import SessionStore

__all__ = ["LoginState", "ProbeResult", "SessionManager", "SessionStore"]
