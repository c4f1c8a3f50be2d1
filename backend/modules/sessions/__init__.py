"""
Sessions module.

Enforces one active session per user, keyed by the user ID, with
inactivity expiry and device-fingerprint checks.

Public API:
- ISessionStore: Interface for session operations
- DeviceInfo, Session, SessionStatus, SessionValidation: Models
- Session exceptions: SessionInvalidError, SessionMismatchError, SessionExpiredError
"""

from .interfaces import ISessionStore
from .models import DeviceInfo, Session, SessionInfo, SessionStatus, SessionValidation
from .exceptions import SessionInvalidError, SessionMismatchError, SessionExpiredError

__all__ = [
    # Interface
    "ISessionStore",
    # Models
    "DeviceInfo",
    "Session",
    "SessionInfo",
    "SessionStatus",
    "SessionValidation",
    # Exceptions
    "SessionInvalidError",
    "SessionMismatchError",
    "SessionExpiredError",
]
