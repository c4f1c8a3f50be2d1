"""
Session module data models.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from shared.models import Timestamp


class DeviceInfo(BaseModel):
    """
    Coarse device and browser signals sent with a request.

    Any field may be missing; missing fields hash as empty strings and are
    preserved from the previous session record when a session is updated.
    """

    user_agent: Optional[str] = None
    ip: Optional[str] = None
    screen_resolution: Optional[str] = None
    timezone: Optional[str] = None
    language: Optional[str] = None
    platform: Optional[str] = None

    model_config = {"frozen": True}


class Session(BaseModel):
    """
    Stored session document (``sessions/{user_id}``).

    The key IS the user ID, so a user can have at most one session.
    ``user_id`` repeats the key and must always equal it.
    """

    user_id: str = Field(..., description="Owner; equals the document key")
    fingerprint: str = Field(..., description="Device fingerprint hash")
    user_agent: Optional[str] = None
    ip: Optional[str] = None
    created_at: Timestamp
    last_active: Timestamp
    expires_at: Timestamp


class SessionStatus(str, Enum):
    VALID = "valid"
    EXPIRED = "expired"
    FINGERPRINT_MISMATCH = "fingerprint_mismatch"
    NOT_FOUND = "not_found"


class SessionValidation(BaseModel):
    """Outcome of checking a presented fingerprint against the session."""

    status: SessionStatus
    session: Optional[Session] = None

    @property
    def is_valid(self) -> bool:
        return self.status == SessionStatus.VALID


class SessionInfo(BaseModel):
    """Session details returned to its owner."""

    session_id: str
    user_agent: Optional[str] = None
    ip: Optional[str] = None
    created_at: Timestamp
    last_active: Timestamp
    expires_at: Timestamp

    @classmethod
    def from_session(cls, session: Session) -> "SessionInfo":
        return cls(
            session_id=session.user_id,
            user_agent=session.user_agent,
            ip=session.ip,
            created_at=session.created_at,
            last_active=session.last_active,
            expires_at=session.expires_at,
        )
