"""
Session module interface.
"""

from typing import Optional, Protocol, runtime_checkable

from shared.store import Transaction

from .models import DeviceInfo, Session, SessionValidation


@runtime_checkable
class ISessionStore(Protocol):
    """
    Interface for the single-session-per-user store.

    Sessions are keyed by user ID; there is no separate session ID namespace.
    """

    async def ensure_session(
        self,
        user_id: str,
        device: DeviceInfo,
        fingerprint: str,
        tx: Optional[Transaction] = None,
    ) -> Session:
        """
        Create the user's session or rebind the existing one.

        Args:
            user_id: Owner and key of the session
            device: Signals of the device signing in
            fingerprint: Fingerprint computed from ``device``
            tx: Enclosing transaction; a new one is used when omitted

        Returns:
            The session as it will be stored
        """
        ...

    async def validate_session(
        self, user_id: str, presented_fingerprint: str
    ) -> SessionValidation:
        """
        Check the user's session against the fingerprint of the current request.

        Expired sessions are deleted. Mismatched sessions are kept.
        """
        ...

    async def touch(self, user_id: str) -> None:
        """Refresh ``last_active`` after a valid request."""
        ...

    async def terminate(self, user_id: str, tx: Optional[Transaction] = None) -> None:
        """Delete the user's session. Idempotent."""
        ...

    async def get_session(self, user_id: str) -> Optional[Session]:
        """Read the user's session without validating it."""
        ...
