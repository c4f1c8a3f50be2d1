"""
Session store implementation.

One session per user, stored at ``sessions/{user_id}``. The lifecycle is:

    NoSession --ensure_session--> Active --valid request--> Active
    Active --logout / inactivity / forced revocation--> Terminated

Only ``ensure_session`` leaves Terminated.

Validation is deliberately asymmetric: an expired session is deleted, but
a fingerprint mismatch only rejects the request. Deleting on mismatch would
let anyone replaying a token from another device evict the legitimate
session.
"""

import hmac
import logging
from datetime import timedelta
from typing import Optional

from shared.config import Settings, get_settings
from shared.models import Clock, utcnow
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)
from shared.store import Transaction

from .interfaces import ISessionStore
from .models import DeviceInfo, Session, SessionStatus, SessionValidation
from .repository import SessionRepository

logger = logging.getLogger(__name__)


class SessionStore(ISessionStore):
    """Session store on top of SessionRepository."""

    def __init__(
        self,
        repository: SessionRepository,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ):
        self._repo = repository
        self._settings = settings or get_settings()
        self._clock = clock

    @property
    def inactivity_timeout(self) -> timedelta:
        return timedelta(minutes=self._settings.session_inactivity_minutes)

    @property
    def session_ttl(self) -> timedelta:
        return timedelta(days=self._settings.session_ttl_days)

    async def ensure_session(
        self,
        user_id: str,
        device: DeviceInfo,
        fingerprint: str,
        tx: Optional[Transaction] = None,
    ) -> Session:
        if tx is None:
            return await self._repo.store.run_transaction(
                lambda t: self.ensure_session(user_id, device, fingerprint, t)
            )

        now = self._clock()
        existing = await self._repo.get(user_id, tx)

        if existing is not None and existing.user_id == user_id:
            session = existing.model_copy(
                update={
                    "fingerprint": fingerprint,
                    "user_agent": device.user_agent or existing.user_agent,
                    "ip": device.ip or existing.ip,
                    "last_active": now,
                    "expires_at": now + self.session_ttl,
                }
            )
        else:
            session = Session(
                user_id=user_id,
                fingerprint=fingerprint,
                user_agent=device.user_agent,
                ip=device.ip,
                created_at=now,
                last_active=now,
                expires_at=now + self.session_ttl,
            )

        self._repo.put_in(tx, session)
        return session

    async def validate_session(
        self, user_id: str, presented_fingerprint: str
    ) -> SessionValidation:
        session = await self._repo.get(user_id)
        if session is None:
            return SessionValidation(status=SessionStatus.NOT_FOUND)

        if session.user_id != user_id:
            log_security_event(
                SecurityEventType.MEMBERSHIP_ANOMALY,
                SecurityEventSeverity.HIGH,
                user_id=user_id,
                collection=self._repo.collection,
                stored_user_id=session.user_id,
            )
            return SessionValidation(status=SessionStatus.NOT_FOUND)

        now = self._clock()
        if now - session.last_active > self.inactivity_timeout or now >= session.expires_at:
            await self.terminate(user_id)
            logger.info("Session for %s expired (last active %s)", user_id, session.last_active)
            return SessionValidation(status=SessionStatus.EXPIRED, session=session)

        if not hmac.compare_digest(session.fingerprint, presented_fingerprint):
            log_security_event(
                SecurityEventType.SESSION_HIJACKING_ATTEMPT,
                SecurityEventSeverity.HIGH,
                user_id=user_id,
                session_ip=session.ip,
                session_user_agent=session.user_agent,
            )
            return SessionValidation(
                status=SessionStatus.FINGERPRINT_MISMATCH, session=session
            )

        return SessionValidation(status=SessionStatus.VALID, session=session)

    async def touch(self, user_id: str) -> None:
        async def stamp(tx: Transaction) -> None:
            if await self._repo.get(user_id, tx) is not None:
                self._repo.touch_in(tx, user_id, self._clock())

        await self._repo.store.run_transaction(stamp)

    async def terminate(self, user_id: str, tx: Optional[Transaction] = None) -> None:
        if tx is not None:
            self._repo.delete_in(tx, user_id)
            return
        await self._repo.delete(user_id)
        logger.debug("Terminated session for %s", user_id)

    async def get_session(self, user_id: str) -> Optional[Session]:
        session = await self._repo.get(user_id)
        if session is None or session.user_id != user_id:
            return None
        return session

    async def cleanup_expired_sessions(self) -> int:
        """Delete sessions past expiry or idle past the inactivity timeout."""
        now = self._clock()
        stale = await self._repo.list_stale(
            expired_before=now, idle_before=now - self.inactivity_timeout
        )
        if not stale:
            logger.info("No expired sessions found")
            return 0

        async def purge(tx: Transaction) -> None:
            for doc in stale:
                self._repo.delete_in(tx, doc.key)

        await self._repo.store.run_transaction(purge)
        logger.info("Cleaned up %d expired sessions", len(stale))
        return len(stale)
