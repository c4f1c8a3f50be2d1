"""
Session repository for document access.
"""

from datetime import datetime
from typing import Optional

from shared.models import format_timestamp
from shared.repository import BaseRepository
from shared.store import StoredDocument, Transaction, where

from .models import Session

SESSIONS_COLLECTION = "sessions"


class SessionRepository(BaseRepository[Session]):
    """Repository for session documents keyed by user ID."""

    collection = SESSIONS_COLLECTION
    model = Session

    async def get(self, user_id: str, tx: Optional[Transaction] = None) -> Optional[Session]:
        return await self._get(user_id, tx)

    def put_in(self, tx: Transaction, session: Session) -> None:
        tx.set(self.collection, session.user_id, self.to_document(session))

    def delete_in(self, tx: Transaction, user_id: str) -> None:
        tx.delete(self.collection, user_id)

    async def delete(self, user_id: str) -> None:
        await self._store.delete(self.collection, user_id)

    async def list_stale(self, expired_before: datetime, idle_before: datetime) -> list[StoredDocument]:
        """Sessions past their absolute expiry or idle for too long."""
        expired = await self._store.query(
            self.collection, where("expires_at", "<", expired_before)
        )
        idle = await self._store.query(
            self.collection, where("last_active", "<", idle_before)
        )
        by_key = {doc.key: doc for doc in expired}
        by_key.update({doc.key: doc for doc in idle})
        return list(by_key.values())

    def touch_in(self, tx: Transaction, user_id: str, now: datetime) -> None:
        tx.update(self.collection, user_id, {"last_active": format_timestamp(now)})
