"""
User repository for document access.

Encapsulates reads and writes of the ``users`` collection. Like every
repository, it performs no authorization checks.
"""

from datetime import datetime
from typing import Optional

from shared.models import format_timestamp
from shared.repository import BaseRepository
from shared.store import Transaction, where

from .models import UserRecord, UserRole

USERS_COLLECTION = "users"


class UserRepository(BaseRepository[UserRecord]):
    """Repository for user records keyed by identity-provider subject ID."""

    collection = USERS_COLLECTION
    model = UserRecord

    async def get(self, user_id: str, tx: Optional[Transaction] = None) -> Optional[UserRecord]:
        return await self._get(user_id, tx)

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        docs = await self._store.query(self.collection, where("email", "==", email.lower()))
        for doc in docs:
            user = self.from_document(doc.data)
            if not user.deleted:
                return user
        return None

    async def list_users(self, limit: int = 100, include_deleted: bool = False) -> list[UserRecord]:
        docs = await self._store.query(self.collection)
        users = [self.from_document(doc.data) for doc in docs]
        if not include_deleted:
            users = [u for u in users if not u.deleted]
        users.sort(key=lambda u: u.created_at, reverse=True)
        return users[:limit]

    async def create(self, user: UserRecord) -> UserRecord:
        await self._store.set(self.collection, user.id, self.to_document(user))
        return user

    async def update(self, user_id: str, changes: dict, now: datetime) -> None:
        """Merge plain field changes into a user document."""
        partial = {**changes, "updated_at": format_timestamp(now)}
        await self._store.update(self.collection, user_id, partial)

    def set_role_in(self, tx: Transaction, user_id: str, role: UserRole, now: datetime) -> None:
        tx.update(
            self.collection,
            user_id,
            {"role": role.value, "updated_at": format_timestamp(now)},
        )
