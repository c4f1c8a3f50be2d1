"""
Refresh token repository for document access.

Refresh tokens are keyed by the SHA-256 hash of the raw token, so a
presented token is found with one keyed read.
"""

from datetime import datetime
from typing import Optional

from shared.models import format_timestamp
from shared.repository import BaseRepository
from shared.store import Transaction, where

from .models import RefreshTokenRecord

REFRESH_TOKENS_COLLECTION = "refresh_tokens"


class RefreshTokenRepository(BaseRepository[RefreshTokenRecord]):
    """Repository for refresh token records."""

    collection = REFRESH_TOKENS_COLLECTION
    model = RefreshTokenRecord

    async def get(self, token_hash: str, tx: Optional[Transaction] = None) -> Optional[RefreshTokenRecord]:
        return await self._get(token_hash, tx)

    def add_in(self, tx: Transaction, record: RefreshTokenRecord) -> None:
        tx.set(self.collection, record.token_hash, self.to_document(record))

    def revoke_in(self, tx: Transaction, token_hash: str, reason: str, now: datetime) -> None:
        tx.update(
            self.collection,
            token_hash,
            {
                "is_revoked": True,
                "revoked_at": format_timestamp(now),
                "revoked_reason": reason,
            },
        )

    def delete_in(self, tx: Transaction, token_hash: str) -> None:
        tx.delete(self.collection, token_hash)

    async def find_by_id(self, record_id: str) -> Optional[RefreshTokenRecord]:
        docs = await self._store.query(self.collection, where("id", "==", record_id))
        return self.from_document(docs[0].data) if docs else None

    async def list_live(self, user_id: str) -> list[RefreshTokenRecord]:
        """Tokens of a user that have not been revoked (expired ones included)."""
        docs = await self._store.query(
            self.collection,
            where("user_id", "==", user_id),
            where("is_revoked", "==", False),
        )
        return [self.from_document(doc.data) for doc in docs]

    async def list_expired(self, now: datetime) -> list[RefreshTokenRecord]:
        docs = await self._store.query(self.collection, where("expires_at", "<", now))
        return [self.from_document(doc.data) for doc in docs]
