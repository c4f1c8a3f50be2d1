"""
Membership repository for document access.

``lookup`` is the only way the rest of the code reads a membership slot. It
checks that the record stored at a key names that same user; a record that
names someone else is reported as MISMATCHED, logged as a security anomaly,
and grants nothing.
"""

from datetime import datetime
from typing import Optional

from modules.users.models import UserRole
from shared.models import format_timestamp
from shared.repository import BaseRepository
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)
from shared.store import Transaction

from .models import MembershipLookup, MembershipRecord, MembershipStatus

MEMBERSHIP_COLLECTIONS = {
    UserRole.SUPERADMIN: "superadmins",
    UserRole.ADMIN: "admins",
    UserRole.COUNSELOR: "counselors",
}

# Written by every bootstrap so concurrent bootstraps conflict on commit.
BOOTSTRAP_LOCK = ("system", "superadmin_bootstrap")


def collection_for(role: UserRole) -> str:
    if role not in MEMBERSHIP_COLLECTIONS:
        raise ValueError(f"Role {role.value} has no membership collection")
    return MEMBERSHIP_COLLECTIONS[role]


class MembershipRepository(BaseRepository[MembershipRecord]):
    """Repository for the superadmin, admin and counselor collections."""

    model = MembershipRecord

    async def lookup(
        self,
        role: UserRole,
        user_id: str,
        tx: Optional[Transaction] = None,
    ) -> MembershipLookup:
        collection = collection_for(role)
        if tx is not None:
            data = await tx.get(collection, user_id)
        else:
            data = await self._store.get(collection, user_id)

        if data is None:
            return MembershipLookup(role=role, user_id=user_id, status=MembershipStatus.ABSENT)

        stored_user_id = data.get("user_id")
        if stored_user_id != user_id:
            log_security_event(
                SecurityEventType.MEMBERSHIP_ANOMALY,
                SecurityEventSeverity.HIGH,
                user_id=user_id,
                collection=collection,
                stored_user_id=stored_user_id,
            )
            return MembershipLookup(
                role=role,
                user_id=user_id,
                status=MembershipStatus.MISMATCHED,
                stored_user_id=stored_user_id,
            )

        return MembershipLookup(
            role=role,
            user_id=user_id,
            status=MembershipStatus.PRESENT,
            record=self.from_document(data),
            stored_user_id=stored_user_id,
        )

    def grant_in(self, tx: Transaction, role: UserRole, record: MembershipRecord) -> None:
        tx.set(collection_for(role), record.user_id, self.to_document(record))

    def revoke_in(self, tx: Transaction, role: UserRole, user_id: str) -> None:
        tx.delete(collection_for(role), user_id)

    def set_permissions_in(
        self,
        tx: Transaction,
        role: UserRole,
        user_id: str,
        permissions: list[str],
        now: datetime,
    ) -> None:
        tx.update(
            collection_for(role),
            user_id,
            {"permissions": permissions, "updated_at": format_timestamp(now)},
        )

    async def claim_bootstrap_in(self, tx: Transaction, user_id: str, now: datetime) -> None:
        collection, key = BOOTSTRAP_LOCK
        await tx.get(collection, key)
        tx.set(collection, key, {"user_id": user_id, "claimed_at": format_timestamp(now)})

    async def list_members(self, role: UserRole) -> list[MembershipRecord]:
        """Members of a role, skipping records stored under the wrong key."""
        docs = await self._store.query(collection_for(role))
        members = [
            self.from_document(doc.data)
            for doc in docs
            if doc.data.get("user_id") == doc.key
        ]
        members.sort(key=lambda m: m.created_at)
        return members
