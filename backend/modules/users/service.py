"""
User service implementation.

Owns the ``users`` collection: creation on first verified sign-in or
registration, profile updates, activity stamps, disabling and soft
deletion. Role changes are NOT made here; they go through the roles
module so membership records stay consistent with the role field.
"""

import logging
from typing import Optional

from shared.models import Clock, format_timestamp, utcnow

from .exceptions import UserNotFoundError
from .interfaces import IUserService
from .models import NewUser, UpdateProfileRequest, UserRecord, UserRole
from .repository import UserRepository

logger = logging.getLogger(__name__)


class UserService(IUserService):
    """User record service on top of UserRepository."""

    def __init__(self, repository: UserRepository, clock: Clock = utcnow):
        self._repo = repository
        self._clock = clock

    @property
    def repository(self) -> UserRepository:
        return self._repo

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        user = await self._repo.get(user_id)
        if user is None or user.deleted:
            return None
        return user

    async def require_user(self, user_id: str) -> UserRecord:
        user = await self.get_user(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        return await self._repo.find_by_email(email)

    async def create_user(self, new_user: NewUser) -> UserRecord:
        now = self._clock()
        name = new_user.name or new_user.email.split("@")[0]
        user = UserRecord(
            id=new_user.id,
            email=new_user.email.lower(),
            name=name,
            role=UserRole.USER,
            avatar_id=new_user.avatar_id,
            email_verified=new_user.email_verified,
            provider=new_user.provider,
            created_at=now,
            updated_at=now,
            last_active=now,
        )
        await self._repo.create(user)
        logger.info("Created user record %s (%s)", user.id, user.provider.value)
        return user

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserRecord:
        await self.require_user(user_id)

        changes = request.model_dump(exclude_none=True)
        if changes:
            await self._repo.update(user_id, changes, self._clock())
            logger.debug("Updated profile fields %s for %s", sorted(changes), user_id)

        return await self.require_user(user_id)

    async def mark_active(self, user_id: str, email_verified: Optional[bool] = None) -> None:
        now = self._clock()
        changes: dict = {"last_active": format_timestamp(now)}
        if email_verified is not None:
            changes["email_verified"] = email_verified
        await self._repo.update(user_id, changes, now)

    async def set_disabled(self, user_id: str, disabled: bool) -> UserRecord:
        await self.require_user(user_id)
        await self._repo.update(user_id, {"disabled": disabled}, self._clock())
        return await self.require_user(user_id)

    async def soft_delete(self, user_id: str) -> None:
        await self.require_user(user_id)
        await self._repo.update(user_id, {"deleted": True}, self._clock())
        logger.info("Soft-deleted user %s", user_id)

    async def list_users(self, limit: int = 100) -> list[UserRecord]:
        return await self._repo.list_users(limit=limit)
