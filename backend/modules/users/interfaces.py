"""
Users module interface.

Other modules should depend on IUserService, not the concrete implementation.
"""

from typing import Optional, Protocol, runtime_checkable

from .models import NewUser, UpdateProfileRequest, UserRecord


@runtime_checkable
class IUserService(Protocol):
    """Interface for user record operations."""

    async def get_user(self, user_id: str) -> Optional[UserRecord]:
        """
        Get a live (not soft-deleted) user record.

        Returns:
            UserRecord if found, None otherwise
        """
        ...

    async def require_user(self, user_id: str) -> UserRecord:
        """
        Get a live user record.

        Raises:
            UserNotFoundError: If the user does not exist
        """
        ...

    async def find_by_email(self, email: str) -> Optional[UserRecord]:
        """Look up a live user by email address."""
        ...

    async def create_user(self, new_user: NewUser) -> UserRecord:
        """Create a user record with the default ``user`` role."""
        ...

    async def update_profile(self, user_id: str, request: UpdateProfileRequest) -> UserRecord:
        """Apply a profile update and return the stored result."""
        ...

    async def mark_active(self, user_id: str, email_verified: Optional[bool] = None) -> None:
        """Record a sign-in."""
        ...

    async def set_disabled(self, user_id: str, disabled: bool) -> UserRecord:
        """Block or unblock an account."""
        ...

    async def soft_delete(self, user_id: str) -> None:
        """Flag a user as deleted; records are never removed."""
        ...

    async def list_users(self, limit: int = 100) -> list[UserRecord]:
        """List live users, newest first."""
        ...
