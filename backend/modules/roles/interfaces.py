"""
Roles module interface.

Every admin, superadmin and counselor check in the application goes through
IRoleAuthority, never through the cached ``role`` field on the user record.
"""

from typing import Optional, Protocol, runtime_checkable

from modules.users.models import UserRole

from .models import MembershipRecord, RoleChange, RoleConsistencyReport


@runtime_checkable
class IRoleAuthority(Protocol):
    """Interface for role checks and role transitions."""

    async def is_super_admin(self, user_id: str) -> bool:
        """True iff a superadmin record exists at ``user_id`` naming that user."""
        ...

    async def is_admin(self, user_id: str) -> bool:
        """True iff the user is a superadmin or holds a matching admin record."""
        ...

    async def is_counselor(self, user_id: str) -> bool:
        """True iff a counselor record exists at ``user_id`` naming that user."""
        ...

    async def effective_role(self, user_id: str) -> UserRole:
        """Role derived from the membership records."""
        ...

    async def has_role(self, user_id: str, role: UserRole) -> bool:
        """Whether the user holds ``role`` (superadmin satisfies admin)."""
        ...

    async def promote(
        self, target_user_id: str, new_role: UserRole, acting_user_id: str
    ) -> RoleChange:
        """
        Change a user's role.

        Raises:
            SelfModificationForbiddenError: Admin or superadmin changing themselves
            InsufficientPrivilegeError: Actor's role is too low
            InvalidRoleTransitionError: Target is a superadmin
            UserNotFoundError: Target does not exist
        """
        ...

    async def demote_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        """Demote an admin to user."""
        ...

    async def add_super_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        """Grant superadmin."""
        ...

    async def remove_super_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        """Downgrade a superadmin to admin."""
        ...

    async def list_members(self, role: UserRole) -> list[MembershipRecord]:
        """List the members of a membership role."""
        ...

    async def update_permissions(
        self, target_user_id: str, permissions: list[str], acting_user_id: str
    ) -> MembershipRecord:
        """Replace the permission list on an admin record."""
        ...

    async def check_consistency(self, user_id: str) -> RoleConsistencyReport:
        """Compare the cached role field with the membership records."""
        ...

    async def reconcile(
        self, user_id: str, acting_user_id: Optional[str] = None
    ) -> RoleConsistencyReport:
        """Rewrite the cached role (and drop stray records) from memberships."""
        ...
