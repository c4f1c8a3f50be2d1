"""
Role module data models.

A membership record at ``admins/{user_id}``, ``superadmins/{user_id}`` or
``counselors/{user_id}`` is what grants the role. The record repeats the key
in ``user_id``; a record whose ``user_id`` differs from its key grants
nothing.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field

from modules.users.models import UserRole
from shared.models import Timestamp

# Order of precedence when deriving a role from memberships.
MEMBERSHIP_ROLES = (UserRole.SUPERADMIN, UserRole.ADMIN, UserRole.COUNSELOR)

ROLE_RANK = {
    UserRole.USER: 0,
    UserRole.COUNSELOR: 1,
    UserRole.ADMIN: 2,
    UserRole.SUPERADMIN: 3,
}

DEFAULT_PERMISSIONS = {
    UserRole.SUPERADMIN: ["manage_admins", "manage_users", "view_audit"],
    UserRole.ADMIN: ["manage_users", "manage_content"],
    UserRole.COUNSELOR: [],
}


class MembershipRecord(BaseModel):
    """Stored membership document."""

    user_id: str = Field(..., description="Member; equals the document key")
    email: str = ""
    name: str = ""
    granted_by: str = Field(..., description="User ID of the actor, or 'system'")
    permissions: list[str] = Field(default_factory=list)
    created_at: Timestamp
    updated_at: Timestamp


class MembershipStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"
    MISMATCHED = "mismatched"


class MembershipLookup(BaseModel):
    """Result of reading one membership slot."""

    role: UserRole
    user_id: str
    status: MembershipStatus
    record: Optional[MembershipRecord] = None
    stored_user_id: Optional[str] = None

    @property
    def present(self) -> bool:
        return self.status == MembershipStatus.PRESENT


class RoleChange(BaseModel):
    """A committed role transition."""

    user_id: str
    previous_role: UserRole
    new_role: UserRole
    changed_by: str
    changed_at: Timestamp


class RoleConsistencyReport(BaseModel):
    """Comparison of the cached role field with the membership records."""

    user_id: str
    cached_role: UserRole
    effective_role: UserRole
    memberships: list[UserRole] = Field(default_factory=list)
    mismatched: list[UserRole] = Field(default_factory=list)
    issues: list[str] = Field(default_factory=list)

    @property
    def consistent(self) -> bool:
        return not self.issues


class ChangeRoleRequest(BaseModel):
    role: UserRole


class SuperAdminRequest(BaseModel):
    user_id: str = Field(..., min_length=1)


class UpdatePermissionsRequest(BaseModel):
    permissions: list[str] = Field(default_factory=list)


class RoleCheckResponse(BaseModel):
    user_id: str
    is_super_admin: bool
    is_admin: bool
    is_counselor: bool
    effective_role: UserRole


class ConsistencyResponse(BaseModel):
    report: RoleConsistencyReport
    consistent: bool

    @classmethod
    def from_report(cls, report: RoleConsistencyReport) -> "ConsistencyResponse":
        return cls(report=report, consistent=report.consistent)
