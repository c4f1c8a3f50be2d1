"""
Roles module.

Membership records in the superadmins, admins and counselors collections
decide who holds which role; the user record's role field mirrors them.

Public API:
- IRoleAuthority: Interface for role checks and transitions
- MembershipRecord, MembershipLookup, RoleChange, RoleConsistencyReport: Models
- Role exceptions: InsufficientPrivilegeError, SelfModificationForbiddenError, etc.
"""

from .interfaces import IRoleAuthority
from .models import (
    MembershipLookup,
    MembershipRecord,
    MembershipStatus,
    RoleChange,
    RoleConsistencyReport,
)
from .exceptions import (
    InsufficientPrivilegeError,
    InvalidRoleTransitionError,
    MembershipNotFoundError,
    SelfModificationForbiddenError,
    SuperAdminExistsError,
)

__all__ = [
    "IRoleAuthority",
    "MembershipLookup",
    "MembershipRecord",
    "MembershipStatus",
    "RoleChange",
    "RoleConsistencyReport",
    "InsufficientPrivilegeError",
    "InvalidRoleTransitionError",
    "MembershipNotFoundError",
    "SelfModificationForbiddenError",
    "SuperAdminExistsError",
]
