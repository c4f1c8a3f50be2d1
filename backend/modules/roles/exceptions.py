"""
Role module exceptions.
"""

from typing import Optional

from shared.exceptions import AuthorizationError, ConflictError, NotFoundError, ValidationError


class InsufficientPrivilegeError(AuthorizationError):
    """Raised when the actor's role is too low for the requested change."""

    def __init__(self, required_role: str, attempted_role: Optional[str] = None):
        details = {"required_role": required_role}
        if attempted_role:
            details["attempted_role"] = attempted_role
        super().__init__(
            "You do not have permission to perform this action",
            code="insufficient_permissions",
            details=details,
        )


class SelfModificationForbiddenError(AuthorizationError):
    """Raised when an admin or superadmin tries to change their own role."""

    def __init__(self):
        super().__init__(
            "You cannot change your own role",
            code="self_modification_forbidden",
        )


class InvalidRoleTransitionError(ValidationError):
    """Raised for transitions the role policy does not allow."""

    def __init__(self, current_role: str, new_role: str, reason: str):
        super().__init__(
            f"Cannot change role from {current_role} to {new_role}: {reason}",
            code="invalid_role_transition",
            details={"current_role": current_role, "new_role": new_role},
        )


class MembershipNotFoundError(NotFoundError):
    """Raised when the target does not hold the membership an operation needs."""

    def __init__(self, user_id: str, role: str):
        super().__init__(
            f"User {user_id} is not a {role}",
            code="membership_not_found",
            details={"user_id": user_id, "role": role},
        )


class SuperAdminExistsError(ConflictError):
    """Raised when bootstrapping while a superadmin already exists."""

    def __init__(self):
        super().__init__(
            "A superadmin already exists; add more through an existing superadmin",
            code="superadmin_exists",
        )
