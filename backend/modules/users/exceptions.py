"""
User module exceptions.
"""

from shared.exceptions import ConflictError, NotFoundError


class UserNotFoundError(NotFoundError):
    """Raised when a user record does not exist (or is soft-deleted)."""

    def __init__(self, user_id: str):
        super().__init__(
            f"User not found: {user_id}",
            code="user_not_found",
            details={"user_id": user_id},
        )


class EmailInUseError(ConflictError):
    """Raised when registering an email that already has an account."""

    def __init__(self):
        super().__init__(
            "This email address is already in use. Please sign in instead.",
            code="email_in_use",
        )
