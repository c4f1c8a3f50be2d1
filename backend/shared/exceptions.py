"""
Base exception classes for the MindQuest backend.

Each module should define its own exceptions that inherit from these bases.
This enables consistent error handling across the application: the API
layer maps every MindQuestError to an HTTP response using ``status_code``
and ``to_dict()``.
"""

from typing import Optional, Any


class MindQuestError(Exception):
    """
    Base exception for all MindQuest errors.

    All custom exceptions should inherit from this class.
    """

    status_code: int = 500

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a dictionary for API responses."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ValidationError(MindQuestError):
    """Input validation failed."""

    status_code = 400


class AuthenticationError(MindQuestError):
    """Authentication failed (invalid or missing credentials)."""

    status_code = 401


class AuthorizationError(MindQuestError):
    """Authorization failed (insufficient permissions)."""

    status_code = 403


class NotFoundError(MindQuestError):
    """Resource not found."""

    status_code = 404


class ConflictError(MindQuestError):
    """Resource already exists or is in a conflicting state."""

    status_code = 409


class BackingStoreError(MindQuestError):
    """The document store rejected or failed an operation."""

    status_code = 500


class TransientBackingStoreError(BackingStoreError):
    """A document store failure that is worth retrying."""

    pass


class TransactionConflictError(TransientBackingStoreError):
    """A transaction read a record that changed before it could commit."""

    def __init__(self, collection: str, key: str):
        super().__init__(
            f"Transaction conflict on {collection}/{key}",
            code="transaction_conflict",
            details={"collection": collection, "key": key},
        )


class ExternalServiceError(MindQuestError):
    """Error communicating with an external service."""

    status_code = 502

    def __init__(
        self,
        message: str,
        service: str,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message, code, details)
        self.service = service
        self.details["service"] = service
