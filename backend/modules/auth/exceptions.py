"""
Authentication module exceptions.

These exceptions are raised by the auth module and caught by the API error
handler to return the matching HTTP response. Every 401 message is generic
enough not to reveal whether an account exists.
"""

from shared.exceptions import AuthenticationError, AuthorizationError, ExternalServiceError


class MissingTokenError(AuthenticationError):
    """Raised when no authentication token is provided."""

    def __init__(self, message: str = "No authentication token provided. Please login again."):
        super().__init__(message, code="no_token")


class InvalidTokenError(AuthenticationError):
    """Raised when a token fails verification."""

    def __init__(self, message: str = "Invalid authentication token. Please login again."):
        super().__init__(message, code="invalid_token")


class InvalidTokenFormatError(AuthenticationError):
    """Raised when a token is not even a well-formed JWT."""

    def __init__(self, message: str = "Invalid authentication token format. Please login again."):
        super().__init__(message, code="invalid_token_format")


class ExpiredTokenError(AuthenticationError):
    """Raised when a token has expired."""

    def __init__(self, message: str = "Authentication token expired. Please login again."):
        super().__init__(message, code="token_expired")


class AccountDisabledError(AuthenticationError):
    """Raised when the account has been disabled by an administrator."""

    def __init__(self):
        super().__init__(
            "User account has been disabled. Please contact support.",
            code="account_disabled",
        )


class InvalidRefreshTokenError(AuthenticationError):
    """Raised when a refresh token is unknown, revoked or expired."""

    def __init__(self):
        super().__init__(
            "Invalid or expired refresh token. Please login again.",
            code="invalid_refresh_token",
        )


class SecurityViolationError(AuthenticationError):
    """
    Raised when a refresh token is presented from a different device.

    By the time this is raised every refresh token of the user has been
    revoked and the session deleted.
    """

    def __init__(self):
        super().__init__(
            "Security violation detected. All sessions have been revoked; please login again.",
            code="security_violation",
        )


class IdentityProviderError(ExternalServiceError):
    """Raised when the identity provider's admin API fails."""

    def __init__(self, message: str, operation: str):
        super().__init__(
            message,
            service="identity_provider",
            code="identity_provider_error",
            details={"operation": operation},
        )


class AccountModificationForbiddenError(AuthorizationError):
    """Raised when an actor may not disable or delete the target account."""

    def __init__(self, target_id: str, reason: str):
        super().__init__(
            f"Cannot modify account {target_id}: {reason}",
            code="insufficient_permissions",
            details={"target_id": target_id},
        )
