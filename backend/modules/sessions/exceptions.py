"""
Session module exceptions.

All of them are authentication failures: the caller has to sign in again.
"""

from shared.exceptions import AuthenticationError


class SessionInvalidError(AuthenticationError):
    """Raised when the request has no usable session."""

    def __init__(
        self,
        message: str = "Session is no longer valid. Please login again.",
        code: str = "session_invalid",
    ):
        super().__init__(message, code=code)


class SessionMismatchError(SessionInvalidError):
    """Raised when the request's device does not match the session's device."""

    def __init__(self):
        super().__init__(
            "Session does not match this device. Please login again.",
            code="session_mismatch",
        )


class SessionExpiredError(SessionInvalidError):
    """Raised when the session timed out from inactivity or age."""

    def __init__(self):
        super().__init__(
            "Session expired due to inactivity. Please login again.",
            code="session_expired",
        )
