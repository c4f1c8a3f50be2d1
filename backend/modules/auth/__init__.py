"""
Authentication module.

Verifies identity-provider ID tokens at sign-in, issues and rotates the
backend's own access/refresh tokens, and authenticates each request.

Public API:
- IAuthService, ITokenIssuer, IIdentityProvider: Interfaces
- TokenPair, AccessTokenClaims, RefreshTokenRecord, VerifiedIdentity: Models
- Auth exceptions: MissingTokenError, InvalidTokenError, ExpiredTokenError, etc.
"""

from .interfaces import IAuthService, IIdentityProvider, ITokenIssuer
from .models import AccessTokenClaims, RefreshTokenRecord, TokenPair, VerifiedIdentity
from .exceptions import (
    AccountDisabledError,
    ExpiredTokenError,
    IdentityProviderError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    InvalidTokenFormatError,
    MissingTokenError,
    SecurityViolationError,
)

__all__ = [
    # Interfaces
    "IAuthService",
    "IIdentityProvider",
    "ITokenIssuer",
    # Models
    "AccessTokenClaims",
    "RefreshTokenRecord",
    "TokenPair",
    "VerifiedIdentity",
    # Exceptions
    "AccountDisabledError",
    "ExpiredTokenError",
    "IdentityProviderError",
    "InvalidRefreshTokenError",
    "InvalidTokenError",
    "InvalidTokenFormatError",
    "MissingTokenError",
    "SecurityViolationError",
]
