"""
Authentication module data models.

These models define the data structures used by the auth module
and exposed to other modules through the interface.
"""

from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, EmailStr, Field

from modules.users.models import AuthProvider, UserProfile
from shared.models import Timestamp


class VerifiedIdentity(BaseModel):
    """Claims of an identity-provider ID token that passed verification."""

    subject_id: str = Field(..., description="Identity provider user ID")
    email: str = Field(default="", description="Email claimed by the token")
    email_verified: bool = False
    issued_at: datetime
    expires_at: datetime
    name: Optional[str] = None
    provider: AuthProvider = AuthProvider.PASSWORD


class AccessTokenClaims(BaseModel):
    """Decoded payload of an access token minted by the token issuer."""

    sub: str = Field(..., description="Subject (user ID)")
    role: str = Field(..., description="Role at issuance")
    fp: str = Field(..., description="Device fingerprint at issuance")
    rid: str = Field(..., description="ID of the refresh token issued alongside")
    typ: str = Field(default="access")
    iat: int = Field(..., description="Issued at timestamp")
    exp: int = Field(..., description="Expiration timestamp")

    @property
    def issued_at(self) -> datetime:
        return datetime.fromtimestamp(self.iat, tz=timezone.utc)


class RefreshTokenRecord(BaseModel):
    """
    Stored refresh token (``refresh_tokens/{token_hash}``).

    Only the SHA-256 hash of the raw token is ever persisted.
    """

    id: str
    user_id: str
    token_hash: str
    fingerprint: str
    user_agent: Optional[str] = None
    ip: Optional[str] = None
    created_at: Timestamp
    expires_at: Timestamp
    is_revoked: bool = False
    revoked_at: Optional[Timestamp] = None
    revoked_reason: Optional[str] = None


class TokenPair(BaseModel):
    """Credentials handed to the client after login or refresh."""

    access_token: str
    refresh_token: str
    session_id: str = Field(..., description="Session key (the user ID)")
    expires_in: int = Field(..., description="Access token lifetime in seconds")
    token_type: str = "bearer"


class LoginRequest(BaseModel):
    """Exchange an identity-provider ID token for a token pair."""

    id_token: str = Field(..., min_length=1)


class RegisterRequest(BaseModel):
    """Email/password registration."""

    email: EmailStr
    password: str = Field(..., min_length=6)
    name: str = Field(..., min_length=1, max_length=100)
    avatar_id: str = "default"


class RefreshRequest(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequest(BaseModel):
    refresh_token: Optional[str] = None


class AuthResponse(BaseModel):
    """Login and registration response."""

    tokens: TokenPair
    user: UserProfile


class LogoutResponse(BaseModel):
    success: bool = True
    revoked_tokens: int = 0
