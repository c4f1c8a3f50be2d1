"""
Authentication module interfaces.

Other modules should depend on these protocols, not the concrete
implementations. This enables testing with fakes and swapping the identity
provider without touching the session logic.
"""

from typing import Any, Optional, Protocol, runtime_checkable

from modules.sessions.models import DeviceInfo
from modules.users.models import UserRecord
from shared.models import Principal
from shared.store import Transaction

from .models import AccessTokenClaims, AuthResponse, RegisterRequest, TokenPair, VerifiedIdentity


@runtime_checkable
class IIdentityProvider(Protocol):
    """
    Interface to the external identity provider.

    The provider issues and verifies ID tokens and owns the credential side of
    every account; this backend only layers sessions and roles on top.
    """

    async def verify_signed_token(self, raw_token: str) -> VerifiedIdentity:
        """
        Verify an ID token issued by the provider.

        Raises:
            MissingTokenError, InvalidTokenFormatError, ExpiredTokenError,
            InvalidTokenError
        """
        ...

    async def mint_custom_token(self, subject_id: str, claims: dict[str, Any]) -> str:
        """Sign a token for ``subject_id`` carrying ``claims`` (must include exp)."""
        ...

    async def verify_custom_token(self, raw_token: str) -> dict[str, Any]:
        """Verify a token produced by ``mint_custom_token`` and return its claims."""
        ...

    async def set_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        """Attach custom claims to the provider account."""
        ...

    async def create_user(self, email: str, password: str, name: str) -> str:
        """Create a provider account and return its subject ID."""
        ...

    async def disable_user(self, subject_id: str) -> None:
        """Block the provider account from signing in."""
        ...

    async def delete_user(self, subject_id: str) -> None:
        """Delete the provider account."""
        ...


@runtime_checkable
class ITokenIssuer(Protocol):
    """Interface for access/refresh token issuance and rotation."""

    async def issue_tokens(
        self,
        user_id: str,
        device: DeviceInfo,
        tx: Optional[Transaction] = None,
    ) -> TokenPair:
        """Mint an access token and a refresh token, and upsert the session."""
        ...

    async def refresh(self, raw_refresh_token: str, device: DeviceInfo) -> TokenPair:
        """
        Rotate a refresh token.

        Raises:
            InvalidRefreshTokenError: Unknown, revoked or expired token
            SecurityViolationError: Token presented from another device
        """
        ...

    async def decode_access_token(self, raw_token: str) -> AccessTokenClaims:
        """Verify an access token and return its claims."""
        ...

    async def revoke_all(self, user_id: str, reason: str, terminate_session: bool = False) -> int:
        """Revoke every live refresh token of a user."""
        ...


@runtime_checkable
class IAuthService(Protocol):
    """Interface for the sign-in flows and per-request authentication."""

    async def login(self, id_token: str, device: DeviceInfo) -> AuthResponse:
        """Exchange a provider ID token for a token pair."""
        ...

    async def register(self, request: RegisterRequest, device: DeviceInfo) -> AuthResponse:
        """Create a password account and sign it in."""
        ...

    async def refresh(self, refresh_token: str, device: DeviceInfo) -> TokenPair:
        """Rotate a refresh token."""
        ...

    async def logout(self, principal: Principal, refresh_token: Optional[str] = None) -> int:
        """End the caller's session; returns the number of tokens revoked."""
        ...

    async def logout_all(self, principal: Principal) -> int:
        """Revoke every refresh token of the caller and end the session."""
        ...

    async def authenticate(self, token: Optional[str], device: DeviceInfo) -> Principal:
        """
        Authenticate one request.

        Returns:
            The immutable principal for the request

        Raises:
            AuthenticationError subclasses carrying a stable code
        """
        ...

    async def disable_account(self, target_id: str, actor: Principal) -> UserRecord:
        """Disable an account and revoke all of its credentials."""
        ...
