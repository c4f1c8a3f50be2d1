"""
Supabase identity provider adapter.

ID tokens are Supabase Auth JWTs verified locally with the project's JWT
secret. Account administration (claims, creation, disabling, deletion) goes
through the Supabase admin API with the service-role client.

Custom tokens (the backend's own access tokens) are signed with python-jose
using ACCESS_TOKEN_SECRET, never with the Supabase secret, so a leaked
Supabase session cannot be replayed as an access token and vice versa.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import jwt
from jose import jwt as jose_jwt
from jose.exceptions import ExpiredSignatureError, JWTError
from supabase import Client
from supabase_auth.errors import AuthApiError

from modules.users.exceptions import EmailInUseError
from modules.users.models import AuthProvider
from shared.config import Settings, get_settings
from shared.database import get_supabase_client

from .exceptions import (
    ExpiredTokenError,
    IdentityProviderError,
    InvalidTokenError,
    InvalidTokenFormatError,
    MissingTokenError,
)
from .interfaces import IIdentityProvider
from .models import VerifiedIdentity

logger = logging.getLogger(__name__)

SUPABASE_AUDIENCE = "authenticated"
# Supabase has no "disabled" flag; a very long ban is the equivalent.
DISABLED_BAN_DURATION = "876000h"


def _decode_id_token(raw_token: Optional[str], secret: str) -> dict[str, Any]:
    if not raw_token:
        raise MissingTokenError()
    try:
        return jwt.decode(raw_token, secret, algorithms=["HS256"], audience=SUPABASE_AUDIENCE)
    except jwt.ExpiredSignatureError:
        raise ExpiredTokenError()
    except jwt.InvalidSignatureError:
        raise InvalidTokenError()
    except jwt.DecodeError:
        raise InvalidTokenFormatError()
    except jwt.InvalidTokenError:
        raise InvalidTokenError()


class SupabaseIdentityProvider(IIdentityProvider):
    """Identity provider backed by Supabase Auth."""

    def __init__(self, db: Optional[Client] = None, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()
        self._db = db

    @property
    def client(self) -> Client:
        if self._db is None:
            self._db = get_supabase_client()
        return self._db

    async def verify_signed_token(self, raw_token: str) -> VerifiedIdentity:
        secret = self._settings.supabase_jwt_secret
        if not secret:
            raise InvalidTokenError("Server authentication not configured")

        payload = _decode_id_token(raw_token, secret)
        if not payload.get("sub"):
            raise InvalidTokenError()

        user_metadata = payload.get("user_metadata") or {}
        app_metadata = payload.get("app_metadata") or {}
        provider = (
            AuthProvider.GOOGLE
            if app_metadata.get("provider") == "google"
            else AuthProvider.PASSWORD
        )
        email_verified = bool(
            payload.get("email_confirmed_at") or user_metadata.get("email_verified")
        )

        return VerifiedIdentity(
            subject_id=payload["sub"],
            email=payload.get("email") or "",
            email_verified=email_verified,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            name=user_metadata.get("name") or user_metadata.get("full_name"),
            provider=provider,
        )

    async def mint_custom_token(self, subject_id: str, claims: dict[str, Any]) -> str:
        if not self._settings.access_token_secret:
            raise IdentityProviderError("Access token signing not configured", "mint_custom_token")
        payload = {**claims, "sub": subject_id, "aud": self._settings.access_token_audience}
        return jose_jwt.encode(
            payload,
            self._settings.access_token_secret,
            algorithm=self._settings.access_token_algorithm,
        )

    async def verify_custom_token(self, raw_token: str) -> dict[str, Any]:
        if not raw_token:
            raise MissingTokenError()
        if raw_token.count(".") != 2:
            raise InvalidTokenFormatError()
        if not self._settings.access_token_secret:
            raise InvalidTokenError("Server authentication not configured")
        try:
            return jose_jwt.decode(
                raw_token,
                self._settings.access_token_secret,
                algorithms=[self._settings.access_token_algorithm],
                audience=self._settings.access_token_audience,
            )
        except ExpiredSignatureError:
            raise ExpiredTokenError()
        except JWTError:
            raise InvalidTokenError()

    async def set_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        try:
            self.client.auth.admin.update_user_by_id(subject_id, {"app_metadata": claims})
        except AuthApiError as e:
            raise IdentityProviderError(f"Failed to set claims: {e.message}", "set_claims") from e

    async def create_user(self, email: str, password: str, name: str) -> str:
        try:
            response = self.client.auth.admin.create_user(
                {
                    "email": email,
                    "password": password,
                    "user_metadata": {"name": name},
                }
            )
        except AuthApiError as e:
            if e.code in ("email_exists", "user_already_exists"):
                raise EmailInUseError() from e
            raise IdentityProviderError(f"Failed to create user: {e.message}", "create_user") from e
        logger.info("Created identity provider account %s", response.user.id)
        return response.user.id

    async def disable_user(self, subject_id: str) -> None:
        try:
            self.client.auth.admin.update_user_by_id(
                subject_id, {"ban_duration": DISABLED_BAN_DURATION}
            )
        except AuthApiError as e:
            raise IdentityProviderError(f"Failed to disable user: {e.message}", "disable_user") from e

    async def delete_user(self, subject_id: str) -> None:
        try:
            self.client.auth.admin.delete_user(subject_id)
        except AuthApiError as e:
            raise IdentityProviderError(f"Failed to delete user: {e.message}", "delete_user") from e
