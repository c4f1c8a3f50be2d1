"""Tests for the Supabase identity provider adapter."""

import time
from unittest.mock import MagicMock

import jwt
import pytest
from jose import jwt as jose_jwt
from supabase_auth.errors import AuthApiError

from modules.auth.exceptions import (
    ExpiredTokenError,
    IdentityProviderError,
    InvalidTokenError,
    InvalidTokenFormatError,
    MissingTokenError,
)
from modules.auth.identity import SupabaseIdentityProvider
from modules.users.exceptions import EmailInUseError
from modules.users.models import AuthProvider

SUPABASE_SECRET = "test-secret-key-for-testing-only"


def supabase_token(secret: str = SUPABASE_SECRET, **overrides) -> str:
    now = int(time.time())
    payload = {
        "sub": "uid-a",
        "email": "asha@campus.edu",
        "aud": "authenticated",
        "role": "authenticated",
        "iat": now,
        "exp": now + 3600,
        "email_confirmed_at": "2026-03-01T10:00:00Z",
        "app_metadata": {"provider": "google"},
        "user_metadata": {"full_name": "Asha Rao"},
    }
    payload.update(overrides)
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def db() -> MagicMock:
    return MagicMock()


@pytest.fixture
def provider(db, settings) -> SupabaseIdentityProvider:
    return SupabaseIdentityProvider(db=db, settings=settings)


class TestVerifySignedToken:
    @pytest.mark.asyncio
    async def test_valid_token(self, provider):
        identity = await provider.verify_signed_token(supabase_token())

        assert identity.subject_id == "uid-a"
        assert identity.email == "asha@campus.edu"
        assert identity.email_verified is True
        assert identity.name == "Asha Rao"
        assert identity.provider == AuthProvider.GOOGLE
        assert identity.expires_at > identity.issued_at

    @pytest.mark.asyncio
    async def test_password_account_without_confirmation(self, provider):
        token = supabase_token(
            app_metadata={"provider": "email"},
            user_metadata={"name": "Ravi"},
            email_confirmed_at=None,
        )
        identity = await provider.verify_signed_token(token)

        assert identity.provider == AuthProvider.PASSWORD
        assert identity.email_verified is False
        assert identity.name == "Ravi"

    @pytest.mark.asyncio
    async def test_missing(self, provider):
        with pytest.raises(MissingTokenError):
            await provider.verify_signed_token("")

    @pytest.mark.asyncio
    async def test_expired(self, provider):
        past = int(time.time()) - 7200
        with pytest.raises(ExpiredTokenError):
            await provider.verify_signed_token(supabase_token(iat=past, exp=past + 60))

    @pytest.mark.asyncio
    async def test_wrong_secret(self, provider):
        with pytest.raises(InvalidTokenError):
            await provider.verify_signed_token(supabase_token(secret="wrong-secret"))

    @pytest.mark.asyncio
    async def test_wrong_audience(self, provider):
        with pytest.raises(InvalidTokenError):
            await provider.verify_signed_token(supabase_token(aud="anon"))

    @pytest.mark.asyncio
    async def test_garbage(self, provider):
        with pytest.raises(InvalidTokenFormatError):
            await provider.verify_signed_token("not-a-jwt")

    @pytest.mark.asyncio
    async def test_unconfigured_secret(self, db, settings):
        provider = SupabaseIdentityProvider(
            db=db, settings=settings.model_copy(update={"supabase_jwt_secret": ""})
        )
        with pytest.raises(InvalidTokenError):
            await provider.verify_signed_token(supabase_token())


class TestCustomTokens:
    @pytest.mark.asyncio
    async def test_mint_then_verify(self, provider, settings):
        now = int(time.time())
        token = await provider.mint_custom_token(
            "uid-a", {"role": "user", "fp": "abc", "typ": "access", "iat": now, "exp": now + 900}
        )

        claims = await provider.verify_custom_token(token)
        assert claims["sub"] == "uid-a"
        assert claims["aud"] == settings.access_token_audience
        assert claims["fp"] == "abc"

    @pytest.mark.asyncio
    async def test_supabase_token_is_not_an_access_token(self, provider):
        with pytest.raises(InvalidTokenError):
            await provider.verify_custom_token(supabase_token())

    @pytest.mark.asyncio
    async def test_expired(self, provider, settings):
        past = int(time.time()) - 3600
        token = jose_jwt.encode(
            {"sub": "uid-a", "aud": settings.access_token_audience, "iat": past, "exp": past + 60},
            settings.access_token_secret,
            algorithm="HS256",
        )
        with pytest.raises(ExpiredTokenError):
            await provider.verify_custom_token(token)

    @pytest.mark.asyncio
    async def test_malformed(self, provider):
        with pytest.raises(InvalidTokenFormatError):
            await provider.verify_custom_token("only.one-dot")

    @pytest.mark.asyncio
    async def test_mint_requires_secret(self, db, settings):
        provider = SupabaseIdentityProvider(
            db=db, settings=settings.model_copy(update={"access_token_secret": ""})
        )
        with pytest.raises(IdentityProviderError):
            await provider.mint_custom_token("uid-a", {})


class TestAdminApi:
    @pytest.mark.asyncio
    async def test_set_claims(self, provider, db):
        await provider.set_claims("uid-a", {"role": "admin"})
        db.auth.admin.update_user_by_id.assert_called_once_with(
            "uid-a", {"app_metadata": {"role": "admin"}}
        )

    @pytest.mark.asyncio
    async def test_set_claims_failure(self, provider, db):
        db.auth.admin.update_user_by_id.side_effect = AuthApiError("boom", 500, "unexpected_failure")
        with pytest.raises(IdentityProviderError) as exc_info:
            await provider.set_claims("uid-a", {"role": "admin"})
        assert exc_info.value.details["operation"] == "set_claims"

    @pytest.mark.asyncio
    async def test_create_user(self, provider, db):
        db.auth.admin.create_user.return_value.user.id = "uid-new"

        assert await provider.create_user("ravi@campus.edu", "hunter22", "Ravi") == "uid-new"
        db.auth.admin.create_user.assert_called_once_with(
            {
                "email": "ravi@campus.edu",
                "password": "hunter22",
                "user_metadata": {"name": "Ravi"},
            }
        )

    @pytest.mark.asyncio
    async def test_create_user_duplicate_email(self, provider, db):
        db.auth.admin.create_user.side_effect = AuthApiError(
            "A user with this email address has already been registered", 422, "email_exists"
        )
        with pytest.raises(EmailInUseError):
            await provider.create_user("ravi@campus.edu", "hunter22", "Ravi")

    @pytest.mark.asyncio
    async def test_disable_user_bans(self, provider, db):
        await provider.disable_user("uid-a")
        db.auth.admin.update_user_by_id.assert_called_once_with(
            "uid-a", {"ban_duration": "876000h"}
        )

    @pytest.mark.asyncio
    async def test_delete_user(self, provider, db):
        await provider.delete_user("uid-a")
        db.auth.admin.delete_user.assert_called_once_with("uid-a")
