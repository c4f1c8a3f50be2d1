"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules:
an in-memory document store, a fake identity provider, a frozen clock and
device fixtures, wired together in a ServiceContainer.
"""

import asyncio
import itertools
import pytest
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from fastapi.testclient import TestClient

from api.dependencies import ServiceContainer, reset_container, set_container
from modules.auth.exceptions import (
    ExpiredTokenError,
    IdentityProviderError,
    InvalidTokenError,
    MissingTokenError,
)
from modules.auth.models import VerifiedIdentity
from modules.sessions.models import DeviceInfo
from modules.users.exceptions import EmailInUseError
from modules.users.models import AuthProvider, NewUser
from shared.config import Settings
from shared.store import InMemoryDocumentStore


FIXED_NOW = datetime(2026, 3, 2, 9, 0, 0, tzinfo=timezone.utc)

CHROME_UA = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36"
)
FIREFOX_UA = "Mozilla/5.0 (X11; Linux x86_64; rv:123.0) Gecko/20100101 Firefox/123.0"


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeIdentityProvider:
    """
    In-memory identity provider.

    ID tokens are opaque strings registered with ``issue_id_token``; custom
    tokens are opaque strings mapped to their claims.
    """

    def __init__(self, clock: FrozenClock):
        self._clock = clock
        self._ids = itertools.count(1)
        self.id_tokens: dict[str, VerifiedIdentity] = {}
        self.custom_tokens: dict[str, dict[str, Any]] = {}
        self.claims: dict[str, dict[str, Any]] = {}
        self.accounts: dict[str, dict[str, str]] = {}
        self.disabled: set[str] = set()
        self.deleted: set[str] = set()
        self.fail_set_claims = False

    def issue_id_token(
        self,
        subject_id: str,
        email: str,
        email_verified: bool = True,
        name: Optional[str] = None,
        provider: AuthProvider = AuthProvider.PASSWORD,
        ttl: timedelta = timedelta(hours=1),
    ) -> str:
        now = self._clock()
        token = f"id-token-{subject_id}-{next(self._ids)}"
        self.id_tokens[token] = VerifiedIdentity(
            subject_id=subject_id,
            email=email,
            email_verified=email_verified,
            issued_at=now,
            expires_at=now + ttl,
            name=name,
            provider=provider,
        )
        return token

    async def verify_signed_token(self, raw_token: str) -> VerifiedIdentity:
        if not raw_token:
            raise MissingTokenError()
        identity = self.id_tokens.get(raw_token)
        if identity is None:
            raise InvalidTokenError()
        if identity.expires_at <= self._clock():
            raise ExpiredTokenError()
        return identity

    async def mint_custom_token(self, subject_id: str, claims: dict[str, Any]) -> str:
        token = f"access-{subject_id}-{next(self._ids)}"
        self.custom_tokens[token] = {**claims, "sub": subject_id}
        return token

    async def verify_custom_token(self, raw_token: str) -> dict[str, Any]:
        if not raw_token:
            raise MissingTokenError()
        if raw_token not in self.custom_tokens:
            raise InvalidTokenError()
        return dict(self.custom_tokens[raw_token])

    async def set_claims(self, subject_id: str, claims: dict[str, Any]) -> None:
        if self.fail_set_claims:
            raise IdentityProviderError("claims service unavailable", "set_claims")
        self.claims[subject_id] = claims

    async def create_user(self, email: str, password: str, name: str) -> str:
        if any(a["email"] == email.lower() for a in self.accounts.values()):
            raise EmailInUseError()
        subject_id = f"uid-{next(self._ids)}"
        self.accounts[subject_id] = {"email": email.lower(), "password": password, "name": name}
        return subject_id

    async def disable_user(self, subject_id: str) -> None:
        self.disabled.add(subject_id)

    async def delete_user(self, subject_id: str) -> None:
        self.deleted.add(subject_id)
        self.accounts.pop(subject_id, None)


class InterleavingStore(InMemoryDocumentStore):
    """In-memory store whose reads yield to the event loop, so concurrent transactions overlap."""

    async def _read(self, collection: str, key: str):
        await asyncio.sleep(0)
        return await super()._read(collection, key)


@pytest.fixture(autouse=True)
def reset_container_singleton():
    """Reset the service container before and after each test."""
    reset_container()
    yield
    reset_container()


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        access_token_secret="test-access-secret",
        supabase_jwt_secret="test-secret-key-for-testing-only",
        store_retry_initial_delay=0.0,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def identity(clock: FrozenClock) -> FakeIdentityProvider:
    return FakeIdentityProvider(clock)


@pytest.fixture
def container(store, identity, settings, clock) -> ServiceContainer:
    return ServiceContainer(store=store, identity=identity, settings=settings, clock=clock)


@pytest.fixture
def racing_container(identity, settings, clock) -> ServiceContainer:
    """Container over an InterleavingStore, for concurrent-transaction tests."""
    return ServiceContainer(store=InterleavingStore(), identity=identity, settings=settings, clock=clock)


@pytest.fixture
def device() -> DeviceInfo:
    """The legitimate user's laptop."""
    return DeviceInfo(
        user_agent=CHROME_UA,
        ip="203.0.113.10",
        screen_resolution="1920x1080",
        timezone="Asia/Kolkata",
        language="en-US",
        platform="Windows",
    )


@pytest.fixture
def other_device() -> DeviceInfo:
    """A different machine somewhere else."""
    return DeviceInfo(
        user_agent=FIREFOX_UA,
        ip="198.51.100.7",
        screen_resolution="1366x768",
        timezone="Europe/Berlin",
        language="de-DE",
        platform="Linux",
    )


@pytest.fixture
def make_user(container: ServiceContainer):
    """Factory creating user records directly through the user service."""

    async def _make(user_id: str, email: Optional[str] = None, name: str = ""):
        return await container.users.create_user(
            NewUser(id=user_id, email=email or f"{user_id}@campus.edu", name=name)
        )

    return _make


def _device_headers(device: DeviceInfo) -> dict[str, str]:
    return {
        "User-Agent": device.user_agent,
        "X-Forwarded-For": device.ip,
        "X-Screen-Resolution": device.screen_resolution,
        "X-Timezone": device.timezone,
        "Accept-Language": device.language,
        "Sec-CH-UA-Platform": f'"{device.platform}"',
    }


@pytest.fixture
def device_headers():
    """Build HTTP headers that reproduce a device through get_device_info."""
    return _device_headers


@pytest.fixture
def client(container: ServiceContainer):
    """TestClient for the app, backed by the test container."""
    from api import app

    set_container(container)
    yield TestClient(app)
    reset_container()
