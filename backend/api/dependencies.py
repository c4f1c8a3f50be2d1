"""
Dependency injection setup for FastAPI.

This module provides the "container" that wires together all module
implementations. Each module exposes its service through an interface,
and this file creates the concrete implementations.

The container owns the two external collaborators (document store and
identity provider) and the clock; tests build a container around an
in-memory store and a fake identity provider and install it with
``set_container``.
"""

from typing import TYPE_CHECKING, Optional

from shared.config import Settings, get_settings
from shared.models import Clock, utcnow

# Type checking imports for interfaces (avoids circular imports)
if TYPE_CHECKING:
    from modules.auth.interfaces import IAuthService, IIdentityProvider
    from modules.auth.tokens import TokenIssuer
    from modules.roles.service import RoleAuthority
    from modules.sessions.service import SessionStore
    from modules.users.service import UserService
    from shared.store import IDocumentStore


class ServiceContainer:
    """
    Container for all service instances.

    This class manages the lifecycle of service instances and their
    dependencies. Services are created lazily on first access.

    All services are cached as singletons within the container.
    Use reset() to clear all cached services for testing.
    """

    def __init__(
        self,
        store: "Optional[IDocumentStore]" = None,
        identity: "Optional[IIdentityProvider]" = None,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ) -> None:
        self._settings = settings or get_settings()
        self._clock = clock
        self._store = store
        self._identity = identity
        self._users: "UserService | None" = None
        self._sessions: "SessionStore | None" = None
        self._tokens: "TokenIssuer | None" = None
        self._roles: "RoleAuthority | None" = None
        self._auth: "IAuthService | None" = None

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def store(self) -> "IDocumentStore":
        """Get the document store (Supabase-backed unless one was injected)."""
        if self._store is None:
            from shared.database import get_supabase_client
            from shared.supabase_store import SupabaseDocumentStore
            self._store = SupabaseDocumentStore(
                get_supabase_client(),
                retry_initial_delay=self._settings.store_retry_initial_delay,
            )
        return self._store

    @property
    def identity(self) -> "IIdentityProvider":
        """Get the identity provider adapter."""
        if self._identity is None:
            from modules.auth.identity import SupabaseIdentityProvider
            self._identity = SupabaseIdentityProvider(settings=self._settings)
        return self._identity

    @property
    def users(self) -> "UserService":
        """Get the user service instance."""
        if self._users is None:
            from modules.users.repository import UserRepository
            from modules.users.service import UserService
            self._users = UserService(UserRepository(self.store), clock=self._clock)
        return self._users

    @property
    def sessions(self) -> "SessionStore":
        """Get the session store instance."""
        if self._sessions is None:
            from modules.sessions.repository import SessionRepository
            from modules.sessions.service import SessionStore
            self._sessions = SessionStore(
                SessionRepository(self.store), settings=self._settings, clock=self._clock
            )
        return self._sessions

    @property
    def tokens(self) -> "TokenIssuer":
        """Get the token issuer instance."""
        if self._tokens is None:
            from modules.auth.repository import RefreshTokenRepository
            from modules.auth.tokens import TokenIssuer
            self._tokens = TokenIssuer(
                identity=self.identity,
                users=self.users.repository,
                sessions=self.sessions,
                repository=RefreshTokenRepository(self.store),
                settings=self._settings,
                clock=self._clock,
            )
        return self._tokens

    @property
    def roles(self) -> "RoleAuthority":
        """Get the role authority instance."""
        if self._roles is None:
            from modules.roles.repository import MembershipRepository
            from modules.roles.service import RoleAuthority
            self._roles = RoleAuthority(
                memberships=MembershipRepository(self.store),
                users=self.users.repository,
                sessions=self.sessions,
                identity=self.identity,
                clock=self._clock,
            )
        return self._roles

    @property
    def auth(self) -> "IAuthService":
        """Get the auth service instance."""
        if self._auth is None:
            from modules.auth.service import AuthService
            self._auth = AuthService(
                identity=self.identity,
                tokens=self.tokens,
                sessions=self.sessions,
                users=self.users,
                roles=self.roles,
                settings=self._settings,
            )
        return self._auth

    def reset(self) -> None:
        """
        Reset all cached services.

        The injected store and identity provider are kept.
        """
        self._users = None
        self._sessions = None
        self._tokens = None
        self._roles = None
        self._auth = None


# Module-level container singleton
_container: ServiceContainer | None = None


def get_container() -> ServiceContainer:
    """Get the singleton service container."""
    global _container
    if _container is None:
        _container = ServiceContainer()
    return _container


def set_container(container: ServiceContainer) -> None:
    """Install a preconfigured container (for tests and scripts)."""
    global _container
    _container = container


def reset_container() -> None:
    """
    Reset the service container.

    This clears the cached container, so the next call to get_container()
    will create a fresh container with new service instances.

    Primarily used for testing.
    """
    global _container
    _container = None


# FastAPI dependency functions
# These are the functions that should be used in route Depends() calls


def get_auth_service() -> "IAuthService":
    """FastAPI dependency for auth service."""
    return get_container().auth


def get_user_service() -> "UserService":
    """FastAPI dependency for user service."""
    return get_container().users


def get_session_store() -> "SessionStore":
    """FastAPI dependency for session store."""
    return get_container().sessions


def get_role_authority() -> "RoleAuthority":
    """FastAPI dependency for role authority."""
    return get_container().roles


def get_document_store() -> "IDocumentStore":
    """FastAPI dependency for the document store."""
    return get_container().store
