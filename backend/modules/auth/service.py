"""
Authentication service implementation.

Sign-in flows (ID-token login, password registration, refresh, logout) and
per-request authentication. A request is authenticated when all of these
hold:

- the access token verifies and has not expired
- the user record exists and is not disabled
- the device signals reproduce the fingerprint bound into the token
- the session keyed by the user ID is valid for that fingerprint

A missing session is recreated only while the refresh token issued with the
presented access token is still live, so a logged-out session stays gone
even when the user holds other tokens for the same device.
"""

import hmac
import logging
from typing import Optional

from modules.roles.interfaces import IRoleAuthority
from modules.sessions.exceptions import (
    SessionExpiredError,
    SessionInvalidError,
    SessionMismatchError,
)
from modules.sessions.models import DeviceInfo, SessionStatus
from modules.sessions.service import SessionStore
from modules.users.exceptions import EmailInUseError
from modules.users.models import NewUser, UserProfile, UserRecord, UserRole
from modules.users.service import UserService
from shared.config import Settings, get_settings
from shared.exceptions import AuthenticationError, MindQuestError
from shared.models import Principal
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)

from .exceptions import (
    AccountDisabledError,
    AccountModificationForbiddenError,
    InvalidTokenError,
    MissingTokenError,
)
from .fingerprint import compute_fingerprint
from .interfaces import IAuthService, IIdentityProvider
from .models import AuthResponse, RegisterRequest, TokenPair, VerifiedIdentity
from .tokens import TokenIssuer

logger = logging.getLogger(__name__)


class AuthService(IAuthService):
    """
    Implementation of the authentication service.

    Verifies identity-provider ID tokens at sign-in, then authenticates every
    later request with the backend's own access tokens and sessions.
    """

    def __init__(
        self,
        identity: IIdentityProvider,
        tokens: TokenIssuer,
        sessions: SessionStore,
        users: UserService,
        roles: IRoleAuthority,
        settings: Optional[Settings] = None,
    ):
        self._identity = identity
        self._tokens = tokens
        self._sessions = sessions
        self._users = users
        self._roles = roles
        self._settings = settings or get_settings()

    async def login(self, id_token: str, device: DeviceInfo) -> AuthResponse:
        try:
            identity = await self._identity.verify_signed_token(id_token)
        except AuthenticationError as e:
            log_security_event(
                SecurityEventType.FAILED_LOGIN,
                SecurityEventSeverity.MEDIUM,
                ip=device.ip,
                reason=e.code,
                user_agent=device.user_agent,
            )
            raise

        user = await self._users.repository.get(identity.subject_id)
        if user is None:
            if not self._settings.user_autocreate:
                raise InvalidTokenError()
            user = await self._create_from_identity(identity)
        elif user.deleted or user.disabled:
            log_security_event(
                SecurityEventType.FAILED_LOGIN,
                SecurityEventSeverity.MEDIUM,
                user_id=user.id,
                ip=device.ip,
                reason="account_disabled",
            )
            raise AccountDisabledError()

        await self._users.mark_active(user.id, email_verified=identity.email_verified)
        tokens = await self._tokens.issue_tokens(user.id, device)

        log_security_event(
            SecurityEventType.SUCCESSFUL_LOGIN,
            SecurityEventSeverity.LOW,
            user_id=user.id,
            ip=device.ip,
            provider=user.provider.value,
        )
        user = await self._users.require_user(user.id)
        return AuthResponse(tokens=tokens, user=UserProfile.from_record(user))

    async def register(self, request: RegisterRequest, device: DeviceInfo) -> AuthResponse:
        if await self._users.find_by_email(request.email) is not None:
            raise EmailInUseError()

        subject_id = await self._identity.create_user(request.email, request.password, request.name)
        created: Optional[UserRecord] = None
        try:
            created = await self._users.create_user(
                NewUser(
                    id=subject_id,
                    email=request.email,
                    name=request.name,
                    avatar_id=request.avatar_id,
                )
            )
            tokens = await self._tokens.issue_tokens(subject_id, device)
        except MindQuestError:
            await self._undo_registration(subject_id, created)
            raise

        logger.info("Registered user %s", subject_id)
        return AuthResponse(tokens=tokens, user=UserProfile.from_record(created))

    async def _undo_registration(self, subject_id: str, created: Optional[UserRecord]) -> None:
        logger.warning("Registration of %s failed; rolling back", subject_id)
        if created is not None:
            await self._users.soft_delete(subject_id)
        try:
            await self._identity.delete_user(subject_id)
        except MindQuestError:
            logger.exception("Failed to delete identity account %s after failed registration", subject_id)

    async def _create_from_identity(self, identity: VerifiedIdentity) -> UserRecord:
        return await self._users.create_user(
            NewUser(
                id=identity.subject_id,
                email=identity.email,
                name=identity.name or "",
                email_verified=identity.email_verified,
                provider=identity.provider,
            )
        )

    async def refresh(self, refresh_token: str, device: DeviceInfo) -> TokenPair:
        return await self._tokens.refresh(refresh_token, device)

    async def logout(self, principal: Principal, refresh_token: Optional[str] = None) -> int:
        if refresh_token:
            revoked = 1 if await self._tokens.revoke(refresh_token, principal.id) else 0
            if principal.token_id and await self._tokens.revoke_record(principal.token_id, principal.id):
                revoked += 1
            await self._sessions.terminate(principal.id)
        else:
            revoked = await self._tokens.revoke_all(
                principal.id, "Logout", terminate_session=True
            )
        logger.info("User %s logged out", principal.id)
        return revoked

    async def logout_all(self, principal: Principal) -> int:
        return await self._tokens.revoke_all(
            principal.id, "Logout all devices", terminate_session=True
        )

    async def authenticate(self, token: Optional[str], device: DeviceInfo) -> Principal:
        if not token:
            raise MissingTokenError()

        claims = await self._tokens.decode_access_token(token)

        user = await self._users.repository.get(claims.sub)
        if user is None or user.deleted:
            raise InvalidTokenError()
        if user.disabled:
            raise AccountDisabledError()

        presented = compute_fingerprint(device, claims.issued_at.date())
        if not hmac.compare_digest(presented, claims.fp):
            log_security_event(
                SecurityEventType.SUSPICIOUS_ACTIVITY,
                SecurityEventSeverity.HIGH,
                user_id=user.id,
                ip=device.ip,
                reason="access_token_fingerprint_mismatch",
                user_agent=device.user_agent,
            )
            raise SessionMismatchError()

        validation = await self._sessions.validate_session(user.id, presented)
        if validation.status == SessionStatus.EXPIRED:
            raise SessionExpiredError()
        if validation.status == SessionStatus.FINGERPRINT_MISMATCH:
            raise SessionMismatchError()
        if validation.status == SessionStatus.NOT_FOUND:
            if not await self._tokens.is_token_live(user.id, claims.rid, presented):
                raise SessionInvalidError()
            await self._sessions.ensure_session(user.id, device, presented)
            logger.info("Recreated missing session for %s", user.id)
        else:
            await self._sessions.touch(user.id)

        return Principal(
            id=user.id,
            role=user.role.value,
            email=user.email,
            email_verified=user.email_verified,
            token_id=claims.rid,
        )

    async def disable_account(self, target_id: str, actor: Principal) -> UserRecord:
        if target_id == actor.id:
            raise AccountModificationForbiddenError(target_id, "cannot disable your own account")

        target_role = await self._roles.effective_role(target_id)
        if target_role in (UserRole.ADMIN, UserRole.SUPERADMIN) and not await self._roles.is_super_admin(actor.id):
            log_security_event(
                SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT,
                SecurityEventSeverity.HIGH,
                user_id=actor.id,
                target_id=target_id,
                action="disable_account",
            )
            raise AccountModificationForbiddenError(target_id, "only a superadmin can disable an admin")

        user = await self._users.set_disabled(target_id, True)
        await self._identity.disable_user(target_id)
        revoked = await self._tokens.revoke_all(
            target_id, "Account disabled", terminate_session=True
        )

        log_security_event(
            SecurityEventType.ACCOUNT_DISABLED,
            SecurityEventSeverity.MEDIUM,
            user_id=actor.id,
            target_id=target_id,
            revoked_tokens=revoked,
        )
        return user
