"""
Token issuer.

Issues a short-lived access token (a JWT minted through the identity
provider) and a long-lived opaque refresh token, both bound to the device
fingerprint computed at issuance. Only the SHA-256 hash of a refresh token
is stored.

Refresh tokens rotate: each successful refresh revokes the presented token
and issues a new pair in the same transaction, so a token can be used once.
Of two concurrent refreshes with the same token, one commits and the other
conflicts, retries, finds the token revoked and fails.

A refresh token presented from a device whose fingerprint differs from the
one stored at issuance is treated as stolen: every refresh token of the user
is revoked and the session is deleted.

The fingerprint is a low-assurance check. It ties a credential to "the same
device class on the same day of issue" and nothing stronger; see
``fingerprint.py``.
"""

import hmac
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Optional

from pydantic import ValidationError as PydanticValidationError

from modules.sessions.models import DeviceInfo
from modules.sessions.service import SessionStore
from modules.users.exceptions import UserNotFoundError
from modules.users.repository import UserRepository
from shared.config import Settings, get_settings
from shared.models import Clock, utcnow
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)
from shared.store import Transaction

from .exceptions import (
    AccountDisabledError,
    ExpiredTokenError,
    InvalidRefreshTokenError,
    InvalidTokenError,
    SecurityViolationError,
)
from .fingerprint import compute_fingerprint, hash_token
from .interfaces import IIdentityProvider, ITokenIssuer
from .models import AccessTokenClaims, RefreshTokenRecord, TokenPair
from .repository import RefreshTokenRepository

logger = logging.getLogger(__name__)

REASON_REFRESHED = "Refreshed"
REASON_SECURITY_VIOLATION = "Security violation"
REASON_LOGOUT = "Logout"


class TokenIssuer(ITokenIssuer):
    """Access/refresh token issuance, rotation and revocation."""

    def __init__(
        self,
        identity: IIdentityProvider,
        users: UserRepository,
        sessions: SessionStore,
        repository: RefreshTokenRepository,
        settings: Optional[Settings] = None,
        clock: Clock = utcnow,
    ):
        self._identity = identity
        self._users = users
        self._sessions = sessions
        self._repo = repository
        self._settings = settings or get_settings()
        self._clock = clock

    @property
    def access_token_ttl(self) -> timedelta:
        return timedelta(minutes=self._settings.access_token_ttl_minutes)

    @property
    def refresh_token_ttl(self) -> timedelta:
        return timedelta(days=self._settings.refresh_token_ttl_days)

    async def issue_tokens(
        self,
        user_id: str,
        device: DeviceInfo,
        tx: Optional[Transaction] = None,
    ) -> TokenPair:
        """
        Mint a token pair for an existing, enabled user.

        The refresh token record and the session upsert are written in one
        transaction. Pass ``tx`` to join a caller's transaction instead.

        Raises:
            UserNotFoundError: No user record, or it is soft-deleted
            AccountDisabledError: The user has been disabled
        """
        if tx is None:
            return await self._repo.store.run_transaction(
                lambda t: self.issue_tokens(user_id, device, t)
            )

        user = await self._users.get(user_id, tx)
        if user is None or user.deleted:
            raise UserNotFoundError(user_id)
        if user.disabled:
            raise AccountDisabledError()

        now = self._clock()
        fingerprint = compute_fingerprint(device, now.date())
        expires_at = now + self.access_token_ttl

        raw_refresh = secrets.token_hex(self._settings.refresh_token_bytes)
        record = RefreshTokenRecord(
            id=uuid.uuid4().hex,
            user_id=user_id,
            token_hash=hash_token(raw_refresh),
            fingerprint=fingerprint,
            user_agent=device.user_agent,
            ip=device.ip,
            created_at=now,
            expires_at=now + self.refresh_token_ttl,
        )

        access_token = await self._identity.mint_custom_token(
            user_id,
            {
                "role": user.role.value,
                "fp": fingerprint,
                "rid": record.id,
                "typ": "access",
                "iat": int(now.timestamp()),
                "exp": int(expires_at.timestamp()),
            },
        )

        self._repo.add_in(tx, record)
        await self._sessions.ensure_session(user_id, device, fingerprint, tx)

        return TokenPair(
            access_token=access_token,
            refresh_token=raw_refresh,
            session_id=user_id,
            expires_in=int(self.access_token_ttl.total_seconds()),
        )

    async def refresh(self, raw_refresh_token: str, device: DeviceInfo) -> TokenPair:
        token_hash = hash_token(raw_refresh_token)
        record = await self._repo.get(token_hash)
        if not self._is_usable(record):
            logger.info("Rejected refresh with unusable token")
            raise InvalidRefreshTokenError()

        presented = compute_fingerprint(device, record.created_at.date())
        if not hmac.compare_digest(presented, record.fingerprint):
            await self._contain_theft(record, device)
            raise SecurityViolationError()

        async def rotate(tx: Transaction) -> TokenPair:
            current = await self._repo.get(token_hash, tx)
            if not self._is_usable(current):
                raise InvalidRefreshTokenError()
            self._repo.revoke_in(tx, token_hash, REASON_REFRESHED, self._clock())
            return await self.issue_tokens(record.user_id, device, tx)

        tokens = await self._repo.store.run_transaction(rotate)
        logger.debug("Rotated refresh token %s for %s", record.id, record.user_id)
        return tokens

    async def decode_access_token(self, raw_token: str) -> AccessTokenClaims:
        payload = await self._identity.verify_custom_token(raw_token)
        try:
            claims = AccessTokenClaims.model_validate(payload)
        except PydanticValidationError:
            raise InvalidTokenError()
        if claims.typ != "access":
            raise InvalidTokenError()
        if claims.exp <= self._clock().timestamp():
            raise ExpiredTokenError()
        return claims

    async def revoke(self, raw_refresh_token: str, user_id: str, reason: str = REASON_LOGOUT) -> bool:
        """Revoke one refresh token if it belongs to ``user_id`` and is still live."""
        token_hash = hash_token(raw_refresh_token)

        async def revoke_one(tx: Transaction) -> bool:
            record = await self._repo.get(token_hash, tx)
            if record is None or record.user_id != user_id or record.is_revoked:
                return False
            self._repo.revoke_in(tx, token_hash, reason, self._clock())
            return True

        return await self._repo.store.run_transaction(revoke_one)

    async def revoke_record(self, token_id: str, user_id: str, reason: str = REASON_LOGOUT) -> bool:
        """Revoke a refresh token by record ID, as named in an access token's ``rid``."""
        record = await self._repo.find_by_id(token_id)
        if record is None:
            return False

        async def revoke_one(tx: Transaction) -> bool:
            current = await self._repo.get(record.token_hash, tx)
            if current is None or current.user_id != user_id or current.is_revoked:
                return False
            self._repo.revoke_in(tx, record.token_hash, reason, self._clock())
            return True

        return await self._repo.store.run_transaction(revoke_one)

    async def revoke_all(self, user_id: str, reason: str, terminate_session: bool = False) -> int:
        live = await self._repo.list_live(user_id)

        async def revoke_many(tx: Transaction) -> int:
            now = self._clock()
            revoked = 0
            for candidate in live:
                record = await self._repo.get(candidate.token_hash, tx)
                if record is None or record.is_revoked:
                    continue
                self._repo.revoke_in(tx, record.token_hash, reason, now)
                revoked += 1
            if terminate_session:
                await self._sessions.terminate(user_id, tx)
            return revoked

        revoked = await self._repo.store.run_transaction(revoke_many)
        logger.info("Revoked %d refresh tokens for %s (%s)", revoked, user_id, reason)
        return revoked

    async def is_token_live(self, user_id: str, token_id: str, fingerprint: str) -> bool:
        """Whether refresh token ``token_id`` of the user is unrevoked, unexpired and bound to ``fingerprint``."""
        record = await self._repo.find_by_id(token_id)
        return (
            self._is_usable(record)
            and record.user_id == user_id
            and hmac.compare_digest(record.fingerprint, fingerprint)
        )

    async def cleanup_expired_tokens(self) -> int:
        """Delete refresh token records past their expiry."""
        expired = await self._repo.list_expired(self._clock())
        if not expired:
            logger.info("No expired refresh tokens found")
            return 0

        async def purge(tx: Transaction) -> None:
            for record in expired:
                self._repo.delete_in(tx, record.token_hash)

        await self._repo.store.run_transaction(purge)
        logger.info("Cleaned up %d expired refresh tokens", len(expired))
        return len(expired)

    def _is_usable(self, record: Optional[RefreshTokenRecord]) -> bool:
        return (
            record is not None
            and not record.is_revoked
            and record.expires_at > self._clock()
        )

    async def _contain_theft(self, record: RefreshTokenRecord, device: DeviceInfo) -> None:
        revoked = await self.revoke_all(
            record.user_id, REASON_SECURITY_VIOLATION, terminate_session=True
        )
        log_security_event(
            SecurityEventType.TOKEN_THEFT,
            SecurityEventSeverity.HIGH,
            user_id=record.user_id,
            ip=device.ip,
            token_id=record.id,
            issued_ip=record.ip,
            issued_user_agent=record.user_agent,
            user_agent=device.user_agent,
            revoked_tokens=revoked,
        )
