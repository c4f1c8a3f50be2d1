"""
Role authority implementation.

Keeps the ``role`` field on the user record and the membership collections
consistent. Membership records are authoritative; the role field is a cache
that every transition rewrites in the same transaction as the records.

Every transition reads the actor's and the target's memberships through the
transaction that commits the change, so a concurrent role change of either
one makes the commit conflict and the decision is taken again. Checks run in
a fixed order before anything is written:

1. privilege for the grant (only a superadmin grants admin or superadmin,
   even to themselves)
2. self-modification (an admin or superadmin changing their own role)
3. privilege for the target (superadmin for changing an admin; admin or
   better for everything else)
4. transition policy (a superadmin only leaves through remove_super_admin)
5. target existence
"""

import logging
from typing import Awaitable, Callable, Optional

from modules.auth.interfaces import IIdentityProvider
from modules.sessions.service import SessionStore
from modules.users.exceptions import UserNotFoundError
from modules.users.models import UserRole
from modules.users.repository import UserRepository
from shared.exceptions import ExternalServiceError
from shared.models import Clock, utcnow
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)
from shared.store import Transaction

from .exceptions import (
    InsufficientPrivilegeError,
    InvalidRoleTransitionError,
    MembershipNotFoundError,
    SelfModificationForbiddenError,
    SuperAdminExistsError,
)
from .interfaces import IRoleAuthority
from .models import (
    DEFAULT_PERMISSIONS,
    MEMBERSHIP_ROLES,
    ROLE_RANK,
    MembershipLookup,
    MembershipRecord,
    MembershipStatus,
    RoleChange,
    RoleConsistencyReport,
)
from .repository import MembershipRepository

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
# Role transactions are retried once on conflict, then surface.
ROLE_TRANSACTION_ATTEMPTS = 2

# Raises to refuse a transition; gets the transaction and the target's current role.
Authorizer = Callable[[Transaction, UserRole], Awaitable[None]]


def _derive_role(lookups: dict[UserRole, MembershipLookup]) -> UserRole:
    for role in MEMBERSHIP_ROLES:
        if lookups[role].present:
            return role
    return UserRole.USER


class RoleAuthority(IRoleAuthority):
    """Role checks and transitions over MembershipRepository."""

    def __init__(
        self,
        memberships: MembershipRepository,
        users: UserRepository,
        sessions: SessionStore,
        identity: IIdentityProvider,
        clock: Clock = utcnow,
    ):
        self._memberships = memberships
        self._users = users
        self._sessions = sessions
        self._identity = identity
        self._clock = clock

    # ---- Checks ----------------------------------------------------------

    async def is_super_admin(self, user_id: str) -> bool:
        return (await self._memberships.lookup(UserRole.SUPERADMIN, user_id)).present

    async def is_admin(self, user_id: str) -> bool:
        if await self.is_super_admin(user_id):
            return True
        return (await self._memberships.lookup(UserRole.ADMIN, user_id)).present

    async def is_counselor(self, user_id: str) -> bool:
        return (await self._memberships.lookup(UserRole.COUNSELOR, user_id)).present

    async def effective_role(self, user_id: str) -> UserRole:
        return _derive_role(await self._lookup_all(user_id))

    async def has_role(self, user_id: str, role: UserRole) -> bool:
        if role == UserRole.USER:
            return True
        if role == UserRole.SUPERADMIN:
            return await self.is_super_admin(user_id)
        if role == UserRole.ADMIN:
            return await self.is_admin(user_id)
        return await self.is_counselor(user_id)

    # ---- Transitions -----------------------------------------------------

    async def promote(
        self, target_user_id: str, new_role: UserRole, acting_user_id: str
    ) -> RoleChange:
        async def authorize(tx: Transaction, previous: UserRole) -> None:
            actor_role = await self._role_in(tx, acting_user_id)
            # Grants above the actor's authority fail first, even on themselves.
            if new_role in (UserRole.SUPERADMIN, UserRole.ADMIN) and actor_role != UserRole.SUPERADMIN:
                self._deny(acting_user_id, target_user_id, new_role, UserRole.SUPERADMIN)
            if target_user_id == acting_user_id and ROLE_RANK[actor_role] >= ROLE_RANK[UserRole.ADMIN]:
                self._forbid_self(acting_user_id, new_role)

            if previous in (UserRole.SUPERADMIN, UserRole.ADMIN):
                required = UserRole.SUPERADMIN
            else:
                required = UserRole.ADMIN
            if ROLE_RANK[actor_role] < ROLE_RANK[required]:
                self._deny(acting_user_id, target_user_id, new_role, required)

            if previous == UserRole.SUPERADMIN:
                raise InvalidRoleTransitionError(
                    previous.value, new_role.value, "use superadmin removal instead"
                )

        return await self._apply(target_user_id, new_role, acting_user_id, authorize)

    async def demote_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        return await self._apply(
            target_user_id,
            UserRole.USER,
            acting_user_id,
            self._superadmin_only(target_user_id, UserRole.USER, acting_user_id),
            require_membership=UserRole.ADMIN,
        )

    async def add_super_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        return await self.promote(target_user_id, UserRole.SUPERADMIN, acting_user_id)

    async def remove_super_admin(self, target_user_id: str, acting_user_id: str) -> RoleChange:
        return await self._apply(
            target_user_id,
            UserRole.ADMIN,
            acting_user_id,
            self._superadmin_only(target_user_id, UserRole.ADMIN, acting_user_id),
            require_membership=UserRole.SUPERADMIN,
        )

    async def bootstrap_super_admin(self, user_id: str) -> RoleChange:
        """Grant superadmin to the first user; only valid while none exists."""

        async def authorize(tx: Transaction, previous: UserRole) -> None:
            await self._memberships.claim_bootstrap_in(tx, user_id, self._clock())
            if await self._memberships.list_members(UserRole.SUPERADMIN):
                raise SuperAdminExistsError()

        change = await self._apply(user_id, UserRole.SUPERADMIN, SYSTEM_ACTOR, authorize)
        logger.warning("Bootstrapped superadmin %s", user_id)
        return change

    def _superadmin_only(
        self, target_user_id: str, new_role: UserRole, acting_user_id: str
    ) -> Authorizer:
        async def authorize(tx: Transaction, previous: UserRole) -> None:
            actor_role = await self._role_in(tx, acting_user_id)
            if target_user_id == acting_user_id and ROLE_RANK[actor_role] >= ROLE_RANK[UserRole.ADMIN]:
                self._forbid_self(acting_user_id, new_role)
            if actor_role != UserRole.SUPERADMIN:
                self._deny(acting_user_id, target_user_id, new_role, UserRole.SUPERADMIN)

        return authorize

    async def _apply(
        self,
        target_user_id: str,
        new_role: UserRole,
        acting_user_id: str,
        authorize: Authorizer,
        require_membership: Optional[UserRole] = None,
    ) -> RoleChange:
        async def change(tx: Transaction) -> RoleChange:
            lookups = await self._lookup_all(target_user_id, tx)
            previous = _derive_role(lookups)
            await authorize(tx, previous)

            user = await self._users.get(target_user_id, tx)
            if user is None or user.deleted:
                raise UserNotFoundError(target_user_id)
            if require_membership is not None and not lookups[require_membership].present:
                raise MembershipNotFoundError(target_user_id, require_membership.value)
            if previous == UserRole.SUPERADMIN and require_membership != UserRole.SUPERADMIN:
                raise InvalidRoleTransitionError(
                    previous.value, new_role.value, "use superadmin removal instead"
                )

            now = self._clock()
            for role, lookup in lookups.items():
                if role != new_role and lookup.status != MembershipStatus.ABSENT:
                    self._memberships.revoke_in(tx, role, target_user_id)

            if new_role in MEMBERSHIP_ROLES:
                existing = lookups[new_role].record
                self._memberships.grant_in(
                    tx,
                    new_role,
                    MembershipRecord(
                        user_id=target_user_id,
                        email=user.email,
                        name=user.name,
                        granted_by=acting_user_id,
                        permissions=(
                            existing.permissions if existing
                            else list(DEFAULT_PERMISSIONS[new_role])
                        ),
                        created_at=existing.created_at if existing else now,
                        updated_at=now,
                    ),
                )

            self._users.set_role_in(tx, target_user_id, new_role, now)
            if ROLE_RANK[new_role] < ROLE_RANK[previous]:
                await self._sessions.terminate(target_user_id, tx)

            return RoleChange(
                user_id=target_user_id,
                previous_role=previous,
                new_role=new_role,
                changed_by=acting_user_id,
                changed_at=now,
            )

        result = await self._users.store.run_transaction(
            change, attempts=ROLE_TRANSACTION_ATTEMPTS
        )
        await self._sync_claims(target_user_id, new_role)

        log_security_event(
            SecurityEventType.ROLE_CHANGE,
            SecurityEventSeverity.MEDIUM,
            user_id=acting_user_id,
            target_id=target_user_id,
            previous_role=result.previous_role.value,
            new_role=result.new_role.value,
        )
        return result

    async def _sync_claims(self, user_id: str, role: UserRole) -> None:
        try:
            await self._identity.set_claims(
                user_id,
                {
                    "role": role.value,
                    "admin": ROLE_RANK[role] >= ROLE_RANK[UserRole.ADMIN],
                    "superadmin": role == UserRole.SUPERADMIN,
                },
            )
        except ExternalServiceError as e:
            # Claims are informational; memberships already committed.
            logger.warning("Failed to sync identity claims for %s: %s", user_id, e.message)

    # ---- Membership administration ---------------------------------------

    async def list_members(self, role: UserRole) -> list[MembershipRecord]:
        return await self._memberships.list_members(role)

    async def update_permissions(
        self, target_user_id: str, permissions: list[str], acting_user_id: str
    ) -> MembershipRecord:
        cleaned = sorted({p.strip() for p in permissions if p.strip()})

        async def update(tx: Transaction) -> MembershipRecord:
            if await self._role_in(tx, acting_user_id) != UserRole.SUPERADMIN:
                self._deny(acting_user_id, target_user_id, UserRole.ADMIN, UserRole.SUPERADMIN)
            lookup = await self._memberships.lookup(UserRole.ADMIN, target_user_id, tx)
            if not lookup.present:
                raise MembershipNotFoundError(target_user_id, UserRole.ADMIN.value)
            now = self._clock()
            self._memberships.set_permissions_in(tx, UserRole.ADMIN, target_user_id, cleaned, now)
            return lookup.record.model_copy(update={"permissions": cleaned, "updated_at": now})

        record = await self._users.store.run_transaction(
            update, attempts=ROLE_TRANSACTION_ATTEMPTS
        )
        log_security_event(
            SecurityEventType.ADMIN_ACTION,
            SecurityEventSeverity.LOW,
            user_id=acting_user_id,
            action="update_permissions",
            target_id=target_user_id,
            permissions=cleaned,
        )
        return record

    # ---- Consistency -----------------------------------------------------

    async def check_consistency(self, user_id: str) -> RoleConsistencyReport:
        user = await self._users.get(user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return self._report(user_id, user.role, await self._lookup_all(user_id))

    async def reconcile(
        self, user_id: str, acting_user_id: Optional[str] = None
    ) -> RoleConsistencyReport:
        """
        Make the user's records agree with their highest valid membership.

        Lower memberships held alongside a higher one and records stored under
        this user's key but naming someone else are deleted; the cached role
        is rewritten.
        """

        async def repair(tx: Transaction) -> RoleConsistencyReport:
            user = await self._users.get(user_id, tx)
            if user is None:
                raise UserNotFoundError(user_id)
            lookups = await self._lookup_all(user_id, tx)
            before = self._report(user_id, user.role, lookups)
            if before.consistent:
                return before

            effective = _derive_role(lookups)
            for role, lookup in lookups.items():
                if lookup.status == MembershipStatus.ABSENT or role == effective:
                    continue
                self._memberships.revoke_in(tx, role, user_id)
            self._users.set_role_in(tx, user_id, effective, self._clock())
            return before

        before = await self._users.store.run_transaction(
            repair, attempts=ROLE_TRANSACTION_ATTEMPTS
        )
        if before.consistent:
            return before

        log_security_event(
            SecurityEventType.ADMIN_ACTION,
            SecurityEventSeverity.MEDIUM,
            user_id=acting_user_id or SYSTEM_ACTOR,
            action="reconcile_role",
            target_id=user_id,
            issues=before.issues,
        )
        await self._sync_claims(user_id, before.effective_role)
        return await self.check_consistency(user_id)

    def _report(
        self,
        user_id: str,
        cached_role: UserRole,
        lookups: dict[UserRole, MembershipLookup],
    ) -> RoleConsistencyReport:
        memberships = [role for role in MEMBERSHIP_ROLES if lookups[role].present]
        mismatched = [
            role for role in MEMBERSHIP_ROLES
            if lookups[role].status == MembershipStatus.MISMATCHED
        ]
        effective = _derive_role(lookups)

        issues = []
        if len(memberships) > 1:
            issues.append(
                "holds multiple memberships: " + ", ".join(r.value for r in memberships)
            )
        for role in mismatched:
            issues.append(
                f"{role.value} record at this key names {lookups[role].stored_user_id}"
            )
        if cached_role != effective:
            issues.append(
                f"role field is {cached_role.value} but memberships grant {effective.value}"
            )

        return RoleConsistencyReport(
            user_id=user_id,
            cached_role=cached_role,
            effective_role=effective,
            memberships=memberships,
            mismatched=mismatched,
            issues=issues,
        )

    # ---- Helpers ---------------------------------------------------------

    async def _lookup_all(
        self, user_id: str, tx: Optional[Transaction] = None
    ) -> dict[UserRole, MembershipLookup]:
        lookups = {}
        for role in MEMBERSHIP_ROLES:
            lookups[role] = await self._memberships.lookup(role, user_id, tx)
        return lookups

    async def _role_in(self, tx: Transaction, user_id: str) -> UserRole:
        return _derive_role(await self._lookup_all(user_id, tx))

    def _forbid_self(self, actor_id: str, attempted_role: UserRole) -> None:
        log_security_event(
            SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT,
            SecurityEventSeverity.MEDIUM,
            user_id=actor_id,
            target_id=actor_id,
            attempted_role=attempted_role.value,
            reason="self_modification",
        )
        raise SelfModificationForbiddenError()

    def _deny(
        self,
        actor_id: str,
        target_id: str,
        attempted_role: UserRole,
        required_role: UserRole,
    ) -> None:
        log_security_event(
            SecurityEventType.PRIVILEGE_ESCALATION_ATTEMPT,
            SecurityEventSeverity.HIGH,
            user_id=actor_id,
            target_id=target_id,
            attempted_role=attempted_role.value,
            required_role=required_role.value,
        )
        raise InsufficientPrivilegeError(required_role.value, attempted_role.value)
