"""
Admin and superadmin API endpoints.

Route-level guards only gate access to the router; the Role Authority
re-checks the actor's privilege for every transition.
"""

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_auth_service, get_role_authority, get_user_service
from api.middleware.auth import require_role
from modules.auth.interfaces import IAuthService
from modules.users.models import UserListItem, UserProfile, UserRole
from modules.users.service import UserService
from shared.models import Principal

from .interfaces import IRoleAuthority
from .models import (
    ChangeRoleRequest,
    ConsistencyResponse,
    MembershipRecord,
    RoleChange,
    RoleCheckResponse,
    SuperAdminRequest,
    UpdatePermissionsRequest,
)

admin_router = APIRouter()
superadmin_router = APIRouter()


# ---- Admin -------------------------------------------------------------------


@admin_router.get("/users", response_model=list[UserListItem])
async def list_users(
    limit: int = Query(default=100, ge=1, le=500),
    user: Principal = Depends(require_role(UserRole.ADMIN)),
    users: UserService = Depends(get_user_service),
) -> list[UserListItem]:
    records = await users.list_users(limit=limit)
    return [UserListItem.model_validate(r.model_dump()) for r in records]


@admin_router.put("/users/{user_id}/role", response_model=RoleChange)
async def change_role(
    user_id: str,
    request: ChangeRoleRequest,
    user: Principal = Depends(require_role(UserRole.ADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> RoleChange:
    """
    Change a user's role.

    Admins may grant or remove counselor; admin and superadmin grants, and any
    change to an admin, need a superadmin.
    """
    return await authority.promote(user_id, request.role, user.id)


@admin_router.post("/users/{user_id}/demote", response_model=RoleChange)
async def demote_admin(
    user_id: str,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> RoleChange:
    return await authority.demote_admin(user_id, user.id)


@admin_router.post("/users/{user_id}/disable", response_model=UserProfile)
async def disable_user(
    user_id: str,
    user: Principal = Depends(require_role(UserRole.ADMIN)),
    auth: IAuthService = Depends(get_auth_service),
) -> UserProfile:
    """
    Disable an account and revoke all of its credentials.
    """
    return UserProfile.from_record(await auth.disable_account(user_id, user))


# ---- Superadmin --------------------------------------------------------------


@superadmin_router.post("/add", response_model=RoleChange)
async def add_super_admin(
    request: SuperAdminRequest,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> RoleChange:
    return await authority.add_super_admin(request.user_id, user.id)


@superadmin_router.post("/remove", response_model=RoleChange)
async def remove_super_admin(
    request: SuperAdminRequest,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> RoleChange:
    """
    Downgrade a superadmin to admin. Removing admin is a separate step.
    """
    return await authority.remove_super_admin(request.user_id, user.id)


@superadmin_router.get("/list", response_model=list[MembershipRecord])
async def list_super_admins(
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> list[MembershipRecord]:
    return await authority.list_members(UserRole.SUPERADMIN)


@superadmin_router.get("/check/{user_id}", response_model=RoleCheckResponse)
async def check_roles(
    user_id: str,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> RoleCheckResponse:
    return RoleCheckResponse(
        user_id=user_id,
        is_super_admin=await authority.is_super_admin(user_id),
        is_admin=await authority.is_admin(user_id),
        is_counselor=await authority.is_counselor(user_id),
        effective_role=await authority.effective_role(user_id),
    )


@superadmin_router.get("/consistency/{user_id}", response_model=ConsistencyResponse)
async def check_consistency(
    user_id: str,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> ConsistencyResponse:
    return ConsistencyResponse.from_report(await authority.check_consistency(user_id))


@superadmin_router.post("/consistency/{user_id}/reconcile", response_model=ConsistencyResponse)
async def reconcile(
    user_id: str,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> ConsistencyResponse:
    """
    Rewrite the user's cached role from their membership records.
    """
    return ConsistencyResponse.from_report(await authority.reconcile(user_id, user.id))


@superadmin_router.put("/admins/{user_id}/permissions", response_model=MembershipRecord)
async def update_permissions(
    user_id: str,
    request: UpdatePermissionsRequest,
    user: Principal = Depends(require_role(UserRole.SUPERADMIN)),
    authority: IRoleAuthority = Depends(get_role_authority),
) -> MembershipRecord:
    return await authority.update_permissions(user_id, request.permissions, user.id)
