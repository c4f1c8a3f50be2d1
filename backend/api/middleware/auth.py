"""
Authentication dependencies.

Turns a bearer token plus the request's device signals into an immutable
Principal, or fails with a structured AuthenticationError. The principal is
returned to the route handler; nothing is attached to shared request state.
"""

from typing import Optional
from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from modules.auth.interfaces import IAuthService
from modules.roles.exceptions import InsufficientPrivilegeError
from modules.roles.interfaces import IRoleAuthority
from modules.sessions.models import DeviceInfo
from modules.users.models import UserRole
from shared.models import Principal
from shared.security_events import (
    SecurityEventSeverity,
    SecurityEventType,
    log_security_event,
)

from ..dependencies import get_auth_service, get_role_authority

# Bearer token extractor
bearer_scheme = HTTPBearer(auto_error=False)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


def get_device_info(request: Request) -> DeviceInfo:
    """
    Collect the coarse device signals used for fingerprinting.

    Headers: User-Agent, X-Forwarded-For (or the socket peer),
    X-Screen-Resolution, X-Timezone, Accept-Language, Sec-CH-UA-Platform.
    """
    headers = request.headers
    platform = headers.get("sec-ch-ua-platform")
    return DeviceInfo(
        user_agent=headers.get("user-agent"),
        ip=_client_ip(request),
        screen_resolution=headers.get("x-screen-resolution"),
        timezone=headers.get("x-timezone"),
        language=headers.get("accept-language"),
        platform=platform.strip('"') if platform else None,
    )


async def get_current_user(
    device: DeviceInfo = Depends(get_device_info),
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: IAuthService = Depends(get_auth_service),
) -> Principal:
    """
    Dependency that requires authentication.

    Use this for endpoints that require a logged-in user.

    Usage:
        @router.get("/protected")
        async def protected_route(user: Principal = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    token = credentials.credentials if credentials else None
    return await auth.authenticate(token, device)


def require_role(*roles: UserRole):
    """
    Dependency factory that requires one of ``roles``.

    Membership records decide, not the cached role on the principal; a
    superadmin satisfies ``UserRole.ADMIN``.

    Usage:
        @router.get("/admin-only")
        async def admin_route(user: Principal = Depends(require_role(UserRole.ADMIN))):
            ...
    """

    async def dependency(
        user: Principal = Depends(get_current_user),
        authority: IRoleAuthority = Depends(get_role_authority),
    ) -> Principal:
        for role in roles:
            if await authority.has_role(user.id, role):
                return user
        log_security_event(
            SecurityEventType.UNAUTHORIZED_ACCESS,
            SecurityEventSeverity.MEDIUM,
            user_id=user.id,
            required_roles=[r.value for r in roles],
        )
        raise InsufficientPrivilegeError(" or ".join(r.value for r in roles))

    return dependency


# Type aliases for cleaner route definitions
RequireAuth = Depends(get_current_user)
RequireAdmin = Depends(require_role(UserRole.ADMIN))
RequireSuperAdmin = Depends(require_role(UserRole.SUPERADMIN))
