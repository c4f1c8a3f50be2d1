"""
Authentication API endpoints.

Token pairs are returned in the response body; clients send the access token
as a bearer token and the device headers read by ``get_device_info`` with
every request.
"""

from typing import Optional
from fastapi import APIRouter, Body, Depends

from api.dependencies import get_auth_service, get_session_store
from api.middleware.auth import get_current_user, get_device_info
from modules.sessions.exceptions import SessionInvalidError
from modules.sessions.interfaces import ISessionStore
from modules.sessions.models import DeviceInfo, SessionInfo
from shared.models import Principal

from .interfaces import IAuthService
from .models import (
    AuthResponse,
    LoginRequest,
    LogoutRequest,
    LogoutResponse,
    RefreshRequest,
    RegisterRequest,
    TokenPair,
)

router = APIRouter()


@router.post("/register", response_model=AuthResponse, status_code=201)
async def register(
    request: RegisterRequest,
    device: DeviceInfo = Depends(get_device_info),
    auth: IAuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Create an email/password account and sign it in.
    """
    return await auth.register(request, device)


@router.post("/login", response_model=AuthResponse)
async def login(
    request: LoginRequest,
    device: DeviceInfo = Depends(get_device_info),
    auth: IAuthService = Depends(get_auth_service),
) -> AuthResponse:
    """
    Exchange an identity-provider ID token for an access/refresh token pair.

    Creates the user record on first sign-in and replaces any existing
    session of the user.
    """
    return await auth.login(request.id_token, device)


@router.post("/refresh", response_model=TokenPair)
async def refresh(
    request: RefreshRequest,
    device: DeviceInfo = Depends(get_device_info),
    auth: IAuthService = Depends(get_auth_service),
) -> TokenPair:
    """
    Rotate a refresh token. The presented token cannot be used again.
    """
    return await auth.refresh(request.refresh_token, device)


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    request: Optional[LogoutRequest] = Body(default=None),
    user: Principal = Depends(get_current_user),
    auth: IAuthService = Depends(get_auth_service),
) -> LogoutResponse:
    refresh_token = request.refresh_token if request else None
    revoked = await auth.logout(user, refresh_token)
    return LogoutResponse(revoked_tokens=revoked)


@router.post("/logout-all", response_model=LogoutResponse)
async def logout_all(
    user: Principal = Depends(get_current_user),
    auth: IAuthService = Depends(get_auth_service),
) -> LogoutResponse:
    """
    Revoke every refresh token of the current user.
    """
    revoked = await auth.logout_all(user)
    return LogoutResponse(revoked_tokens=revoked)


@router.get("/session", response_model=SessionInfo)
async def get_session(
    user: Principal = Depends(get_current_user),
    sessions: ISessionStore = Depends(get_session_store),
) -> SessionInfo:
    session = await sessions.get_session(user.id)
    if session is None:
        raise SessionInvalidError()
    return SessionInfo.from_session(session)
