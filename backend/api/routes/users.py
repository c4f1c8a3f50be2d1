"""
User-related endpoints.

Provides endpoints for the current user's profile.
"""

from fastapi import APIRouter, Depends

from modules.users.models import UpdateProfileRequest, UserProfile
from modules.users.service import UserService
from shared.models import Principal
from ..dependencies import get_user_service
from ..middleware.auth import get_current_user

router = APIRouter()


@router.get("/me", response_model=UserProfile)
async def get_current_user_profile(
    user: Principal = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> UserProfile:
    """
    Get the current user's profile.

    Requires authentication.
    """
    return UserProfile.from_record(await users.require_user(user.id))


@router.patch("/me", response_model=UserProfile)
async def update_current_user_profile(
    request: UpdateProfileRequest,
    user: Principal = Depends(get_current_user),
    users: UserService = Depends(get_user_service),
) -> UserProfile:
    """
    Update the current user's name or avatar.

    Role and email cannot be changed here.
    """
    return UserProfile.from_record(await users.update_profile(user.id, request))
