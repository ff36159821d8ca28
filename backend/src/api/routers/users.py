"""Profile and account endpoints."""
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.common import ApiResponse
from schemas.user import (
    ChangePasswordRequest,
    DeleteAccountRequest,
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    UserResponse,
)
from services import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/profile", response_model=ApiResponse[ProfileResponse])
async def get_profile(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[ProfileResponse]:
    """Get the current user's profile with bookmark counts."""
    return ApiResponse(data=await user_service.get_profile(db, current_user))


@router.put("/profile", response_model=ApiResponse[UserResponse])
async def update_profile(
    data: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[UserResponse]:
    """Update full name and/or avatar."""
    user = await user_service.update_profile(db, current_user, data)
    return ApiResponse(
        data=UserResponse.model_validate(user),
        message="Profile updated successfully",
    )


@router.put("/password", response_model=ApiResponse[None])
async def change_password(
    data: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[None]:
    """Change password; the current password must be supplied."""
    await user_service.change_password(
        db, current_user, data.current_password, data.new_password, settings,
    )
    return ApiResponse(message="Password changed successfully")


@router.delete("/account", response_model=ApiResponse[None])
async def delete_account(
    data: DeleteAccountRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Permanently delete the account and all of its bookmarks and tags."""
    await user_service.delete_account(db, current_user, data.password)
    return ApiResponse(message="Account deleted successfully")


@router.get("/{username}/public", response_model=ApiResponse[PublicProfileResponse])
async def get_public_profile(
    username: str,
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[PublicProfileResponse]:
    """Public profile: no email, just name, avatar and public bookmark count."""
    return ApiResponse(data=await user_service.get_public_profile(db, username))
