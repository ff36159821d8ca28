"""Registration, login and token endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_settings
from core.config import Settings
from models.user import User
from schemas.common import ApiResponse
from schemas.token import RefreshRequest, TokenPair
from schemas.user import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from services import user_service

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post(
    "/register",
    response_model=ApiResponse[AuthResponse],
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[AuthResponse]:
    """Create an account. Registration also logs the user in."""
    user, tokens = await user_service.register(db, data, settings)
    return ApiResponse(
        data=AuthResponse(user=UserResponse.model_validate(user), tokens=tokens),
        message="User registered successfully",
    )


@router.post("/login", response_model=ApiResponse[AuthResponse])
async def login(
    data: LoginRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[AuthResponse]:
    """Exchange email and password for a token pair."""
    user, tokens = await user_service.login(db, data.email, data.password, settings)
    return ApiResponse(
        data=AuthResponse(user=UserResponse.model_validate(user), tokens=tokens),
        message="Login successful",
    )


@router.post("/refresh", response_model=ApiResponse[TokenPair])
async def refresh(
    data: RefreshRequest,
    db: AsyncSession = Depends(get_async_session),
    settings: Settings = Depends(get_settings),
) -> ApiResponse[TokenPair]:
    """Exchange a refresh token for a new token pair."""
    tokens = await user_service.refresh_tokens(db, data.refresh_token, settings)
    return ApiResponse(data=tokens)


@router.post("/logout", response_model=ApiResponse[None])
async def logout(
    _current_user: User = Depends(get_current_user),
) -> ApiResponse[None]:
    """
    Acknowledge logout.

    Tokens are stateless and held by the client, so there is nothing to
    revoke server-side; the client discards its tokens.
    """
    return ApiResponse(message="Logged out successfully")


@router.get("/me", response_model=ApiResponse[UserResponse])
async def get_me(
    current_user: User = Depends(get_current_user),
) -> ApiResponse[UserResponse]:
    """Get the authenticated user."""
    return ApiResponse(data=UserResponse.model_validate(current_user))
