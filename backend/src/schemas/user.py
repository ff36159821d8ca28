"""Pydantic schemas for registration, login and profile endpoints."""
import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, EmailStr, field_validator

from schemas.token import TokenPair
from schemas.validators import validate_http_url

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_]{3,50}$")


class RegisterRequest(BaseModel):
    """Schema for creating an account."""

    username: str
    email: EmailStr
    password: str
    full_name: str | None = None

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        """Usernames are 3-50 letters, digits or underscores."""
        v = v.strip()
        if not USERNAME_PATTERN.match(v):
            raise ValueError(
                "Username must be 3-50 characters of letters, numbers and underscores",
            )
        return v

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, v: str | None) -> str | None:
        """Limit full name length."""
        if v is not None and len(v) > 100:
            raise ValueError("Full name exceeds maximum length of 100 characters")
        return v


class LoginRequest(BaseModel):
    """Schema for logging in with email and password."""

    email: EmailStr
    password: str


class ProfileUpdate(BaseModel):
    """Schema for updating non-identity profile attributes."""

    full_name: str | None = None
    avatar_url: str | None = None

    @field_validator("full_name")
    @classmethod
    def check_full_name(cls, v: str | None) -> str | None:
        """Limit full name length."""
        if v is not None and len(v) > 100:
            raise ValueError("Full name exceeds maximum length of 100 characters")
        return v

    @field_validator("avatar_url")
    @classmethod
    def check_avatar_url(cls, v: str | None) -> str | None:
        """Avatar must be an http(s) URL."""
        return validate_http_url(v) if v is not None else None


class ChangePasswordRequest(BaseModel):
    """Schema for replacing the current password."""

    current_password: str
    new_password: str


class DeleteAccountRequest(BaseModel):
    """Schema for deleting the account; requires password re-entry."""

    password: str


class UserResponse(BaseModel):
    """The authenticated user's own view of their account."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    full_name: str | None
    avatar_url: str | None
    created_at: datetime
    last_login: datetime | None = None


class ProfileResponse(UserResponse):
    """Private profile with bookmark counts."""

    total_bookmarks: int
    public_bookmarks: int


class PublicProfileResponse(BaseModel):
    """Public profile - never exposes email or password digest."""

    username: str
    full_name: str | None
    avatar_url: str | None
    created_at: datetime
    public_bookmarks: int


class AuthResponse(BaseModel):
    """User plus freshly issued tokens (registration, login)."""

    user: UserResponse
    tokens: TokenPair
