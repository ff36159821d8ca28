"""Pydantic schemas for identity tokens."""
from pydantic import BaseModel


class TokenClaim(BaseModel):
    """Identity payload embedded in both access and refresh tokens."""

    user_id: int
    username: str
    email: str


class TokenPair(BaseModel):
    """Access token (short-lived) plus refresh token (long-lived)."""

    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class RefreshRequest(BaseModel):
    """Schema for exchanging a refresh token for a new pair."""

    refresh_token: str
