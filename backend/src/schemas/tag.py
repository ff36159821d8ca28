"""Pydantic schemas for tag endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.validators import validate_and_normalize_tag


class TagCreate(BaseModel):
    """Schema for creating a tag explicitly."""

    name: str

    @field_validator("name")
    @classmethod
    def normalize(cls, v: str) -> str:
        """Normalize and validate the tag name."""
        return validate_and_normalize_tag(v)


class TagResponse(BaseModel):
    """Schema for a tag attached to a bookmark or returned on creation."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str


class TagCount(BaseModel):
    """Schema for an owned tag with the number of bookmarks using it."""

    id: int
    name: str
    created_at: datetime
    usage_count: int


class PopularTag(BaseModel):
    """Schema for a tag name ranked by public usage."""

    name: str
    usage_count: int
