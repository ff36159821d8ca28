"""Pydantic schemas for bookmark endpoints."""
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from schemas.tag import TagResponse
from schemas.validators import (
    validate_and_normalize_tags,
    validate_description_length,
    validate_folder,
    validate_http_url,
    validate_title_length,
)


class BookmarkCreate(BaseModel):
    """
    Schema for creating a new bookmark.

    Missing title/description/favicon are filled in from the page metadata.
    """

    url: str
    title: str | None = None
    description: str | None = None
    favicon: str | None = None
    folder: str | None = None
    is_public: bool = False
    tags: list[str] = []

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Validate the bookmark URL."""
        return validate_http_url(v)

    @field_validator("favicon")
    @classmethod
    def check_favicon(cls, v: str | None) -> str | None:
        """Validate the favicon URL when given."""
        return validate_http_url(v) if v is not None else None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Normalize and validate tags."""
        if v is None:
            return []
        return validate_and_normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("folder")
    @classmethod
    def check_folder(cls, v: str | None) -> str | None:
        """Validate folder name."""
        return validate_folder(v)


class BookmarkUpdate(BaseModel):
    """
    Schema for partially updating a bookmark.

    Only fields present in the request body are changed. `tags` replaces the
    whole tag set when present, even as an empty list.
    """

    title: str | None = None
    description: str | None = None
    favicon: str | None = None
    folder: str | None = None
    is_public: bool | None = None
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Normalize and validate tags if provided."""
        if v is None:
            return None
        return validate_and_normalize_tags(v)

    @field_validator("favicon")
    @classmethod
    def check_favicon(cls, v: str | None) -> str | None:
        """Validate the favicon URL when given."""
        return validate_http_url(v) if v is not None else None

    @field_validator("title")
    @classmethod
    def check_title_length(cls, v: str | None) -> str | None:
        """Validate title length."""
        return validate_title_length(v)

    @field_validator("description")
    @classmethod
    def check_description_length(cls, v: str | None) -> str | None:
        """Validate description length."""
        return validate_description_length(v)

    @field_validator("folder")
    @classmethod
    def check_folder(cls, v: str | None) -> str | None:
        """Validate folder name."""
        return validate_folder(v)


class BookmarkResponse(BaseModel):
    """
    Schema for bookmark responses, always with the full tag set.

    Note: Uses model_validator to read the tag_objects relationship only when
    it is already loaded, so serialization never triggers lazy IO.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    url: str
    title: str
    description: str | None
    favicon: str | None
    folder: str
    is_public: bool
    tags: list[TagResponse]
    created_at: datetime
    updated_at: datetime

    @model_validator(mode="before")
    @classmethod
    def extract_tags(cls, data: Any) -> Any:
        """Extract tags from the tag_objects relationship."""
        if hasattr(data, "__dict__"):
            return _bookmark_fields(data)
        return data


class BookmarkOwner(BaseModel):
    """Public fields of a bookmark's owner."""

    model_config = ConfigDict(from_attributes=True)

    username: str
    full_name: str | None
    avatar_url: str | None


class PublicBookmarkResponse(BookmarkResponse):
    """Public bookmark annotated with the owner's public profile fields."""

    owner: BookmarkOwner

    @model_validator(mode="before")
    @classmethod
    def extract_tags(cls, data: Any) -> Any:
        """Extract tags and the eagerly-loaded owner."""
        if hasattr(data, "__dict__"):
            data_dict = _bookmark_fields(data)
            data_dict["owner"] = BookmarkOwner.model_validate(data.__dict__["user"])
            return data_dict
        return data


class FolderCount(BaseModel):
    """Schema for a folder name with its bookmark count."""

    folder: str
    count: int


def _bookmark_fields(bookmark: Any) -> dict[str, Any]:
    """Read column values and already-loaded tags from a Bookmark model."""
    data = {
        key: getattr(bookmark, key)
        for key in [
            "id", "user_id", "url", "title", "description", "favicon",
            "folder", "is_public", "created_at", "updated_at",
        ]
    }
    loaded = bookmark.__dict__.get("tag_objects")
    data["tags"] = [TagResponse.model_validate(tag) for tag in loaded] if loaded else []
    return data
