"""Reusable validation helpers for request schemas."""
import re
from urllib.parse import urlparse

from core.config import get_settings

_WHITESPACE = re.compile(r"\s+")


def normalize_name(value: str) -> str:
    """Trim and collapse internal runs of whitespace to a single space."""
    return _WHITESPACE.sub(" ", value.strip())


def validate_and_normalize_tag(tag: str) -> str:
    """
    Normalize and validate a single tag name.

    Raises:
        ValueError: If the tag is empty or too long after normalization.
    """
    normalized = normalize_name(tag)
    if not normalized:
        raise ValueError("Tag name cannot be empty")
    max_len = get_settings().max_tag_length
    if len(normalized) > max_len:
        raise ValueError(f"Tag '{normalized}' exceeds maximum length of {max_len} characters")
    return normalized


def validate_and_normalize_tags(tags: list[str]) -> list[str]:
    """
    Normalize and validate a list of tags.

    Empty names are dropped and duplicates collapse, keeping first-seen order.
    """
    normalized: list[str] = []
    for tag in tags:
        if not normalize_name(tag):
            continue  # Skip empty tags silently
        name = validate_and_normalize_tag(tag)
        if name not in normalized:
            normalized.append(name)
    return normalized


def validate_http_url(url: str) -> str:
    """Require an absolute http(s) URL within the configured length."""
    url = url.strip()
    max_len = get_settings().max_url_length
    if len(url) > max_len:
        raise ValueError(f"URL exceeds maximum length of {max_len:,} characters")
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise ValueError("Invalid URL format")
    return url


def validate_title_length(title: str | None) -> str | None:
    """Validate that title is non-empty and doesn't exceed maximum length."""
    if title is None:
        return None
    title = normalize_name(title)
    if not title:
        raise ValueError("Title cannot be empty")
    settings = get_settings()
    if len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_description_length(description: str | None) -> str | None:
    """Validate that description doesn't exceed maximum length."""
    settings = get_settings()
    if description is not None and len(description) > settings.max_description_length:
        max_len = settings.max_description_length
        raise ValueError(
            f"Description exceeds maximum length of {max_len:,} characters "
            f"(got {len(description):,} characters).",
        )
    return description


def validate_folder(folder: str | None) -> str | None:
    """Validate folder name length; blank folders are rejected."""
    if folder is None:
        return None
    folder = folder.strip()
    if not folder:
        raise ValueError("Folder cannot be empty")
    max_len = get_settings().max_folder_length
    if len(folder) > max_len:
        raise ValueError(f"Folder exceeds maximum length of {max_len} characters")
    return folder
