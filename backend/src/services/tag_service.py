"""Service layer for tag operations."""
import logging

from sqlalchemy import delete, func, insert, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.tag import PopularTag, TagCount
from schemas.validators import validate_and_normalize_tag, validate_and_normalize_tags
from services.exceptions import NotFoundError, TagAlreadyExistsError, ValidationError

logger = logging.getLogger(__name__)


def _normalize(raw_name: str) -> str:
    try:
        return validate_and_normalize_tag(raw_name)
    except ValueError as e:
        raise ValidationError(str(e)) from e


async def _find_tag(db: AsyncSession, user_id: int, name: str) -> Tag | None:
    result = await db.execute(
        select(Tag).where(Tag.user_id == user_id, Tag.name == name),
    )
    return result.scalar_one_or_none()


async def resolve_tag(db: AsyncSession, user_id: int, raw_name: str) -> Tag:
    """
    Map a tag name to the owner's Tag row, creating it if absent.

    The unique constraint on (user_id, name) decides races: if a concurrent
    caller inserts the same name first, our insert fails inside a savepoint
    and we read the winner's row instead.

    Args:
        db: Database session.
        user_id: Owner of the tag.
        raw_name: Tag name before normalization.

    Returns:
        The persisted Tag.
    """
    name = _normalize(raw_name)

    tag = await _find_tag(db, user_id, name)
    if tag is not None:
        return tag

    try:
        async with db.begin_nested():
            tag = Tag(user_id=user_id, name=name)
            db.add(tag)
            await db.flush()
        return tag
    except IntegrityError:
        logger.debug("Tag %r for user %s created concurrently, re-reading", name, user_id)

    tag = await _find_tag(db, user_id, name)
    if tag is None:
        # Constraint fired but the row is gone (deleted in between); surface as internal
        raise RuntimeError(f"Tag '{name}' vanished after unique violation")
    return tag


async def resolve_tags(db: AsyncSession, user_id: int, tag_names: list[str]) -> list[Tag]:
    """Resolve every name in order, dropping empties and duplicates."""
    try:
        names = validate_and_normalize_tags(tag_names)
    except ValueError as e:
        raise ValidationError(str(e)) from e
    return [await resolve_tag(db, user_id, name) for name in names]


async def replace_bookmark_tags(
    db: AsyncSession,
    bookmark: Bookmark,
    tag_names: list[str],
) -> list[Tag]:
    """
    Replace a bookmark's whole tag set.

    Resolution, delete and reinsert run inside one savepoint so the set is
    either fully replaced or left as it was.
    """
    async with db.begin_nested():
        tags = await resolve_tags(db, bookmark.user_id, tag_names)
        await db.execute(
            delete(bookmark_tags).where(bookmark_tags.c.bookmark_id == bookmark.id),
        )
        if tags:
            await db.execute(
                insert(bookmark_tags),
                [{"bookmark_id": bookmark.id, "tag_id": tag.id} for tag in tags],
            )
    return tags


async def get_user_tags_with_counts(db: AsyncSession, user_id: int) -> list[TagCount]:
    """
    Get all tags for a user with their usage counts.

    Tags with no bookmarks are included with a count of zero.

    Returns:
        List of TagCount objects sorted by count desc, then name asc.
    """
    usage = func.count(bookmark_tags.c.bookmark_id)
    result = await db.execute(
        select(Tag.id, Tag.name, Tag.created_at, usage.label("usage_count"))
        .outerjoin(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .where(Tag.user_id == user_id)
        .group_by(Tag.id, Tag.name, Tag.created_at)
        .order_by(usage.desc(), Tag.name.asc()),
    )
    return [
        TagCount(id=row.id, name=row.name, created_at=row.created_at, usage_count=row.usage_count)
        for row in result
    ]


async def create_tag(db: AsyncSession, user_id: int, name: str) -> Tag:
    """
    Create a tag explicitly.

    Raises:
        TagAlreadyExistsError: If the owner already has a tag with this name.
    """
    name = _normalize(name)
    if await _find_tag(db, user_id, name) is not None:
        raise TagAlreadyExistsError(name)

    tag = Tag(user_id=user_id, name=name)
    try:
        async with db.begin_nested():
            db.add(tag)
            await db.flush()
    except IntegrityError as e:
        raise TagAlreadyExistsError(name) from e
    await db.refresh(tag)
    return tag


async def delete_tag(db: AsyncSession, user_id: int, tag_id: int) -> None:
    """
    Delete one of the owner's tags; its bookmark associations cascade.

    Raises:
        NotFoundError: If the tag doesn't exist or belongs to someone else.
    """
    result = await db.execute(
        delete(Tag).where(Tag.id == tag_id, Tag.user_id == user_id),
    )
    if result.rowcount == 0:
        raise NotFoundError("Tag")


async def get_popular_public_tags(db: AsyncSession, limit: int = 20) -> list[PopularTag]:
    """
    Rank tag names by how many public bookmarks use them.

    Tags owned by different users are aggregated by name.
    """
    usage = func.count(func.distinct(Bookmark.id))
    result = await db.execute(
        select(Tag.name, usage.label("usage_count"))
        .join(bookmark_tags, Tag.id == bookmark_tags.c.tag_id)
        .join(Bookmark, bookmark_tags.c.bookmark_id == Bookmark.id)
        .where(Bookmark.is_public.is_(True))
        .group_by(Tag.name)
        .order_by(usage.desc(), Tag.name.asc())
        .limit(limit),
    )
    return [PopularTag(name=row.name, usage_count=row.usage_count) for row in result]
