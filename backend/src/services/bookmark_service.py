"""Service layer for bookmark CRUD operations."""
import logging

from sqlalchemy import case, exists, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from core.config import get_settings
from models.bookmark import DEFAULT_FOLDER, Bookmark
from models.tag import Tag, bookmark_tags
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkUpdate, FolderCount
from schemas.validators import normalize_name
from services.exceptions import DuplicateBookmarkError, ForbiddenError, NotFoundError
from services.tag_service import replace_bookmark_tags, resolve_tags
from services.url_scraper import fetch_metadata
from services.utils import escape_ilike

logger = logging.getLogger(__name__)


def _ilike_pattern(search: str) -> str:
    return f"%{escape_ilike(search.strip())}%"


def _has_tag(tag_name: str, user_id: int | None = None):  # noqa: ANN202
    """EXISTS clause matching bookmarks associated with a tag of this exact name."""
    clause = (
        select(bookmark_tags.c.bookmark_id)
        .join(Tag, Tag.id == bookmark_tags.c.tag_id)
        .where(
            bookmark_tags.c.bookmark_id == Bookmark.id,
            Tag.name == normalize_name(tag_name),
        )
    )
    if user_id is not None:
        clause = clause.where(Tag.user_id == user_id)
    return exists(clause)


async def _refresh_with_tags(db: AsyncSession, bookmark: Bookmark) -> None:
    """Refresh bookmark and eagerly load tag_objects relationship."""
    await db.refresh(bookmark)
    await db.refresh(bookmark, attribute_names=["tag_objects"])


async def _check_url_exists(db: AsyncSession, user_id: int, url: str) -> bool:
    result = await db.execute(
        select(Bookmark.id).where(Bookmark.user_id == user_id, Bookmark.url == url),
    )
    return result.first() is not None


async def _get_by_id(db: AsyncSession, bookmark_id: int) -> Bookmark | None:
    result = await db.execute(
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.id == bookmark_id)
        .execution_options(populate_existing=True),
    )
    return result.scalar_one_or_none()


async def _get_owned(db: AsyncSession, user_id: int, bookmark_id: int) -> Bookmark:
    """Load a bookmark for mutation: NotFound if missing, Forbidden if not the owner."""
    bookmark = await _get_by_id(db, bookmark_id)
    if bookmark is None:
        raise NotFoundError("Bookmark")
    if bookmark.user_id != user_id:
        logger.info("User %s denied access to bookmark %s", user_id, bookmark_id)
        raise ForbiddenError()
    return bookmark


async def create_bookmark(
    db: AsyncSession,
    user_id: int,
    data: BookmarkCreate,
) -> Bookmark:
    """
    Create a new bookmark for a user.

    Missing title, description or favicon are fetched from the page. The
    fetch never fails; at worst it supplies the host name, an empty
    description and the conventional /favicon.ico location.

    Raises:
        DuplicateBookmarkError: If the user already bookmarked this URL.

    Note:
        Does not commit. Caller (session generator) handles commit at request end.
    """
    if await _check_url_exists(db, user_id, data.url):
        raise DuplicateBookmarkError(data.url)

    title, description, favicon = data.title, data.description, data.favicon
    if title is None or description is None or favicon is None:
        metadata = await fetch_metadata(data.url, timeout=get_settings().metadata_fetch_timeout)
        title = title if title is not None else metadata.title
        description = description if description is not None else metadata.description
        favicon = favicon if favicon is not None else metadata.favicon

    try:
        async with db.begin_nested():
            tags = await resolve_tags(db, user_id, data.tags)
            bookmark = Bookmark(
                user_id=user_id,
                url=data.url,
                title=title or "",
                description=description or "",
                favicon=favicon or "",
                folder=data.folder or DEFAULT_FOLDER,
                is_public=data.is_public,
            )
            bookmark.tag_objects = tags
            db.add(bookmark)
            await db.flush()
    except IntegrityError as e:
        # Lost a race with a concurrent create of the same URL
        if "uq_bookmarks_user_id_url" in str(e) or "bookmarks.user_id, bookmarks.url" in str(e):
            raise DuplicateBookmarkError(data.url) from e
        raise

    await _refresh_with_tags(db, bookmark)
    logger.info("User %s created bookmark %s", user_id, bookmark.id)
    return bookmark


async def update_bookmark(
    db: AsyncSession,
    user_id: int,
    bookmark_id: int,
    data: BookmarkUpdate,
) -> Bookmark:
    """
    Partially update a bookmark.

    Only fields present in the request are changed. A `tags` list, even an
    empty one, replaces the whole tag set; omitting it leaves tags alone.

    Raises:
        NotFoundError: If the bookmark doesn't exist.
        ForbiddenError: If the bookmark belongs to another user.
    """
    bookmark = await _get_owned(db, user_id, bookmark_id)

    update_data = data.model_dump(exclude_unset=True)
    new_tags = update_data.pop("tags", None)

    for field, value in update_data.items():
        if field in ("title", "folder", "is_public") and value is None:
            continue  # not nullable
        setattr(bookmark, field, value)

    if new_tags is not None:
        await replace_bookmark_tags(db, bookmark, new_tags)

    # No onupdate on TimestampMixin, so bump explicitly
    bookmark.updated_at = func.now()
    await db.flush()
    await _refresh_with_tags(db, bookmark)
    return bookmark


async def delete_bookmark(db: AsyncSession, user_id: int, bookmark_id: int) -> None:
    """
    Delete a bookmark owned by the user.

    Raises:
        NotFoundError: If the bookmark is missing or owned by someone else.
            The two cases are not distinguished.
    """
    result = await db.execute(
        select(Bookmark).where(Bookmark.id == bookmark_id, Bookmark.user_id == user_id),
    )
    bookmark = result.scalar_one_or_none()
    if bookmark is None:
        raise NotFoundError("Bookmark")
    await db.delete(bookmark)
    await db.flush()
    logger.info("User %s deleted bookmark %s", user_id, bookmark_id)


async def toggle_privacy(db: AsyncSession, user_id: int, bookmark_id: int) -> bool:
    """Flip is_public and return the new value. Ownership-checked like update."""
    bookmark = await _get_owned(db, user_id, bookmark_id)
    bookmark.is_public = not bookmark.is_public
    bookmark.updated_at = func.now()
    await db.flush()
    await db.refresh(bookmark)
    return bookmark.is_public


async def list_bookmarks(
    db: AsyncSession,
    user_id: int,
    folder: str | None = None,
    tag: str | None = None,
    search: str | None = None,
) -> list[Bookmark]:
    """
    List a user's own bookmarks, newest first, each with its tags.

    Filters are ANDed together:
        folder: exact folder name.
        tag: bookmarks carrying a tag with exactly this name.
        search: case-insensitive substring of title, url or description.
    """
    query = (
        select(Bookmark)
        .options(selectinload(Bookmark.tag_objects))
        .where(Bookmark.user_id == user_id)
        .execution_options(populate_existing=True)
    )
    if folder:
        query = query.where(Bookmark.folder == folder)
    if tag:
        query = query.where(_has_tag(tag, user_id))
    if search and search.strip():
        pattern = _ilike_pattern(search)
        query = query.where(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.url.ilike(pattern, escape="\\"),
                Bookmark.description.ilike(pattern, escape="\\"),
            ),
        )
    query = query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())

    result = await db.execute(query)
    return list(result.scalars().all())


async def get_visible_bookmark(
    db: AsyncSession,
    requester_id: int | None,
    bookmark_id: int,
) -> Bookmark:
    """
    Get a bookmark the requester is allowed to see.

    Public bookmarks are visible to everyone, private ones only to their
    owner. Anonymous callers pass requester_id=None.

    Raises:
        NotFoundError: If the bookmark doesn't exist.
        ForbiddenError: If it is private and the requester isn't the owner.
    """
    bookmark = await _get_by_id(db, bookmark_id)
    if bookmark is None:
        raise NotFoundError("Bookmark")
    if not bookmark.is_public and bookmark.user_id != requester_id:
        raise ForbiddenError("This bookmark is private")
    return bookmark


def _public_query():  # noqa: ANN202
    return (
        select(Bookmark)
        .join(User, User.id == Bookmark.user_id)
        .options(selectinload(Bookmark.tag_objects), selectinload(Bookmark.user))
        .where(Bookmark.is_public.is_(True), User.is_active.is_(True))
        .execution_options(populate_existing=True)
    )


async def list_public_bookmarks(
    db: AsyncSession,
    tag: str | None = None,
    search: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> list[Bookmark]:
    """
    List public bookmarks across all users, newest first.

    Search matches title, description or the owner's username. Each result
    has its owner eagerly loaded for the public profile annotation.
    """
    query = _public_query()
    if tag:
        query = query.where(_has_tag(tag))
    if search and search.strip():
        pattern = _ilike_pattern(search)
        query = query.where(
            or_(
                Bookmark.title.ilike(pattern, escape="\\"),
                Bookmark.description.ilike(pattern, escape="\\"),
                User.username.ilike(pattern, escape="\\"),
            ),
        )
    query = (
        query.order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_user_public_bookmarks(
    db: AsyncSession,
    username: str,
    limit: int = 20,
    offset: int = 0,
) -> list[Bookmark]:
    """Public bookmarks of one active user. Unknown usernames yield an empty list."""
    query = (
        _public_query()
        .where(User.username == username)
        .order_by(Bookmark.created_at.desc(), Bookmark.id.desc())
        .offset(offset)
        .limit(limit)
    )
    result = await db.execute(query)
    return list(result.scalars().all())


async def list_folders(db: AsyncSession, user_id: int) -> list[FolderCount]:
    """Distinct folder names of a user's bookmarks with counts, alphabetical."""
    result = await db.execute(
        select(Bookmark.folder, func.count(Bookmark.id).label("count"))
        .where(Bookmark.user_id == user_id)
        .group_by(Bookmark.folder)
        .order_by(Bookmark.folder.asc()),
    )
    return [FolderCount(folder=row.folder, count=row.count) for row in result]


async def count_bookmarks(db: AsyncSession, user_id: int) -> tuple[int, int]:
    """Return (total, public) bookmark counts for a user."""
    result = await db.execute(
        select(
            func.count(Bookmark.id),
            func.coalesce(func.sum(case((Bookmark.is_public.is_(True), 1), else_=0)), 0),
        ).where(Bookmark.user_id == user_id),
    )
    total, public = result.one()
    return int(total), int(public)
