"""Bookmark CRUD endpoints."""
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user, get_optional_request_context
from core.request_context import RequestContext
from models.user import User
from schemas.bookmark import BookmarkCreate, BookmarkResponse, BookmarkUpdate, FolderCount
from schemas.common import ApiResponse
from services import bookmark_service

router = APIRouter(prefix="/bookmarks", tags=["bookmarks"])


class PrivacyResponse(BaseModel):
    """New visibility after a privacy toggle."""

    id: int
    is_public: bool


@router.get("/", response_model=ApiResponse[list[BookmarkResponse]])
async def list_bookmarks(
    folder: str | None = Query(default=None, description="Exact folder name"),
    tag: str | None = Query(default=None, description="Exact tag name"),
    search: str | None = Query(default=None, description="Matches title, url or description"),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[BookmarkResponse]]:
    """
    List the current user's bookmarks, newest first.

    - **folder**: restrict to one folder
    - **tag**: restrict to bookmarks with this tag
    - **search**: case-insensitive substring of title, url or description
    """
    bookmarks = await bookmark_service.list_bookmarks(
        db, current_user.id, folder=folder, tag=tag, search=search,
    )
    return ApiResponse(data=[BookmarkResponse.model_validate(b) for b in bookmarks])


@router.post(
    "/",
    response_model=ApiResponse[BookmarkResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_bookmark(
    data: BookmarkCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """Create a bookmark; missing title, description or favicon are fetched from the page."""
    bookmark = await bookmark_service.create_bookmark(db, current_user.id, data)
    return ApiResponse(
        data=BookmarkResponse.model_validate(bookmark),
        message="Bookmark created successfully",
    )


# Declared before /{bookmark_id} so "folders" isn't parsed as an id
@router.get("/folders", response_model=ApiResponse[list[FolderCount]])
async def list_folders(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[FolderCount]]:
    """Folder names with bookmark counts, alphabetical."""
    return ApiResponse(data=await bookmark_service.list_folders(db, current_user.id))


@router.get("/{bookmark_id}", response_model=ApiResponse[BookmarkResponse])
async def get_bookmark(
    bookmark_id: int,
    context: RequestContext = Depends(get_optional_request_context),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """Get a bookmark. Public bookmarks are visible to anyone, private ones to their owner."""
    bookmark = await bookmark_service.get_visible_bookmark(db, context.user_id, bookmark_id)
    return ApiResponse(data=BookmarkResponse.model_validate(bookmark))


@router.put("/{bookmark_id}", response_model=ApiResponse[BookmarkResponse])
async def update_bookmark(
    bookmark_id: int,
    data: BookmarkUpdate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[BookmarkResponse]:
    """Update the fields present in the body; `tags` replaces the whole tag set."""
    bookmark = await bookmark_service.update_bookmark(db, current_user.id, bookmark_id, data)
    return ApiResponse(
        data=BookmarkResponse.model_validate(bookmark),
        message="Bookmark updated successfully",
    )


@router.patch("/{bookmark_id}/privacy", response_model=ApiResponse[PrivacyResponse])
async def toggle_privacy(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[PrivacyResponse]:
    """Flip a bookmark between public and private."""
    is_public = await bookmark_service.toggle_privacy(db, current_user.id, bookmark_id)
    return ApiResponse(
        data=PrivacyResponse(id=bookmark_id, is_public=is_public),
        message=f"Bookmark is now {'public' if is_public else 'private'}",
    )


@router.delete("/{bookmark_id}", response_model=ApiResponse[None])
async def delete_bookmark(
    bookmark_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete one of the current user's bookmarks."""
    await bookmark_service.delete_bookmark(db, current_user.id, bookmark_id)
    return ApiResponse(message="Bookmark deleted successfully")
