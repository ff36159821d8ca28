"""Unauthenticated read-only endpoints over public bookmarks."""
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.bookmark import PublicBookmarkResponse
from schemas.common import ApiResponse
from schemas.tag import PopularTag
from services import bookmark_service, tag_service

router = APIRouter(prefix="/public", tags=["public"])


@router.get("/bookmarks", response_model=ApiResponse[list[PublicBookmarkResponse]])
async def list_public_bookmarks(
    tag: str | None = Query(default=None, description="Exact tag name"),
    search: str | None = Query(default=None, description="Matches title, description or username"),
    limit: int = Query(default=20, ge=1, le=100, description="Pagination limit"),
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[PublicBookmarkResponse]]:
    """Public bookmarks from all users, newest first, with owner profile fields."""
    bookmarks = await bookmark_service.list_public_bookmarks(
        db, tag=tag, search=search, limit=limit, offset=offset,
    )
    return ApiResponse(data=[PublicBookmarkResponse.model_validate(b) for b in bookmarks])


@router.get(
    "/users/{username}/bookmarks",
    response_model=ApiResponse[list[PublicBookmarkResponse]],
)
async def list_user_public_bookmarks(
    username: str,
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[PublicBookmarkResponse]]:
    """Public bookmarks of a single user."""
    bookmarks = await bookmark_service.list_user_public_bookmarks(
        db, username, limit=limit, offset=offset,
    )
    return ApiResponse(data=[PublicBookmarkResponse.model_validate(b) for b in bookmarks])


@router.get("/tags", response_model=ApiResponse[list[PopularTag]])
async def popular_tags(
    limit: int = Query(default=20, ge=1, le=100),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[PopularTag]]:
    """Tag names ranked by how many public bookmarks use them."""
    return ApiResponse(data=await tag_service.get_popular_public_tags(db, limit=limit))
