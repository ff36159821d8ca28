"""Tag management endpoints."""
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session, get_current_user
from models.user import User
from schemas.common import ApiResponse
from schemas.tag import TagCount, TagCreate, TagResponse
from services import tag_service

router = APIRouter(prefix="/tags", tags=["tags"])


@router.get("/", response_model=ApiResponse[list[TagCount]])
async def list_tags(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[list[TagCount]]:
    """
    Get all tags for the current user with usage counts.

    Sorted by count descending, then name ascending. Unused tags are
    included with a count of zero.
    """
    return ApiResponse(data=await tag_service.get_user_tags_with_counts(db, current_user.id))


@router.post(
    "/",
    response_model=ApiResponse[TagResponse],
    status_code=status.HTTP_201_CREATED,
)
async def create_tag(
    data: TagCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[TagResponse]:
    """Create a tag without attaching it to a bookmark."""
    tag = await tag_service.create_tag(db, current_user.id, data.name)
    return ApiResponse(data=TagResponse.model_validate(tag), message="Tag created successfully")


@router.delete("/{tag_id}", response_model=ApiResponse[None])
async def delete_tag(
    tag_id: int,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[None]:
    """Delete a tag; it is removed from every bookmark that had it."""
    await tag_service.delete_tag(db, current_user.id, tag_id)
    return ApiResponse(message="Tag deleted successfully")
