"""Health check endpoints."""
import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import get_async_session
from schemas.common import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    database: str


@router.get("/health", response_model=ApiResponse[HealthResponse])
async def health_check(
    db: AsyncSession = Depends(get_async_session),
) -> ApiResponse[HealthResponse]:
    """Report whether the database answers a trivial query."""
    db_status = "healthy"
    try:
        await db.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Database health check failed")
        db_status = "unhealthy"

    overall = "healthy" if db_status == "healthy" else "degraded"
    return ApiResponse(
        success=db_status == "healthy",
        data=HealthResponse(status=overall, database=db_status),
    )
