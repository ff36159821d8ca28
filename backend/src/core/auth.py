"""Authentication dependencies: bearer access tokens to request identity."""
import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings, get_settings
from core.request_context import RequestContext
from db.session import get_async_session
from models.user import User
from services import token_service
from services.exceptions import (
    ForbiddenError,
    InvalidOrExpiredTokenError,
    UnauthorizedError,
)

logger = logging.getLogger(__name__)


# HTTP Bearer token scheme
security = HTTPBearer(auto_error=False)


def authenticate(
    credentials: HTTPAuthorizationCredentials | None,
    settings: Settings,
) -> RequestContext:
    """
    Turn the Authorization header into a request context.

    Raises:
        UnauthorizedError: No bearer token was sent.
        ForbiddenError: A token was sent but is invalid or expired.
    """
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError()
    try:
        claim = token_service.verify_token(credentials.credentials, settings)
    except InvalidOrExpiredTokenError as e:
        raise ForbiddenError(e.message) from e
    return RequestContext(identity=claim)


async def get_request_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    """Dependency for routes that require an access token."""
    return authenticate(credentials, settings)


async def get_optional_request_context(
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
    settings: Settings = Depends(get_settings),
) -> RequestContext:
    """
    Dependency for routes where identity is optional.

    A missing or unusable token yields an anonymous context instead of an
    error, so the caller only sees public data.
    """
    if credentials is None:
        return RequestContext()
    try:
        return authenticate(credentials, settings)
    except ForbiddenError:
        logger.debug("Ignoring invalid token on optional-auth route")
        return RequestContext()


async def get_current_user(
    context: RequestContext = Depends(get_request_context),
    db: AsyncSession = Depends(get_async_session),
) -> User:
    """
    Dependency that validates the token and returns the current user.

    A token whose user was deleted or deactivated is treated as invalid.
    """
    user = await db.get(User, context.user_id)
    if user is None or not user.is_active:
        raise ForbiddenError("Invalid or expired token")
    return user
