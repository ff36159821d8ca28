"""Service layer for accounts: registration, login, profile and deletion."""
import logging
from datetime import UTC, datetime

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.bookmark import Bookmark
from models.user import User
from schemas.token import TokenClaim, TokenPair
from schemas.user import (
    ProfileResponse,
    ProfileUpdate,
    PublicProfileResponse,
    RegisterRequest,
    UserResponse,
)
from services import password_service, token_service
from services.bookmark_service import count_bookmarks
from services.exceptions import (
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UserAlreadyExistsError,
    WeakPasswordError,
)

logger = logging.getLogger(__name__)


def claim_for(user: User) -> TokenClaim:
    """Identity claim embedded in both tokens of a pair."""
    return TokenClaim(user_id=user.id, username=user.username, email=user.email)


def _check_strength(password: str) -> None:
    check = password_service.validate_strength(password)
    if not check.valid:
        raise WeakPasswordError(check.message or "Password is too weak")


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Get a user by primary key."""
    return await db.get(User, user_id)


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Get a user by email, case-insensitively."""
    result = await db.execute(select(User).where(User.email == email.lower()))
    return result.scalar_one_or_none()


async def register(
    db: AsyncSession,
    data: RegisterRequest,
    settings: Settings,
) -> tuple[User, TokenPair]:
    """
    Create an account and log it in.

    Raises:
        WeakPasswordError: If the password fails the strength policy.
        UserAlreadyExistsError: If the username or email is taken.
    """
    _check_strength(data.password)
    email = data.email.lower()

    existing = await db.execute(
        select(User.id).where(or_(User.username == data.username, User.email == email)),
    )
    if existing.first() is not None:
        raise UserAlreadyExistsError()

    user = User(
        username=data.username,
        email=email,
        password_hash=password_service.hash_password(data.password, settings.bcrypt_rounds),
        full_name=data.full_name,
    )
    try:
        async with db.begin_nested():
            db.add(user)
            await db.flush()
    except IntegrityError as e:
        raise UserAlreadyExistsError() from e

    await db.refresh(user)
    logger.info("Registered user %s (%s)", user.id, user.username)
    return user, token_service.issue_token_pair(claim_for(user), settings)


async def login(
    db: AsyncSession,
    email: str,
    password: str,
    settings: Settings,
) -> tuple[User, TokenPair]:
    """
    Verify credentials, touch last_login and issue a token pair.

    Raises:
        InvalidCredentialsError: Unknown email, inactive account or wrong
            password; the three are indistinguishable to the caller.
    """
    user = await get_user_by_email(db, email)
    if (
        user is None
        or not user.is_active
        or not password_service.verify_password(password, user.password_hash)
    ):
        logger.info("Failed login attempt")
        raise InvalidCredentialsError()

    user.last_login = datetime.now(UTC)
    await db.flush()
    await db.refresh(user)
    return user, token_service.issue_token_pair(claim_for(user), settings)


async def refresh_tokens(db: AsyncSession, refresh_token: str, settings: Settings) -> TokenPair:
    """
    Exchange a valid refresh token for a new pair.

    Raises:
        InvalidOrExpiredTokenError: If the token is invalid, is not a refresh
            token, or its user no longer exists or is inactive.
    """
    claim = token_service.verify_token(refresh_token, settings, token_type="refresh")
    user = await get_user_by_id(db, claim.user_id)
    if user is None or not user.is_active:
        raise InvalidOrExpiredTokenError()
    return token_service.issue_token_pair(claim_for(user), settings)


async def change_password(
    db: AsyncSession,
    user: User,
    current_password: str,
    new_password: str,
    settings: Settings,
) -> None:
    """
    Replace the password digest after re-verifying the current password.

    Raises:
        InvalidCredentialsError: If current_password is wrong.
        WeakPasswordError: If new_password fails the strength policy.
    """
    if not password_service.verify_password(current_password, user.password_hash):
        raise InvalidCredentialsError("Current password is incorrect")
    _check_strength(new_password)

    user.password_hash = password_service.hash_password(new_password, settings.bcrypt_rounds)
    user.updated_at = func.now()
    await db.flush()
    logger.info("User %s changed password", user.id)


async def delete_account(db: AsyncSession, user: User, password: str) -> None:
    """
    Delete the user and everything they own.

    Bookmarks, tags and their associations go with it through ON DELETE CASCADE.

    Raises:
        InvalidCredentialsError: If the password re-check fails.
    """
    if not password_service.verify_password(password, user.password_hash):
        raise InvalidCredentialsError("Password is incorrect")
    user_id = user.id
    await db.delete(user)
    await db.flush()
    logger.info("Deleted account %s", user_id)


async def update_profile(db: AsyncSession, user: User, data: ProfileUpdate) -> User:
    """Apply only the fields present in the request."""
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(user, field, value)
    user.updated_at = func.now()
    await db.flush()
    await db.refresh(user)
    return user


async def get_profile(db: AsyncSession, user: User) -> ProfileResponse:
    """Private profile of the authenticated user, with bookmark counts."""
    total, public = await count_bookmarks(db, user.id)
    return ProfileResponse(
        **UserResponse.model_validate(user).model_dump(),
        total_bookmarks=total,
        public_bookmarks=public,
    )


async def get_public_profile(db: AsyncSession, username: str) -> PublicProfileResponse:
    """
    Public view of an active user.

    Raises:
        NotFoundError: If no active user has this username.
    """
    result = await db.execute(
        select(User).where(User.username == username, User.is_active.is_(True)),
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFoundError("User")

    public_count = await db.scalar(
        select(func.count(Bookmark.id)).where(
            Bookmark.user_id == user.id,
            Bookmark.is_public.is_(True),
        ),
    )
    return PublicProfileResponse(
        username=user.username,
        full_name=user.full_name,
        avatar_url=user.avatar_url,
        created_at=user.created_at,
        public_bookmarks=public_count or 0,
    )
