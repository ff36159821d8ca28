"""Tests for account service layer functionality."""
import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from models.user import User
from schemas.bookmark import BookmarkCreate
from schemas.user import ProfileUpdate, RegisterRequest
from services import token_service, user_service
from services.bookmark_service import create_bookmark, get_visible_bookmark
from services.exceptions import (
    InvalidCredentialsError,
    InvalidOrExpiredTokenError,
    NotFoundError,
    UserAlreadyExistsError,
    WeakPasswordError,
)
from services.password_service import verify_password
from tests.helpers import TEST_PASSWORD, create_user


def _registration(**overrides: str) -> RegisterRequest:
    values = {
        "username": "carol",
        "email": "carol@example.com",
        "password": "Secret123",
        "full_name": "Carol C",
    }
    values.update(overrides)
    return RegisterRequest(**values)


async def _user_count(db: AsyncSession) -> int:
    return await db.scalar(select(func.count(User.id)))


# =============================================================================
# register / login Tests
# =============================================================================


async def test__register__then_login_returns_matching_claim(
    db_session: AsyncSession,
    settings: Settings,
) -> None:
    user, tokens = await user_service.register(db_session, _registration(), settings)
    assert token_service.verify_token(tokens.access_token, settings).user_id == user.id

    logged_in, login_tokens = await user_service.login(
        db_session, "carol@example.com", "Secret123", settings,
    )

    claim = token_service.verify_token(login_tokens.access_token, settings)
    assert logged_in.id == user.id
    assert claim.user_id == user.id
    assert claim.username == "carol"
    assert claim.email == "carol@example.com"
    assert logged_in.last_login is not None


async def test__register__stores_digest_not_plaintext(
    db_session: AsyncSession,
    settings: Settings,
) -> None:
    user, _ = await user_service.register(db_session, _registration(), settings)
    assert user.password_hash != "Secret123"
    assert verify_password("Secret123", user.password_hash)


async def test__register__weak_password_rejected_before_insert(
    db_session: AsyncSession,
    settings: Settings,
) -> None:
    with pytest.raises(WeakPasswordError):
        await user_service.register(db_session, _registration(password="weak"), settings)
    assert await _user_count(db_session) == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"email": "different@example.com"},
        {"username": "different"},
    ],
)
async def test__register__duplicate_username_or_email_conflicts(
    db_session: AsyncSession,
    settings: Settings,
    overrides: dict[str, str],
) -> None:
    await user_service.register(db_session, _registration(), settings)

    with pytest.raises(UserAlreadyExistsError):
        await user_service.register(db_session, _registration(**overrides), settings)

    assert await _user_count(db_session) == 1


async def test__register__email_is_case_insensitive(
    db_session: AsyncSession,
    settings: Settings,
) -> None:
    await user_service.register(db_session, _registration(email="Carol@Example.com"), settings)
    user, _ = await user_service.login(db_session, "CAROL@example.com", "Secret123", settings)
    assert user.email == "carol@example.com"


@pytest.mark.parametrize(
    ("email", "password"),
    [
        ("alice@example.com", "WrongPass1"),
        ("nobody@example.com", TEST_PASSWORD),
    ],
)
async def test__login__bad_credentials_indistinguishable(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,  # noqa: ARG001
    email: str,
    password: str,
) -> None:
    with pytest.raises(InvalidCredentialsError) as exc_info:
        await user_service.login(db_session, email, password, settings)
    assert exc_info.value.message == "Invalid email or password"


async def test__login__inactive_account_rejected(
    db_session: AsyncSession,
    settings: Settings,
) -> None:
    await create_user(db_session, "dormant", is_active=False)
    with pytest.raises(InvalidCredentialsError):
        await user_service.login(db_session, "dormant@example.com", TEST_PASSWORD, settings)


# =============================================================================
# refresh_tokens Tests
# =============================================================================


async def test__refresh_tokens__issues_new_pair(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    tokens = token_service.issue_token_pair(user_service.claim_for(test_user), settings)

    refreshed = await user_service.refresh_tokens(db_session, tokens.refresh_token, settings)

    assert token_service.verify_token(refreshed.access_token, settings).user_id == test_user.id


async def test__refresh_tokens__access_token_rejected(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    tokens = token_service.issue_token_pair(user_service.claim_for(test_user), settings)
    with pytest.raises(InvalidOrExpiredTokenError):
        await user_service.refresh_tokens(db_session, tokens.access_token, settings)


async def test__refresh_tokens__deleted_user_rejected(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    tokens = token_service.issue_token_pair(user_service.claim_for(test_user), settings)
    await user_service.delete_account(db_session, test_user, TEST_PASSWORD)

    with pytest.raises(InvalidOrExpiredTokenError):
        await user_service.refresh_tokens(db_session, tokens.refresh_token, settings)


# =============================================================================
# change_password Tests
# =============================================================================


async def test__change_password__wrong_current_keeps_digest(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    digest_before = test_user.password_hash

    with pytest.raises(InvalidCredentialsError):
        await user_service.change_password(
            db_session, test_user, "WrongPass1", "NewSecret456", settings,
        )

    assert test_user.password_hash == digest_before
    user, _ = await user_service.login(db_session, test_user.email, TEST_PASSWORD, settings)
    assert user.id == test_user.id


async def test__change_password__weak_new_password_rejected(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    with pytest.raises(WeakPasswordError):
        await user_service.change_password(db_session, test_user, TEST_PASSWORD, "short", settings)


async def test__change_password__new_password_works_old_does_not(
    db_session: AsyncSession,
    settings: Settings,
    test_user: User,
) -> None:
    await user_service.change_password(
        db_session, test_user, TEST_PASSWORD, "NewSecret456", settings,
    )

    with pytest.raises(InvalidCredentialsError):
        await user_service.login(db_session, test_user.email, TEST_PASSWORD, settings)
    user, _ = await user_service.login(db_session, test_user.email, "NewSecret456", settings)
    assert user.id == test_user.id


# =============================================================================
# delete_account Tests
# =============================================================================


async def test__delete_account__cascades_to_bookmarks_and_tags(
    db_session: AsyncSession,
    test_user: User,
    other_user: User,
) -> None:
    bookmark = await create_bookmark(
        db_session,
        test_user.id,
        BookmarkCreate(url="https://example.com", title="t", tags=["a", "b"], is_public=True),
    )
    bookmark_id = bookmark.id
    user_id = test_user.id
    await create_bookmark(
        db_session, other_user.id, BookmarkCreate(url="https://example.com", title="t", tags=["a"]),
    )

    await user_service.delete_account(db_session, test_user, TEST_PASSWORD)

    with pytest.raises(NotFoundError):
        await get_visible_bookmark(db_session, None, bookmark_id)
    assert await db_session.scalar(
        select(func.count(Tag.id)).where(Tag.user_id == user_id),
    ) == 0
    assert await db_session.scalar(
        select(func.count()).select_from(bookmark_tags).where(
            bookmark_tags.c.bookmark_id == bookmark_id,
        ),
    ) == 0
    # Other users are untouched
    assert await db_session.scalar(
        select(func.count(Bookmark.id)).where(Bookmark.user_id == other_user.id),
    ) == 1


async def test__delete_account__wrong_password_keeps_account(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    with pytest.raises(InvalidCredentialsError):
        await user_service.delete_account(db_session, test_user, "WrongPass1")
    assert await user_service.get_user_by_id(db_session, test_user.id) is not None


# =============================================================================
# Profile Tests
# =============================================================================


async def test__update_profile__only_given_fields(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await user_service.update_profile(db_session, test_user, ProfileUpdate(full_name="Alice A"))
    updated = await user_service.update_profile(
        db_session, test_user, ProfileUpdate(avatar_url="https://example.com/a.png"),
    )

    assert updated.full_name == "Alice A"
    assert updated.avatar_url == "https://example.com/a.png"


async def test__get_profile__includes_counts(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await create_bookmark(
        db_session, test_user.id, BookmarkCreate(url="https://1.example", title="t", is_public=True),
    )
    await create_bookmark(db_session, test_user.id, BookmarkCreate(url="https://2.example", title="t"))

    profile = await user_service.get_profile(db_session, test_user)

    assert profile.email == test_user.email
    assert profile.total_bookmarks == 2
    assert profile.public_bookmarks == 1


async def test__get_public_profile__hides_private_fields(
    db_session: AsyncSession,
    test_user: User,
) -> None:
    await create_bookmark(
        db_session, test_user.id, BookmarkCreate(url="https://1.example", title="t", is_public=True),
    )
    await create_bookmark(db_session, test_user.id, BookmarkCreate(url="https://2.example", title="t"))

    profile = await user_service.get_public_profile(db_session, "alice")

    dumped = profile.model_dump()
    assert dumped["username"] == "alice"
    assert dumped["public_bookmarks"] == 1
    assert "email" not in dumped
    assert "password_hash" not in dumped


async def test__get_public_profile__unknown_user_not_found(db_session: AsyncSession) -> None:
    with pytest.raises(NotFoundError):
        await user_service.get_public_profile(db_session, "nobody")
