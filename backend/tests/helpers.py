"""Helpers shared by test modules."""
from sqlalchemy.ext.asyncio import AsyncSession

from core.config import Settings
from models import User
from schemas.token import TokenClaim
from services import token_service
from services.password_service import hash_password

TEST_PASSWORD = "Secret123"


async def create_user(
    db: AsyncSession,
    username: str = "alice",
    email: str | None = None,
    password: str = TEST_PASSWORD,
    **fields: object,
) -> User:
    """Insert a user directly, bypassing registration."""
    user = User(
        username=username,
        email=email or f"{username}@example.com",
        password_hash=hash_password(password, rounds=4),
        **fields,
    )
    db.add(user)
    await db.flush()
    await db.refresh(user)
    return user


def auth_headers(user: User, settings: Settings) -> dict[str, str]:
    """Authorization header carrying a fresh access token for the user."""
    claim = TokenClaim(user_id=user.id, username=user.username, email=user.email)
    tokens = token_service.issue_token_pair(claim, settings)
    return {"Authorization": f"Bearer {tokens.access_token}"}
