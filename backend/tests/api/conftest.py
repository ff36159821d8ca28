"""Shared fixtures for API tests."""
import pytest

from core.config import Settings
from models.user import User
from tests.helpers import auth_headers


@pytest.fixture
def alice_headers(test_user: User, settings: Settings) -> dict[str, str]:
    """Authorization header for the primary test user."""
    return auth_headers(test_user, settings)


@pytest.fixture
def bob_headers(other_user: User, settings: Settings) -> dict[str, str]:
    """Authorization header for a second, unrelated user."""
    return auth_headers(other_user, settings)
