"""
Shared test fixtures and utilities.

This module provides common test infrastructure used across all test modules.
The required settings are given test values before any application module
is imported, so creating the app never depends on a developer's .env.
"""

import os

# Test JWT secret (only for testing)
TEST_JWT_SECRET = "test-secret-key-for-testing-only"

os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SERVICE_ROLE_KEY", "test-service-role-key")
os.environ.setdefault("OPENAI_API_KEY", "test-openai-key")

import pytest  # noqa: E402
from typing import Any, Optional  # noqa: E402
from datetime import datetime, timedelta, timezone  # noqa: E402
import jwt  # noqa: E402  PyJWT
from unittest.mock import MagicMock  # noqa: E402

from api.dependencies import reset_container  # noqa: E402
from shared.config import get_settings  # noqa: E402
from shared.database import reset_client_cache  # noqa: E402


TEST_USER_ID = "0b6f7c1e-5a2d-4c1b-9a57-3f1f2d6b8e11"
TEST_USER_EMAIL = "test@example.com"


def create_test_token(
    user_id: str = TEST_USER_ID,
    email: str = TEST_USER_EMAIL,
    expired: bool = False,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """
    Create an access token the API accepts.

    Args:
        user_id: User ID to include in the token
        email: Email to include in the token
        expired: If True, creates an expired token
        secret: Signing secret; pass another value to forge a token

    Returns:
        JWT token string
    """
    now = datetime.now(timezone.utc)
    exp = now - timedelta(hours=1) if expired else now + timedelta(minutes=15)

    payload = {
        "userId": user_id,
        "email": email,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def mock_query(rows: Optional[list[dict[str, Any]]] = None) -> MagicMock:
    """
    Build a Supabase query builder whose filters all chain to itself.

    `execute()` returns a result whose `.data` is `rows`. Assert on the
    builder to check which filters a repository applied.
    """
    query = MagicMock()
    for method in ("select", "insert", "update", "upsert", "delete", "eq", "gt", "lt", "in_", "or_", "order", "limit"):
        getattr(query, method).return_value = query
    query.execute.return_value = MagicMock(data=rows if rows is not None else [])
    return query


@pytest.fixture(autouse=True)
def reset_singletons():
    """Reset the service container and cached settings around each test."""
    get_settings.cache_clear()
    reset_container()
    reset_client_cache()
    yield
    get_settings.cache_clear()
    reset_container()
    reset_client_cache()


@pytest.fixture
def test_user_id() -> str:
    """Provide a consistent test user ID."""
    return TEST_USER_ID


@pytest.fixture
def test_user_email() -> str:
    """Provide a consistent test user email."""
    return TEST_USER_EMAIL


@pytest.fixture
def auth_token(test_user_id: str, test_user_email: str) -> str:
    """Create a valid auth token for testing."""
    return create_test_token(user_id=test_user_id, email=test_user_email)


@pytest.fixture
def auth_headers(auth_token: str) -> dict[str, str]:
    """Create authorization headers with a valid token."""
    return {"Authorization": f"Bearer {auth_token}"}
