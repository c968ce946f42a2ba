"""
Pytest fixtures and configuration for PurVita Backend tests

This file provides shared fixtures that can be used across all test modules.
No database is needed: repositories run against a mocked psycopg2 connection
and API tests replace services through app.dependency_overrides.
"""
import time
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from purvita.core.config import settings
from purvita.core.rate_limit import rate_limiter

TEST_JWT_SECRET = "test-jwt-secret"
TEST_WEBHOOK_SECRET = "test-webhook-secret"
TEST_CSRF_TOKEN = "test-csrf-token"

USER_ID = "11111111-1111-1111-1111-111111111111"
ADMIN_ID = "99999999-9999-9999-9999-999999999999"
AFFILIATE_ID = "22222222-2222-2222-2222-222222222222"
SPONSOR_ID = "33333333-3333-3333-3333-333333333333"


@pytest.fixture
def mock_db():
    """
    Patches the connection factory used by every repository

    Yields (mock_conn, mock_cursor); set mock_cursor.fetchone / fetchall
    return values to simulate query results.
    """
    with patch('purvita.repositories.base.get_db_connection_dict') as mock_get_conn:
        mock_conn = MagicMock()
        mock_cursor = MagicMock()
        mock_get_conn.return_value = mock_conn
        mock_conn.cursor.return_value = mock_cursor
        yield mock_conn, mock_cursor


@pytest.fixture
def mock_transaction():
    """
    Patches database.transaction() for services that open one

    Yields the connection object handed to the repositories.
    """
    conn = MagicMock(name="transaction_conn")

    class _Transaction:
        def __enter__(self):
            return conn

        def __exit__(self, exc_type, exc, tb):
            if exc_type is None:
                conn.commit()
            else:
                conn.rollback()
            return False

    yield conn, _Transaction


@pytest.fixture
def security_settings(monkeypatch):
    """Known secrets for JWT, webhook and CSRF checks"""
    monkeypatch.setattr(settings, "SUPABASE_JWT_SECRET", TEST_JWT_SECRET)
    monkeypatch.setattr(settings, "PAYMENT_WEBHOOK_SECRET", TEST_WEBHOOK_SECRET)
    monkeypatch.setattr(settings, "CSRF_PROTECTION_ENABLED", True)
    return settings


@pytest.fixture
def make_token():
    """Factory for Supabase-style session tokens"""
    def _make_token(user_id: str = USER_ID, role: str = "user", expires_in: int = 3600,
                    secret: str = TEST_JWT_SECRET) -> str:
        payload = {
            "sub": user_id,
            "email": f"{user_id[:8]}@example.com",
            "aud": "authenticated",
            "role": "authenticated",
            "app_metadata": {"role": role},
            "exp": int(time.time()) + expires_in,
        }
        return jwt.encode(payload, secret, algorithm="HS256")

    return _make_token


@pytest.fixture
def user_headers(make_token):
    return {
        "Authorization": f"Bearer {make_token()}",
        "X-CSRF-Token": TEST_CSRF_TOKEN,
    }


@pytest.fixture
def admin_headers(make_token):
    return {
        "Authorization": f"Bearer {make_token(ADMIN_ID, role='admin')}",
        "X-CSRF-Token": TEST_CSRF_TOKEN,
    }


@pytest.fixture
def client(security_settings):
    """
    TestClient with the CSRF cookie set

    Dependency overrides and rate limit state are cleared after each test.
    """
    from purvita.main import app

    rate_limiter.reset()
    test_client = TestClient(app, cookies={"csrf-token": TEST_CSRF_TOKEN})
    yield test_client
    app.dependency_overrides.clear()
    rate_limiter.reset()


@pytest.fixture
def app():
    from purvita.main import app as fastapi_app
    return fastapi_app


@pytest.fixture
def sample_profile_row():
    """
    Provides a profiles row as returned by RealDictCursor
    """
    return {
        "id": AFFILIATE_ID,
        "email": "affiliate@example.com",
        "name": "Ana Affiliate",
        "phone": None,
        "address": None,
        "city": "Lima",
        "country": "PE",
        "referral_code": "ANA123",
        "referred_by": SPONSOR_ID,
        "sponsor_id": None,
        "created_at": None,
    }
