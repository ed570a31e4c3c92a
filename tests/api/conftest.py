"""API test fixtures: authenticated TestClient over in-memory services."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from auth.config import AuthConfig
from auth.session import SessionManager
from auth.types import Session
from main import create_app
from utils.timezone import now_utc


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def auth_config():
    return AuthConfig(secure_cookie=False)


@pytest.fixture
def mock_session_manager():
    now = now_utc()
    mock = Mock(spec=SessionManager)
    mock.validate_session.return_value = Session(
        token="test-token",
        username="demo",
        created_at=now,
        expires_at=now + timedelta(hours=24),
        last_activity_at=now,
    )
    mock.create_session.return_value = mock.validate_session.return_value
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def app(services, mock_session_manager, auth_config):
    """Full app with auth middleware, error handlers and all routers."""
    return create_app(services, mock_session_manager, auth_config)


@pytest.fixture
def client(app):
    """Authenticated test client."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "test-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def created(client, make_payload):
    """POST an invoice and return its JSON body."""
    def _create(**overrides):
        response = client.post("/api/invoices", json=make_payload(**overrides))
        assert response.status_code == 201, response.json()
        return response.json()["data"]

    return _create
