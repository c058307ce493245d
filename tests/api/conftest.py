"""API test fixtures: the full app over the in-memory lead database."""

from datetime import timedelta
from unittest.mock import Mock

import pytest
from starlette.testclient import TestClient

from api.app import create_app, create_services
from auth.exceptions import SessionExpiredError
from auth.types import Session
from clients.identity_client import IdentityServiceClient
from utils.timezone import now_utc


# =============================================================================
# AUTH FIXTURES
# =============================================================================


@pytest.fixture
def mock_session_validator(agent, agent_b):
    """Identity service stand-in: 'agent-token' and 'agent-b-token' are valid."""
    expires = now_utc() + timedelta(hours=1)
    sessions = {
        "agent-token": Session(token="agent-token", principal=agent, expires_at=expires),
        "agent-b-token": Session(token="agent-b-token", principal=agent_b, expires_at=expires),
    }

    def validate(token):
        if token not in sessions:
            raise SessionExpiredError("Session not found or expired")
        return sessions[token]

    mock = Mock(spec=IdentityServiceClient)
    mock.validate_session.side_effect = validate
    return mock


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def services(lead_db, config):
    return create_services(lead_db, config)


@pytest.fixture
def app(services, mock_session_validator):
    return create_app(services, mock_session_validator)


@pytest.fixture
def client(app):
    """Client authenticated as the primary agent."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "agent-token")
    return c


@pytest.fixture
def client_b(app):
    """Client authenticated as the secondary agent."""
    c = TestClient(app, raise_server_exceptions=False)
    c.cookies.set("session_token", "agent-b-token")
    return c


@pytest.fixture
def unauthed_client(app):
    """Unauthenticated test client (no session cookie)."""
    return TestClient(app, raise_server_exceptions=False)
