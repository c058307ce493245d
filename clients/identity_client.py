"""
Identity service client.

Sessions are issued by an external identity service. This client only asks
it whether a session token is still valid and who it belongs to.
"""

import json
import logging

import requests
from pydantic import ValidationError

from auth.exceptions import InvalidTokenError, SessionExpiredError
from auth.types import Principal, Session
from utils.timezone import now_utc, parse_iso

logger = logging.getLogger(__name__)


class IdentityServiceError(Exception):
    """Raised when the identity service cannot be reached or answers nonsense."""


class IdentityServiceClient:
    """Validate session tokens against the identity service."""

    def __init__(self, base_url: str, api_key: str, timeout_seconds: float = 5):
        """
        Initialize with service credentials.

        Raises:
            ValueError: If any credential is empty
        """
        if not base_url:
            raise ValueError("base_url is required")
        if not api_key:
            raise ValueError("api_key is required")

        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout_seconds = timeout_seconds

    def validate_session(self, token: str) -> Session:
        """
        Resolve a session token to its principal.

        Raises:
            InvalidTokenError: Token was never issued
            SessionExpiredError: Token expired or was revoked
            IdentityServiceError: On transport or protocol failure
        """
        if not token:
            raise SessionExpiredError("Empty session token")

        try:
            response = requests.post(
                f"{self.base_url}/sessions/validate",
                json={"token": token},
                headers={"X-API-Key": self.api_key},
                timeout=self.timeout_seconds,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Identity service connection failed: {e}")
            raise IdentityServiceError(f"Connection failed: {e}")

        if response.status_code == 404:
            raise InvalidTokenError("Session token not recognized")

        if response.status_code in (401, 410):
            raise SessionExpiredError("Session expired or revoked")

        if response.status_code != 200:
            logger.error(f"Identity service returned HTTP {response.status_code}")
            raise IdentityServiceError(f"Unexpected status {response.status_code}")

        try:
            data = response.json()
            session = Session(
                token=token,
                principal=Principal(
                    id=data["user_id"],
                    email=data.get("email"),
                    role=data.get("role", "agent"),
                ),
                expires_at=parse_iso(data["expires_at"]),
            )
        except (json.JSONDecodeError, KeyError, ValueError, ValidationError) as e:
            logger.error(f"Identity service returned invalid session payload: {e}")
            raise IdentityServiceError("Invalid response from identity service")

        if session.expires_at <= now_utc():
            raise SessionExpiredError("Session has expired")

        return session
