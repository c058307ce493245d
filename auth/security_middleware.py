"""Security middleware for FastAPI - session validation and principal context."""

import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse

from auth.exceptions import AuthError, InvalidTokenError
from api.base import error_response, ErrorCodes
from api.middleware import get_request_id
from clients.identity_client import IdentityServiceClient, IdentityServiceError
from utils.user_context import set_current_principal, clear_current_principal

logger = logging.getLogger(__name__)


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the session and sets the acting principal.

    For protected routes:
    1. Extracts session token from 'session_token' cookie
    2. Validates it with the identity service
    3. Sets the principal in request.state and principal context
    4. Clears context after request completes

    Public paths bypass authentication entirely.
    """

    PUBLIC_PATHS = [
        "/health",
        "/docs",
        "/openapi.json",
    ]

    def __init__(self, app, session_validator: IdentityServiceClient):
        super().__init__(app)
        self._session_validator = session_validator

    def _is_public_path(self, path: str) -> bool:
        """Check if path is in public paths list."""
        for public_path in self.PUBLIC_PATHS:
            if path == public_path or path.startswith(public_path):
                return True
        return False

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        path = request.url.path

        if self._is_public_path(path):
            return await call_next(request)

        session_token = request.cookies.get("session_token")

        if not session_token:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                    request_id=get_request_id(request),
                ).model_dump(mode="json"),
            )

        try:
            session = self._session_validator.validate_session(session_token)
        except InvalidTokenError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.NOT_AUTHENTICATED,
                    "Authentication required",
                    request_id=get_request_id(request),
                ).model_dump(mode="json"),
            )
        except AuthError:
            return JSONResponse(
                status_code=401,
                content=error_response(
                    ErrorCodes.SESSION_EXPIRED,
                    "Session has expired",
                    request_id=get_request_id(request),
                ).model_dump(mode="json"),
            )
        except IdentityServiceError:
            return JSONResponse(
                status_code=503,
                content=error_response(
                    ErrorCodes.SERVICE_UNAVAILABLE,
                    "Identity service unavailable",
                    request_id=get_request_id(request),
                ).model_dump(mode="json"),
            )

        set_current_principal(session.principal)
        request.state.principal = session.principal
        request.state.session = session

        try:
            response = await call_next(request)
            return response
        finally:
            clear_current_principal()
