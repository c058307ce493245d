"""Global exception handlers for FastAPI."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from starlette.responses import JSONResponse

from api.base import error_response, ErrorCodes
from api.middleware import get_request_id
from core.exceptions import (
    AuthorizationError,
    ConflictError,
    LeadError,
    NotFoundError,
    ValidationError,
)
from core.validation import error_rows

logger = logging.getLogger(__name__)

# Status and error code per domain error type.
LEAD_ERROR_STATUS = {
    ValidationError: (422, ErrorCodes.VALIDATION_ERROR),
    AuthorizationError: (403, ErrorCodes.AUTHORIZATION_DENIED),
    NotFoundError: (404, ErrorCodes.LEAD_NOT_FOUND),
    ConflictError: (409, ErrorCodes.VERSION_CONFLICT),
}


def _error(request: Request, status_code: int, code: str, message: str, details=None):
    return JSONResponse(
        status_code=status_code,
        content=error_response(
            code, message, details, request_id=get_request_id(request)
        ).model_dump(mode="json"),
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the app."""

    @app.exception_handler(LeadError)
    async def lead_error_handler(request: Request, exc: LeadError):
        status_code, code = LEAD_ERROR_STATUS.get(type(exc), (400, ErrorCodes.INVALID_REQUEST))
        details = error_rows(exc.errors) if isinstance(exc, ValidationError) else None
        return _error(request, status_code, code, str(exc), details)

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return _error(request, 400, ErrorCodes.INVALID_REQUEST, str(exc))

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        details = [
            {
                "field": ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")),
                "message": err.get("msg", "Invalid value"),
            }
            for err in exc.errors()
        ]
        return _error(request, 422, ErrorCodes.VALIDATION_ERROR, "Request validation failed", details)

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception")
        return _error(request, 500, ErrorCodes.INTERNAL_ERROR, "An internal error occurred")
