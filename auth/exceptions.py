"""Typed exceptions for auth failures."""


class AuthError(Exception):
    """Base class for authentication errors."""


class InvalidTokenError(AuthError):
    """Session token is malformed or was never issued."""


class SessionExpiredError(AuthError):
    """Session has expired or was revoked; user must re-authenticate."""
