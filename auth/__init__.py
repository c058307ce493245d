"""Authentication: session resolution into the acting principal."""

from auth.exceptions import (
    AuthError,
    InvalidTokenError,
    SessionExpiredError,
)
from auth.types import (
    Principal,
    PrincipalRole,
    Session,
)
