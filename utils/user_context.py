"""Propagate the acting principal through the call stack using contextvars."""

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from auth.types import Principal

_current_principal: ContextVar["Principal | None"] = ContextVar(
    "current_principal", default=None
)


def get_current_principal() -> "Principal":
    """
    Get the acting principal from context.

    Raises RuntimeError if no principal is set.
    This is fail-fast behavior - if you're in a code path that
    requires a principal and it's not set, that's a bug.
    """
    principal = _current_principal.get()
    if principal is None:
        raise RuntimeError(
            "No principal set. This usually means you're calling "
            "principal-scoped code outside of an authenticated request."
        )
    return principal


def get_current_user_id() -> UUID:
    """ID of the acting principal. Same failure mode as get_current_principal()."""
    return get_current_principal().id


def set_current_principal(principal: "Principal") -> None:
    """
    Set the acting principal in context.

    Called by auth middleware after validating the session.
    """
    _current_principal.set(principal)


def clear_current_principal() -> None:
    """
    Clear principal context.

    Called by auth middleware after request completes.
    Must be called in finally block to prevent context leakage.
    """
    _current_principal.set(None)


@contextmanager
def principal_context(principal: "Principal"):
    """
    Context manager for temporarily acting as a principal.

    Useful for:
    - Tests
    - Command-line imports run on behalf of a user

    Example:
        with principal_context(importer):
            result = lead_importer.import_csv(content)
    """
    previous = _current_principal.get()
    set_current_principal(principal)
    try:
        yield principal
    finally:
        if previous is None:
            clear_current_principal()
        else:
            set_current_principal(previous)
