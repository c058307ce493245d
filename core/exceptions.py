"""
Lead domain errors.

Each kind is its own type with a stable `code`, so the HTTP layer maps them
by class and never by message text.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable
from uuid import UUID


@dataclass(frozen=True)
class FieldError:
    """One problem attributed to one input field."""

    field: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"field": self.field, "message": self.message}


class LeadError(Exception):
    """Base class for lead domain failures. All are caller-recoverable."""

    code = "LEAD_ERROR"


class ValidationError(LeadError):
    """Input failed validation. Carries every field-level problem found."""

    code = "VALIDATION_ERROR"

    def __init__(self, errors: Iterable[FieldError]):
        self.errors = list(errors)
        if not self.errors:
            raise ValueError("ValidationError requires at least one FieldError")
        summary = "; ".join(f"{e.field}: {e.message}" for e in self.errors)
        super().__init__(f"Validation failed: {summary}")

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]


class AuthorizationError(LeadError):
    """The acting principal may not modify this lead."""

    code = "AUTHORIZATION_DENIED"

    def __init__(self, lead_id: UUID, principal_id: UUID, action: str = "edit"):
        self.lead_id = lead_id
        self.principal_id = principal_id
        self.action = action
        super().__init__(f"You can only {action} your own leads")


class ConflictError(LeadError):
    """The lead changed since the caller last read it."""

    code = "VERSION_CONFLICT"

    def __init__(self, lead_id: UUID, expected: datetime, actual: datetime | None):
        self.lead_id = lead_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            "Record has been modified by another user. Please refresh and try again."
        )


class NotFoundError(LeadError):
    """No lead with this id exists."""

    code = "LEAD_NOT_FOUND"

    def __init__(self, lead_id: UUID):
        self.lead_id = lead_id
        super().__init__(f"Lead {lead_id} not found")
