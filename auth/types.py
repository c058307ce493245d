"""Pydantic models for auth domain."""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field


class PrincipalRole(str, Enum):
    """Role the identity service assigns to a user."""

    AGENT = "agent"
    ADMIN = "admin"


class Principal(BaseModel):
    """The authenticated user a request acts on behalf of."""

    id: UUID
    email: str | None = None
    role: PrincipalRole = PrincipalRole.AGENT

    model_config = {"frozen": True}

    @property
    def is_admin(self) -> bool:
        return self.role == PrincipalRole.ADMIN


class Session(BaseModel):
    """A session issued by the external identity service."""

    token: str = Field(..., description="Session token (opaque string)")
    principal: Principal
    expires_at: datetime

    @property
    def user_id(self) -> UUID:
        return self.principal.id
