"""Lead history (audit trail) models."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class HistoryAction(str, Enum):
    """What happened to the lead."""

    CREATED = "created"
    UPDATED = "updated"


class HistoryEntry(BaseModel):
    """One immutable record of a lead mutation."""

    id: UUID
    lead_id: UUID
    changed_by: UUID
    changed_at: datetime
    action: HistoryAction
    description: str | None = None
    changes: dict[str, Any] | None = None

    model_config = {"from_attributes": True, "frozen": True}
