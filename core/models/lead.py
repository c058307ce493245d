"""Buyer lead domain models."""

import re
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from core.models.history import HistoryEntry


class City(str, Enum):
    """City the buyer is looking in."""

    CHANDIGARH = "CHANDIGARH"
    MOHALI = "MOHALI"
    ZIRAKPUR = "ZIRAKPUR"
    PANCHKULA = "PANCHKULA"
    OTHER = "OTHER"


class PropertyType(str, Enum):
    """Kind of property wanted."""

    APARTMENT = "APARTMENT"
    INDEPENDENT_HOUSE = "INDEPENDENT_HOUSE"
    VILLA = "VILLA"
    PLOT = "PLOT"
    COMMERCIAL = "COMMERCIAL"


class Bhk(str, Enum):
    """Room-count vocabulary. bhk_requirement may also hold free text."""

    STUDIO = "Studio"
    ONE = "One"
    TWO = "Two"
    THREE = "Three"
    FOUR = "Four"


class Purpose(str, Enum):
    BUY = "BUY"
    RENT = "RENT"


class PossessionTimeline(str, Enum):
    """When the buyer wants possession."""

    IMMEDIATE = "IMMEDIATE"
    WITHIN_3_MONTHS = "WITHIN_3_MONTHS"
    WITHIN_6_MONTHS = "WITHIN_6_MONTHS"
    WITHIN_1_YEAR = "WITHIN_1_YEAR"
    AFTER_1_YEAR = "AFTER_1_YEAR"


class LeadSource(str, Enum):
    """How the lead was acquired."""

    WEBSITE = "WEBSITE"
    SOCIAL_MEDIA = "SOCIAL_MEDIA"
    REFERRAL = "REFERRAL"
    ADVERTISEMENT = "ADVERTISEMENT"
    COLD_CALL = "COLD_CALL"
    EMAIL_CAMPAIGN = "EMAIL_CAMPAIGN"
    TRADE_SHOW = "TRADE_SHOW"
    OTHER = "OTHER"


class LeadStatus(str, Enum):
    """Pipeline status."""

    NEW = "NEW"
    CONTACTED = "CONTACTED"
    INTERESTED = "INTERESTED"
    NOT_INTERESTED = "NOT_INTERESTED"
    CONVERTED = "CONVERTED"


class LeadPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


# Property types that need a room count.
BHK_REQUIRED_FOR = frozenset({PropertyType.APARTMENT, PropertyType.VILLA})

# Budgets are stored in integer columns.
MAX_BUDGET = 2_147_483_647

_NON_DIGITS = re.compile(r"\D")
_PHONE = re.compile(r"^\d{10,15}$")


def _blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


class _LeadFields(BaseModel):
    """Field-level rules shared by create and update payloads."""

    @field_validator(
        "email", "bhk_requirement", "specific_requirements", "notes",
        mode="before", check_fields=False,
    )
    @classmethod
    def empty_string_is_absent(cls, value: Any) -> Any:
        return _blank_to_none(value)

    @field_validator("full_name", "bhk_requirement", mode="before", check_fields=False)
    @classmethod
    def strip_text(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("phone", mode="before", check_fields=False)
    @classmethod
    def canonical_phone(cls, value: Any) -> Any:
        """Strip formatting, then require 10-15 digits."""
        if value is None:
            return value
        digits = _NON_DIGITS.sub("", str(value))
        if not _PHONE.match(digits):
            raise ValueError("Phone must be 10-15 digits")
        return digits

    @field_validator("budget_min", "budget_max", mode="before", check_fields=False)
    @classmethod
    def coerce_budget(cls, value: Any) -> Any:
        """Accept numeric-looking strings; reject fractions and negatives."""
        value = _blank_to_none(value)
        if value is None:
            return None
        if isinstance(value, bool):
            raise ValueError("Budget must be a whole number")
        if isinstance(value, str):
            text = value.strip().replace(",", "")
            try:
                value = int(text)
            except ValueError:
                try:
                    value = float(text)
                except ValueError:
                    raise ValueError("Budget must be a whole number")
        if isinstance(value, float):
            if not value.is_integer():
                raise ValueError("Budget must be a whole number")
            value = int(value)
        if isinstance(value, int) and value < 0:
            raise ValueError("Budget cannot be negative")
        if isinstance(value, int) and value > MAX_BUDGET:
            raise ValueError(f"Budget cannot exceed {MAX_BUDGET}")
        return value


class LeadCreate(_LeadFields):
    """A fully validated candidate lead, minus identity, owner and timestamps."""

    full_name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str
    city: City
    property_type: PropertyType
    bhk_requirement: str | None = Field(None, max_length=50)
    purpose: Purpose
    budget_min: int | None = Field(None, ge=0, le=MAX_BUDGET)
    budget_max: int | None = Field(None, ge=0, le=MAX_BUDGET)
    possession_timeline: PossessionTimeline
    specific_requirements: str | None = Field(None, max_length=1000)
    lead_source: LeadSource
    status: LeadStatus = LeadStatus.NEW
    priority: LeadPriority = LeadPriority.MEDIUM
    notes: str | None = Field(None, max_length=2000)


class LeadUpdate(_LeadFields):
    """
    Patch for an existing lead. Only fields that were sent are applied.

    Required fields may be omitted but not cleared; sending null for them
    fails validation.
    """

    full_name: str = Field(None, min_length=2, max_length=100)
    email: EmailStr | None = None
    phone: str = None
    city: City = None
    property_type: PropertyType = None
    bhk_requirement: str | None = Field(None, max_length=50)
    purpose: Purpose = None
    budget_min: int | None = Field(None, ge=0, le=MAX_BUDGET)
    budget_max: int | None = Field(None, ge=0, le=MAX_BUDGET)
    possession_timeline: PossessionTimeline = None
    specific_requirements: str | None = Field(None, max_length=1000)
    lead_source: LeadSource = None
    status: LeadStatus = None
    priority: LeadPriority = None
    notes: str | None = Field(None, max_length=2000)


class Lead(BaseModel):
    """Full lead entity as stored."""

    id: UUID
    owner_id: UUID
    full_name: str
    email: str | None
    phone: str
    city: City
    property_type: PropertyType
    bhk_requirement: str | None
    purpose: Purpose
    budget_min: int | None
    budget_max: int | None
    possession_timeline: PossessionTimeline
    specific_requirements: str | None
    lead_source: LeadSource
    status: LeadStatus
    priority: LeadPriority
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}

    @property
    def version(self) -> datetime:
        """Version token for optimistic concurrency."""
        return self.updated_at


SORTABLE_COLUMNS = ("full_name", "created_at", "updated_at", "status", "priority")


class LeadFilter(BaseModel):
    """Listing, search and export criteria. Enum values are canonical."""

    search: str | None = Field(None, max_length=200)
    city: City | None = None
    property_type: PropertyType | None = None
    status: LeadStatus | None = None
    priority: LeadPriority | None = None
    lead_source: LeadSource | None = None
    possession_timeline: PossessionTimeline | None = None
    owner_id: UUID | None = None
    sort_by: str = Field("updated_at", pattern="^(full_name|created_at|updated_at|status|priority)$")
    sort_order: str = Field("desc", pattern="^(asc|desc)$")
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1, le=100)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def is_filtered(self) -> bool:
        """Whether any narrowing criterion is set (sorting and paging aside)."""
        return any(
            getattr(self, name) not in (None, "")
            for name in (
                "search", "city", "property_type", "status", "priority",
                "lead_source", "possession_timeline", "owner_id",
            )
        )


class LeadPage(BaseModel):
    """One page of a lead listing."""

    leads: list[Lead]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return -(-self.total // self.limit) if self.total else 0


class LeadDetail(BaseModel):
    """A lead as shown on its detail view."""

    lead: Lead
    can_edit: bool
    history: list[HistoryEntry]


class LeadStats(BaseModel):
    """Lead counts by status."""

    total: int
    by_status: dict[LeadStatus, int]
    conversion_rate: float = Field(..., description="Converted share of all leads, in percent")
