"""Core domain models."""

from core.models.lead import (
    Lead, LeadCreate, LeadUpdate, LeadFilter, LeadPage, LeadDetail, LeadStats,
    City, PropertyType, Bhk, Purpose, PossessionTimeline,
    LeadSource, LeadStatus, LeadPriority,
    BHK_REQUIRED_FOR, SORTABLE_COLUMNS,
)
from core.models.history import HistoryEntry, HistoryAction

__all__ = [
    # Lead
    "Lead", "LeadCreate", "LeadUpdate", "LeadFilter", "LeadPage", "LeadDetail", "LeadStats",
    "BHK_REQUIRED_FOR", "SORTABLE_COLUMNS",
    # Enumerations
    "City", "PropertyType", "Bhk", "Purpose", "PossessionTimeline",
    "LeadSource", "LeadStatus", "LeadPriority",
    # History
    "HistoryEntry", "HistoryAction",
]
