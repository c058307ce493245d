"""Shared test fixtures for the buyer leads test suite."""

import pytest
from datetime import datetime
from pathlib import Path
from typing import Any
from uuid import UUID

from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

from auth.types import Principal, PrincipalRole
from core.authorization import OwnershipGate
from core.config import LeadsConfig
from core.models import HistoryEntry, Lead, LeadFilter, LeadStatus
from core.normalizer import EnumNormalizer
from core.services.lead_service import LeadService
from core.validation import LeadValidator
from utils.user_context import clear_current_principal, principal_context


# =============================================================================
# TEST PRINCIPAL CONSTANTS
# =============================================================================

# Primary test agent - owns the leads it creates
TEST_USER_ID = UUID("00000000-0000-0000-0000-000000000001")
TEST_USER_EMAIL = "agent@test.local"

# Secondary test agent - use for ownership tests
TEST_USER_B_ID = UUID("00000000-0000-0000-0000-000000000002")
TEST_USER_B_EMAIL = "agent-b@test.local"

TEST_ADMIN_ID = UUID("00000000-0000-0000-0000-0000000000ad")

AGENT = Principal(id=TEST_USER_ID, email=TEST_USER_EMAIL)
AGENT_B = Principal(id=TEST_USER_B_ID, email=TEST_USER_B_EMAIL)
ADMIN = Principal(id=TEST_ADMIN_ID, email="admin@test.local", role=PrincipalRole.ADMIN)


def valid_lead_data(**overrides) -> dict[str, Any]:
    """Raw form input for a valid lead; display labels, like a browser sends."""
    data = {
        "fullName": "Asha Verma",
        "email": "asha@example.com",
        "phone": "98765 43210",
        "city": "Chandigarh",
        "propertyType": "Apartment",
        "bhk": "2 BHK",
        "purpose": "Buy",
        "budgetMin": "5000000",
        "budgetMax": "7000000",
        "possessionTimeline": "0-3 months",
        "leadSource": "Website",
        "notes": "Prefers a high floor",
    }
    data.update(overrides)
    return data


# =============================================================================
# PRINCIPAL CONTEXT FIXTURES
# =============================================================================


@pytest.fixture(autouse=True)
def reset_principal_context():
    """Ensure clean principal context before and after each test."""
    clear_current_principal()
    yield
    clear_current_principal()


@pytest.fixture
def agent() -> Principal:
    return AGENT


@pytest.fixture
def agent_b() -> Principal:
    return AGENT_B


@pytest.fixture
def admin() -> Principal:
    return ADMIN


@pytest.fixture
def as_agent(agent):
    """Act as the primary test agent."""
    with principal_context(agent):
        yield agent


# =============================================================================
# IN-MEMORY LEAD DATABASE
# =============================================================================


class InMemoryLeadDatabase:
    """
    Stand-in for LeadDatabase with the same method contract.

    update_lead is a compare-and-swap on updated_at, and a write plus its
    history entry are applied together, as the real database does in one
    transaction.
    """

    def __init__(self):
        self.leads: dict[UUID, Lead] = {}
        self.history: list[HistoryEntry] = []

    def get_lead(self, lead_id: UUID) -> Lead | None:
        return self.leads.get(lead_id)

    def insert_lead(self, lead_id, owner_id, values, created_at, history) -> Lead:
        lead = Lead.model_validate({
            **values,
            "id": lead_id,
            "owner_id": owner_id,
            "created_at": created_at,
            "updated_at": created_at,
        })
        self.leads[lead_id] = lead
        self.history.append(history)
        return lead

    def update_lead(self, lead_id, values, expected_version, new_version, history) -> Lead | None:
        current = self.leads.get(lead_id)
        if current is None or current.updated_at != expected_version:
            return None
        updated = Lead.model_validate({
            **current.model_dump(),
            **values,
            "updated_at": new_version,
        })
        self.leads[lead_id] = updated
        self.history.append(history)
        return updated

    def delete_lead(self, lead_id, expected_version=None) -> bool:
        current = self.leads.get(lead_id)
        if current is None:
            return False
        if expected_version is not None and current.updated_at != expected_version:
            return False
        del self.leads[lead_id]
        self.history = [h for h in self.history if h.lead_id != lead_id]
        return True

    def find_leads(self, criteria: LeadFilter) -> list[Lead]:
        matches = [lead for lead in self.leads.values() if self._matches(lead, criteria)]
        matches.sort(
            key=lambda lead: self._sort_key(getattr(lead, criteria.sort_by)),
            reverse=criteria.sort_order == "desc",
        )
        return matches

    def list_leads(self, criteria: LeadFilter) -> tuple[list[Lead], int]:
        matches = self.find_leads(criteria)
        page = matches[criteria.offset:criteria.offset + criteria.limit]
        return page, len(matches)

    def list_history(self, lead_id: UUID, limit: int) -> list[HistoryEntry]:
        entries = [h for h in self.history if h.lead_id == lead_id]
        entries.sort(key=lambda h: h.changed_at, reverse=True)
        return entries[:limit]

    def count_by_status(self, owner_id: UUID | None = None) -> dict[LeadStatus, int]:
        counts = {status: 0 for status in LeadStatus}
        for lead in self.leads.values():
            if owner_id is None or lead.owner_id == owner_id:
                counts[lead.status] += 1
        return counts

    def history_for(self, lead_id: UUID) -> list[HistoryEntry]:
        """Chronological history, for assertions."""
        return [h for h in self.history if h.lead_id == lead_id]

    @staticmethod
    def _sort_key(value):
        if isinstance(value, str):
            return value.casefold()
        if isinstance(value, datetime):
            return value.timestamp()
        return getattr(value, "value", value)

    @staticmethod
    def _matches(lead: Lead, criteria: LeadFilter) -> bool:
        if criteria.search:
            term = criteria.search.strip().casefold()
            haystacks = [lead.full_name.casefold(), (lead.email or "").casefold()]
            if not any(term in h for h in haystacks) and term not in lead.phone:
                return False
        for name in ("city", "property_type", "status", "priority", "lead_source", "possession_timeline"):
            wanted = getattr(criteria, name)
            if wanted is not None and getattr(lead, name) != wanted:
                return False
        if criteria.owner_id is not None and lead.owner_id != criteria.owner_id:
            return False
        return True


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def config() -> LeadsConfig:
    return LeadsConfig()


@pytest.fixture
def lead_db() -> InMemoryLeadDatabase:
    return InMemoryLeadDatabase()


@pytest.fixture
def normalizer() -> EnumNormalizer:
    return EnumNormalizer()


@pytest.fixture
def validator(normalizer) -> LeadValidator:
    return LeadValidator(normalizer)


@pytest.fixture
def gate() -> OwnershipGate:
    return OwnershipGate()


@pytest.fixture
def lead_service(lead_db, validator, gate, config) -> LeadService:
    return LeadService(lead_db, validator, gate, config)


@pytest.fixture
def make_lead(lead_service):
    """Create a lead as the given principal (default: primary agent)."""

    def _make(principal: Principal = AGENT, **overrides) -> Lead:
        with principal_context(principal):
            return lead_service.create(valid_lead_data(**overrides))

    return _make


@pytest.fixture
def lead_data():
    """Factory for raw valid lead input; keyword overrides replace fields."""
    return valid_lead_data
