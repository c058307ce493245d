"""
Lead service: creation, reads, and optimistic-concurrency updates.

Updates follow a fixed sequence of gates. Each gate either passes or raises
its own error type, and nothing is written unless every gate passes:

    validated -> loaded -> authorized -> version checked -> committed

The version token is the lead's updated_at. The stored row is only replaced
if its updated_at still equals the caller's base version, checked once here
and again atomically by the database UPDATE.
"""

import logging
from datetime import datetime
from typing import Any, Mapping
from uuid import UUID, uuid4

from core.audit import creation_entry, update_entry
from core.authorization import OwnershipGate
from core.config import LeadsConfig
from core.database import LeadDatabase
from core.exceptions import ConflictError, NotFoundError, ValidationError
from core.models import (
    HistoryEntry, Lead, LeadCreate, LeadDetail, LeadFilter, LeadPage,
    LeadStats, LeadStatus, LeadUpdate,
)
from core.validation import LeadValidator, check_lead_rules, parse_version
from utils.timezone import next_version, now_utc, to_utc
from utils.user_context import get_current_principal

logger = logging.getLogger(__name__)


class LeadService:
    """Service for buyer lead operations."""

    def __init__(
        self,
        db: LeadDatabase,
        validator: LeadValidator,
        gate: OwnershipGate,
        config: LeadsConfig | None = None,
    ):
        self.db = db
        self.validator = validator
        self.gate = gate
        self.config = config or LeadsConfig()

    def create(self, data: Mapping[str, Any] | LeadCreate, imported: bool = False) -> Lead:
        """
        Create a lead owned by the acting principal.

        Args:
            data: Raw field mapping, or an already validated candidate
            imported: Whether the lead comes from a CSV import

        Returns:
            Created lead

        Raises:
            ValidationError: If the record is invalid
        """
        if isinstance(data, LeadCreate):
            candidate = data
            errors = check_lead_rules(candidate)
            if errors:
                raise ValidationError(errors)
        else:
            candidate = self.validator.validate(data)

        principal = get_current_principal()
        lead_id = uuid4()
        now = now_utc()

        history = creation_entry(
            lead_id=lead_id,
            changed_by=principal.id,
            changed_at=now,
            full_name=candidate.full_name,
            phone=candidate.phone,
            imported=imported,
        )
        lead = self.db.insert_lead(
            lead_id, principal.id, candidate.model_dump(mode="json"), now, history
        )

        logger.info(f"Lead {lead.id} created by {principal.id}")
        return lead

    def get_by_id(self, lead_id: UUID) -> Lead | None:
        return self.db.get_lead(lead_id)

    def get(self, lead_id: UUID) -> LeadDetail:
        """
        Lead detail for the acting principal.

        Raises:
            NotFoundError: If the lead does not exist
        """
        lead = self._load(lead_id)
        principal = get_current_principal()
        return LeadDetail(
            lead=lead,
            can_edit=self.gate.can_write(principal, lead),
            history=self.db.list_history(lead_id, self.config.history_window),
        )

    def update(
        self,
        lead_id: UUID,
        patch: Mapping[str, Any] | LeadUpdate,
        base_version: datetime | str,
    ) -> Lead:
        """
        Apply a patch if the lead is unchanged since the caller read it.

        Args:
            lead_id: Lead UUID
            patch: Raw fields to change, or an already validated patch
            base_version: updated_at the caller observed

        Returns:
            Updated lead, with updated_at strictly later than base_version

        Raises:
            ValidationError: If the patch or the merged record is invalid
            NotFoundError: If the lead does not exist
            AuthorizationError: If the acting principal does not own the lead
            ConflictError: If the lead changed since base_version
        """
        if not isinstance(patch, LeadUpdate):
            patch = self.validator.validate_patch(patch)
        expected = to_utc(parse_version(base_version))

        principal = get_current_principal()
        current = self._load(lead_id)
        self.gate.require_write(principal, current)

        if current.version != expected:
            logger.warning(
                f"Version conflict on lead {lead_id}: "
                f"expected {expected.isoformat()}, found {current.version.isoformat()}"
            )
            raise ConflictError(lead_id, expected, current.version)

        candidate = self.validator.apply_patch(current, patch)
        new_values = candidate.model_dump(mode="json")
        new_version = next_version(current.version)

        history = update_entry(current, new_values, principal.id, new_version)
        updated = self.db.update_lead(lead_id, new_values, current.version, new_version, history)

        if updated is None:
            # Lost the race between the check above and the UPDATE.
            latest = self.db.get_lead(lead_id)
            if latest is None:
                raise NotFoundError(lead_id)
            logger.warning(f"Version conflict on lead {lead_id} at commit")
            raise ConflictError(lead_id, expected, latest.version)

        logger.info(
            f"Lead {lead_id} updated by {principal.id}: {history.description}"
        )
        return updated

    def delete(self, lead_id: UUID, base_version: datetime | str | None = None) -> None:
        """
        Permanently delete a lead and its history.

        Raises:
            NotFoundError: If the lead does not exist
            AuthorizationError: If the acting principal does not own the lead
            ConflictError: If base_version is given and the lead changed since
        """
        expected = None
        if base_version is not None:
            expected = to_utc(parse_version(base_version))

        principal = get_current_principal()
        current = self._load(lead_id)
        self.gate.require_write(principal, current, action="delete")

        if expected is not None and current.version != expected:
            logger.warning(f"Version conflict deleting lead {lead_id}")
            raise ConflictError(lead_id, expected, current.version)

        if not self.db.delete_lead(lead_id, expected):
            latest = self.db.get_lead(lead_id)
            # An unconditional delete only fails when the row is already gone.
            if latest is None or expected is None:
                raise NotFoundError(lead_id)
            raise ConflictError(lead_id, expected, latest.version)

        logger.info(f"Lead {lead_id} deleted by {principal.id}")

    def list_page(self, criteria: LeadFilter | Mapping[str, Any] | None = None) -> LeadPage:
        """One page of leads matching the criteria."""
        criteria = self.build_filter(criteria)
        leads, total = self.db.list_leads(criteria)
        return LeadPage(leads=leads, total=total, page=criteria.page, limit=criteria.limit)

    def find_all(self, criteria: LeadFilter | Mapping[str, Any] | None = None) -> list[Lead]:
        """Every lead matching the criteria, unpaginated."""
        return self.db.find_leads(self.build_filter(criteria))

    def history(self, lead_id: UUID, limit: int | None = None) -> list[HistoryEntry]:
        """
        History of a lead, newest first.

        Raises:
            NotFoundError: If the lead does not exist
        """
        self._load(lead_id)
        return self.db.list_history(lead_id, limit or self.config.history_window)

    def stats(self, owner_id: UUID | None = None) -> LeadStats:
        counts = self.db.count_by_status(owner_id)
        total = sum(counts.values())
        converted = counts.get(LeadStatus.CONVERTED, 0)
        rate = round(converted * 100 / total, 1) if total else 0.0
        return LeadStats(total=total, by_status=counts, conversion_rate=rate)

    def _load(self, lead_id: UUID) -> Lead:
        lead = self.db.get_lead(lead_id)
        if lead is None:
            raise NotFoundError(lead_id)
        return lead

    def build_filter(self, criteria: LeadFilter | Mapping[str, Any] | None) -> LeadFilter:
        """Listing criteria from raw query values. Blank and "all" mean no filter."""
        if criteria is None:
            return LeadFilter(limit=self.config.list_page_size)
        if isinstance(criteria, LeadFilter):
            return criteria
        raw = dict(criteria)
        raw.setdefault("limit", self.config.list_page_size)
        return self.validator.validate_filter(raw)
