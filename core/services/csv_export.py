"""CSV export of buyer leads."""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import BaseModel

from core.config import LeadsConfig
from core.csv_io import DEFAULT_EXPORT_FIELDS, FIELD_LABELS, OPTIONAL_LABELS, write_csv
from core.exceptions import FieldError, ValidationError
from core.models import Lead, LeadFilter
from core.normalizer import EnumNormalizer
from core.services.lead_service import LeadService
from core.validation import canonical_field_name
from utils.timezone import now_utc, to_calendar_date

logger = logging.getLogger(__name__)

EXPORT_LABELS = {**FIELD_LABELS, **OPTIONAL_LABELS}

_PAGING_PARAMS = ("page", "limit")


class ExportResult(BaseModel):
    filename: str
    content: str
    row_count: int


class LeadExporter:
    """
    Render matching leads as CSV.

    Exports every matching lead regardless of page or limit. Enumerated
    values use their display labels, timestamps become calendar dates in the
    configured timezone, and everything else is written as stored.
    """

    def __init__(
        self,
        service: LeadService,
        normalizer: EnumNormalizer,
        config: LeadsConfig | None = None,
    ):
        self.service = service
        self.normalizer = normalizer
        self.config = config or LeadsConfig()

    def resolve_fields(self, fields: Iterable[str] | None) -> list[str]:
        """
        Internal names for requested export fields, in request order.

        Raises:
            ValidationError: If any requested field is not exportable
        """
        requested = [f.strip() for f in (fields or []) if f and f.strip()]
        if not requested:
            return list(DEFAULT_EXPORT_FIELDS)

        resolved = []
        errors = []
        for name in requested:
            internal = canonical_field_name(name)
            if internal not in EXPORT_LABELS:
                errors.append(FieldError("fields", f"Unknown export field: {name}"))
            elif internal not in resolved:
                resolved.append(internal)
        if errors:
            raise ValidationError(errors)
        return resolved

    def export(
        self,
        criteria: LeadFilter | Mapping[str, Any] | None = None,
        fields: Iterable[str] | None = None,
    ) -> ExportResult:
        """Export all leads matching criteria. Read-only; writes no history."""
        columns = self.resolve_fields(fields)
        if isinstance(criteria, Mapping):
            # Exports are never paginated.
            criteria = {k: v for k, v in criteria.items() if k not in _PAGING_PARAMS}
        criteria = self.service.build_filter(criteria)
        leads = self.service.find_all(criteria)

        content = write_csv(
            [EXPORT_LABELS[c] for c in columns],
            (self._row(lead, columns) for lead in leads),
        )

        logger.info(f"Exported {len(leads)} leads")
        return ExportResult(
            filename=self.filename(criteria),
            content=content,
            row_count=len(leads),
        )

    def filename(self, criteria: LeadFilter) -> str:
        """e.g. buyers_export_2024-01-15_filtered.csv"""
        stamp = to_calendar_date(now_utc(), self.config.display_timezone)
        suffix = "_filtered" if criteria.is_filtered else ""
        return f"{self.config.export_filename_prefix}_{stamp}{suffix}.csv"

    def _row(self, lead: Lead, columns: list[str]) -> list[str]:
        return [self._format(column, getattr(lead, column)) for column in columns]

    def _format(self, column: str, value: Any) -> str:
        if value is None:
            return ""
        if column in self.normalizer.fields:
            return self.normalizer.to_display(value, column)
        if isinstance(value, datetime):
            return to_calendar_date(value, self.config.display_timezone)
        return str(value)
