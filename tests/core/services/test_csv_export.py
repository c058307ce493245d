"""Tests for LeadExporter."""

import csv
import io
from datetime import datetime, timezone

import pytest

from core.config import LeadsConfig
from core.exceptions import ValidationError
from core.models import LeadFilter
from core.services.csv_export import LeadExporter


@pytest.fixture
def exporter(lead_service, normalizer, config):
    return LeadExporter(lead_service, normalizer, config)


def _parse(content: str) -> list[list[str]]:
    return list(csv.reader(io.StringIO(content)))


class TestExportContent:
    """What ends up in the file."""

    def test_default_columns(self, exporter, make_lead):
        """Without a field list, the sixteen default columns are exported."""
        make_lead()

        rows = _parse(exporter.export().content)

        assert rows[0] == [
            "Full Name", "Email", "Phone", "City", "Property Type", "BHK", "Purpose",
            "Budget Min", "Budget Max", "Timeline", "Requirements", "Lead Source",
            "Status", "Notes", "Created Date", "Updated Date",
        ]
        assert len(rows) == 2

    def test_display_values(self, exporter, make_lead):
        """Enumerated values are written as display labels."""
        make_lead()

        rows = _parse(exporter.export(fields=["city", "bhk", "possessionTimeline", "status"]).content)

        assert rows[0] == ["City", "BHK", "Timeline", "Status"]
        assert rows[1] == ["Chandigarh", "2 BHK", "0-3 months", "New"]

    def test_free_text_and_numbers_pass_through(self, exporter, make_lead):
        """Names, blanks and budgets are written as stored."""
        make_lead(specificRequirements="")

        rows = _parse(exporter.export(fields=["fullName", "budget_min", "specific_requirements"]).content)

        assert rows[1] == ["Asha Verma", "5000000", ""]

    def test_dates_are_calendar_dates(self, exporter, make_lead, lead_db):
        """Timestamps become dates in the display timezone."""
        lead = make_lead()
        late_evening = datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc)
        lead_db.leads[lead.id] = lead.model_copy(update={"created_at": late_evening})

        rows = _parse(exporter.export(fields=["createdAt"]).content)

        assert rows[1] == ["2024-01-16"]

    def test_camel_case_field_list(self, exporter, make_lead):
        """Field names as the browser sends them, timestamps included."""
        make_lead()

        rows = _parse(exporter.export(fields=["fullName", "budgetMax", "createdAt", "updatedAt"]).content)

        assert rows[0] == ["Full Name", "Budget Max", "Created Date", "Updated Date"]
        assert rows[1][:2] == ["Asha Verma", "7000000"]

    def test_quoting(self, exporter, make_lead):
        """Values with commas, quotes or newlines are quoted; others are bare."""
        make_lead(notes='Wants "east facing", near park\nCall after 6')

        content = exporter.export(fields=["notes", "phone"]).content

        assert '"Wants ""east facing"", near park\nCall after 6",9876543210' in content
        assert _parse(content)[1][0] == 'Wants "east facing", near park\nCall after 6'

    def test_all_matching_rows_ignores_paging(self, exporter, make_lead):
        """Export is every match, not one page."""
        for i in range(12):
            make_lead(fullName=f"Buyer {i:02d}")

        result = exporter.export({"limit": "5", "page": "1"})

        assert result.row_count == 12

    def test_oversized_limit_ignored(self, exporter, make_lead):
        """A listing page size above the listing maximum does not block export."""
        make_lead()

        result = exporter.export({"limit": "500", "page": "3"})

        assert result.row_count == 1

    def test_filters_apply(self, exporter, make_lead):
        """Only matching leads are exported."""
        make_lead(city="Mohali")
        make_lead(city="Panchkula")

        result = exporter.export({"city": "Mohali"}, ["city"])

        assert result.row_count == 1
        assert _parse(result.content)[1] == ["Mohali"]

    def test_no_history_written(self, exporter, make_lead, lead_db):
        """Export is read-only."""
        make_lead()
        before = list(lead_db.history)

        exporter.export()

        assert lead_db.history == before


class TestExportFields:
    """Field list resolution."""

    def test_unknown_field_rejected(self, exporter):
        """Unknown columns are a ValidationError."""
        with pytest.raises(ValidationError, match="password"):
            exporter.resolve_fields(["fullName", "password"])

    def test_order_preserved_and_deduplicated(self, exporter):
        """Requested order is kept; repeats are dropped."""
        assert exporter.resolve_fields(["phone", "fullName", "full_name"]) == ["phone", "full_name"]

    def test_priority_on_request(self, exporter):
        """Priority is exportable though not a default column."""
        assert exporter.resolve_fields(["priority"]) == ["priority"]


class TestExportFilename:
    """Suggested download name."""

    def test_plain(self, exporter, monkeypatch):
        """Unfiltered exports are stamped with the local date."""
        monkeypatch.setattr(
            "core.services.csv_export.now_utc",
            lambda: datetime(2024, 1, 15, 20, 0, tzinfo=timezone.utc),
        )
        assert exporter.filename(LeadFilter()) == "buyers_export_2024-01-16.csv"

    def test_filtered(self, exporter):
        """Filtered exports say so."""
        assert exporter.filename(LeadFilter(search="asha")).endswith("_filtered.csv")

    def test_prefix_configurable(self, lead_service, normalizer):
        """The prefix comes from config."""
        exporter = LeadExporter(lead_service, normalizer, LeadsConfig(export_filename_prefix="leads"))
        assert exporter.filename(LeadFilter()).startswith("leads_")
