"""
Delimited-text helpers for lead import and export.

Column headers are accepted as internal names (full_name), camelCase names
(fullName) or the human labels used in exports (Full Name). All three resolve
to the same internal field name.
"""

import csv
import io
from typing import Iterable, Sequence

from core.validation import FIELD_ALIASES

# Export column labels, in default export order.
FIELD_LABELS = {
    "full_name": "Full Name",
    "email": "Email",
    "phone": "Phone",
    "city": "City",
    "property_type": "Property Type",
    "bhk_requirement": "BHK",
    "purpose": "Purpose",
    "budget_min": "Budget Min",
    "budget_max": "Budget Max",
    "possession_timeline": "Timeline",
    "specific_requirements": "Requirements",
    "lead_source": "Lead Source",
    "status": "Status",
    "notes": "Notes",
    "created_at": "Created Date",
    "updated_at": "Updated Date",
}

# Exportable on request, not part of the default column set.
OPTIONAL_LABELS = {
    "priority": "Priority",
}

DEFAULT_EXPORT_FIELDS = tuple(FIELD_LABELS)

_EXTRA_HEADERS = {
    "possession timeline": "possession_timeline",
    "specific requirements": "specific_requirements",
    "source": "lead_source",
    "name": "full_name",
}


def _build_header_lookup() -> dict[str, str]:
    lookup = {}
    for name, label in {**FIELD_LABELS, **OPTIONAL_LABELS}.items():
        lookup[name.casefold()] = name
        lookup[label.casefold()] = name
    for alias, name in FIELD_ALIASES.items():
        lookup[alias.casefold()] = name
    lookup.update(_EXTRA_HEADERS)
    return lookup


HEADER_LOOKUP = _build_header_lookup()

IMPORT_TEMPLATE_HEADER = (
    "fullName", "email", "phone", "city", "propertyType", "bhk", "purpose",
    "budgetMin", "budgetMax", "possessionTimeline", "specificRequirements",
    "leadSource", "notes",
)

IMPORT_TEMPLATE_ROWS = (
    (
        "John Doe", "john@example.com", "9876543210", "Chandigarh", "Apartment",
        "Two", "Buy", "5000000", "7000000", "WITHIN_3_MONTHS",
        "Near metro station", "WEBSITE", "Looking for 2BHK apartment",
    ),
    (
        "Jane Smith", "jane@example.com", "9876543211", "Mohali", "Villa",
        "Three", "Buy", "8000000", "12000000", "WITHIN_6_MONTHS",
        "With garden", "REFERRAL", "Interested in independent villa",
    ),
)


def resolve_header(header: str) -> str:
    """Internal field name for a column header. Unknown headers pass through."""
    text = header.strip()
    return HEADER_LOOKUP.get(text.casefold(), text)


def parse_csv(text: str) -> tuple[list[str], list[tuple[int, list[str]]]]:
    """
    Split CSV text into its header and numbered data records.

    Blank records are skipped. Record numbers are 1-based and count the
    header, so the first data record is 2.

    Returns:
        (header, [(row_number, cells), ...]). Header is empty for empty input.
    """
    reader = csv.reader(io.StringIO(text))
    records = [cells for cells in reader if any(cell.strip() for cell in cells)]
    if not records:
        return [], []

    header = [cell.strip() for cell in records[0]]
    return header, [(index + 2, cells) for index, cells in enumerate(records[1:])]


def write_csv(header: Sequence[str], rows: Iterable[Sequence[str]]) -> str:
    """Serialize rows. Values with a comma, quote or line break are quoted."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue()


def import_template() -> str:
    """Example import file: canonical headers and two complete rows."""
    return write_csv(IMPORT_TEMPLATE_HEADER, IMPORT_TEMPLATE_ROWS)
