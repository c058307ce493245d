"""
Lead history construction.

Every successful mutation of a lead produces exactly one HistoryEntry, written
in the same transaction as the mutation itself. The entries are:
- Append-only (never modified; removed only with their lead)
- Principal-attributed (who made the change)
- Detailed (updates capture old and new values)
"""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from core.models import HistoryAction, HistoryEntry, Lead

# Never reported as a change; it moves on every write.
_EXCLUDED_FIELDS = {"updated_at"}


def compute_changes(
    old: dict[str, Any],
    new: dict[str, Any],
    exclude_fields: set[str] | None = None
) -> dict[str, dict[str, Any]]:
    """
    Compute changes between two lead states.

    Args:
        old: Previous state (JSON-mode dump)
        new: New state (JSON-mode dump)
        exclude_fields: Fields to ignore (defaults to {"updated_at"})

    Returns:
        Dict of {field: {"old": old_val, "new": new_val}} for changed fields.
        Empty dict if no changes.
    """
    exclude = exclude_fields or _EXCLUDED_FIELDS
    changes = {}

    for key in sorted(set(old.keys()) | set(new.keys())):
        if key in exclude:
            continue

        old_val = old.get(key)
        new_val = new.get(key)

        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}

    return changes


def describe_changes(changes: dict[str, dict[str, Any]]) -> str:
    """One-line summary of an update, e.g. 'Updated notes, status'."""
    if not changes:
        return "Saved with no field changes"
    return "Updated " + ", ".join(name.replace("_", " ") for name in changes)


def creation_entry(
    lead_id: UUID,
    changed_by: UUID,
    changed_at: datetime,
    full_name: str,
    phone: str,
    imported: bool = False,
) -> HistoryEntry:
    if imported:
        description = f"Imported buyer: {full_name} ({phone})"
    else:
        description = f"Created new buyer lead for {full_name}"
    return HistoryEntry(
        id=uuid4(),
        lead_id=lead_id,
        changed_by=changed_by,
        changed_at=changed_at,
        action=HistoryAction.CREATED,
        description=description,
    )


def update_entry(
    old: Lead,
    new_values: dict[str, Any],
    changed_by: UUID,
    changed_at: datetime,
) -> HistoryEntry:
    """History entry for an update of `old` to `new_values` (JSON-mode)."""
    before = old.model_dump(mode="json", include=set(new_values))
    changes = compute_changes(before, new_values)
    return HistoryEntry(
        id=uuid4(),
        lead_id=old.id,
        changed_by=changed_by,
        changed_at=changed_at,
        action=HistoryAction.UPDATED,
        description=describe_changes(changes),
        changes=changes,
    )
