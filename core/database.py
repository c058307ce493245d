"""Database operations for leads and their history.

Writes that touch a lead and its history run in one transaction: a lead row
never changes without its history entry, and vice versa.
"""

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from psycopg2.extras import Json

from clients.postgres_client import PostgresClient
from core.models import HistoryEntry, Lead, LeadFilter, LeadStatus, SORTABLE_COLUMNS

logger = logging.getLogger(__name__)

# Columns a caller may write. id, owner_id and timestamps are managed here.
LEAD_COLUMNS = (
    "full_name", "email", "phone", "city", "property_type", "bhk_requirement",
    "purpose", "budget_min", "budget_max", "possession_timeline",
    "specific_requirements", "lead_source", "status", "priority", "notes",
)

_EXACT_FILTERS = (
    "city", "property_type", "status", "priority", "lead_source", "possession_timeline",
)


def _like_pattern(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


def build_where(criteria: LeadFilter) -> tuple[str, list[Any]]:
    """WHERE clause (without the keyword) and its parameters."""
    clauses = []
    params: list[Any] = []

    if criteria.search:
        pattern = _like_pattern(criteria.search.strip())
        clauses.append("(full_name ILIKE %s OR email ILIKE %s OR phone LIKE %s)")
        params.extend([pattern, pattern, pattern])

    for name in _EXACT_FILTERS:
        value = getattr(criteria, name)
        if value is not None:
            clauses.append(f"{name} = %s")
            params.append(value.value)

    if criteria.owner_id is not None:
        clauses.append("owner_id = %s")
        params.append(criteria.owner_id)

    return (" AND ".join(clauses) or "TRUE"), params


def build_order_by(criteria: LeadFilter) -> str:
    if criteria.sort_by not in SORTABLE_COLUMNS:
        raise ValueError(f"Cannot sort by '{criteria.sort_by}'")
    direction = "ASC" if criteria.sort_order == "asc" else "DESC"
    return f"{criteria.sort_by} {direction}, id {direction}"


class LeadDatabase:
    """Lead and history persistence on PostgreSQL."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_lead(self, lead_id: UUID) -> Lead | None:
        row = self._db.execute_single("SELECT * FROM leads WHERE id = %s", (lead_id,))
        if row is None:
            return None
        return Lead.model_validate(row)

    def insert_lead(
        self,
        lead_id: UUID,
        owner_id: UUID,
        values: dict[str, Any],
        created_at: datetime,
        history: HistoryEntry,
    ) -> Lead:
        """Insert a lead and its 'created' history entry atomically."""
        columns = ["id", "owner_id", *LEAD_COLUMNS, "created_at", "updated_at"]
        params = [lead_id, owner_id, *(values.get(c) for c in LEAD_COLUMNS), created_at, created_at]

        with self._db.transaction() as cur:
            cur.execute(
                f"""
                INSERT INTO leads ({', '.join(columns)})
                VALUES ({', '.join(['%s'] * len(columns))})
                RETURNING *
                """,
                tuple(params),
            )
            row = cur.fetchone()
            self._insert_history(cur, history)

        return Lead.model_validate(dict(row))

    def update_lead(
        self,
        lead_id: UUID,
        values: dict[str, Any],
        expected_version: datetime,
        new_version: datetime,
        history: HistoryEntry,
    ) -> Lead | None:
        """
        Compare-and-swap update.

        Applies `values` only if the stored updated_at still equals
        expected_version, then appends the history entry in the same
        transaction.

        Returns:
            Updated lead, or None if the lead is gone or its version moved.
        """
        unknown = set(values) - set(LEAD_COLUMNS)
        if unknown:
            raise ValueError(f"Not updatable: {', '.join(sorted(unknown))}")

        set_parts = [f"{name} = %s" for name in values]
        params = [*values.values(), new_version, lead_id, expected_version]

        with self._db.transaction() as cur:
            cur.execute(
                f"""
                UPDATE leads
                SET {', '.join([*set_parts, 'updated_at = %s'])}
                WHERE id = %s AND updated_at = %s
                RETURNING *
                """,
                tuple(params),
            )
            row = cur.fetchone()
            if row is None:
                return None
            self._insert_history(cur, history)

        return Lead.model_validate(dict(row))

    def delete_lead(self, lead_id: UUID, expected_version: datetime | None = None) -> bool:
        """
        Hard delete a lead. History goes with it (ON DELETE CASCADE).

        Returns:
            True if a row was deleted.
        """
        if expected_version is None:
            rows = self._db.execute_returning(
                "DELETE FROM leads WHERE id = %s RETURNING id",
                (lead_id,),
            )
        else:
            rows = self._db.execute_returning(
                "DELETE FROM leads WHERE id = %s AND updated_at = %s RETURNING id",
                (lead_id, expected_version),
            )
        return len(rows) > 0

    def list_leads(self, criteria: LeadFilter) -> tuple[list[Lead], int]:
        """One page of matching leads plus the total match count."""
        where, params = build_where(criteria)

        total = self._db.execute_scalar(
            f"SELECT COUNT(*) FROM leads WHERE {where}",
            tuple(params),
        )
        rows = self._db.execute(
            f"""
            SELECT * FROM leads
            WHERE {where}
            ORDER BY {build_order_by(criteria)}
            LIMIT %s OFFSET %s
            """,
            tuple([*params, criteria.limit, criteria.offset]),
        )
        return [Lead.model_validate(row) for row in rows], int(total or 0)

    def find_leads(self, criteria: LeadFilter) -> list[Lead]:
        """Every matching lead, ignoring page and limit."""
        where, params = build_where(criteria)
        rows = self._db.execute(
            f"""
            SELECT * FROM leads
            WHERE {where}
            ORDER BY {build_order_by(criteria)}
            """,
            tuple(params),
        )
        return [Lead.model_validate(row) for row in rows]

    def list_history(self, lead_id: UUID, limit: int) -> list[HistoryEntry]:
        """History for a lead, newest first."""
        rows = self._db.execute(
            """
            SELECT id, lead_id, changed_by, changed_at, action, description, changes
            FROM lead_history
            WHERE lead_id = %s
            ORDER BY changed_at DESC, id DESC
            LIMIT %s
            """,
            (lead_id, limit),
        )
        return [HistoryEntry.model_validate(row) for row in rows]

    def count_by_status(self, owner_id: UUID | None = None) -> dict[LeadStatus, int]:
        if owner_id is None:
            rows = self._db.execute("SELECT status, COUNT(*) AS n FROM leads GROUP BY status")
        else:
            rows = self._db.execute(
                "SELECT status, COUNT(*) AS n FROM leads WHERE owner_id = %s GROUP BY status",
                (owner_id,),
            )
        counts = {status: 0 for status in LeadStatus}
        for row in rows:
            counts[LeadStatus(row["status"])] = int(row["n"])
        return counts

    def _insert_history(self, cur, entry: HistoryEntry) -> None:
        cur.execute(
            """
            INSERT INTO lead_history (id, lead_id, changed_by, changed_at, action, description, changes)
            VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
            (
                entry.id,
                entry.lead_id,
                entry.changed_by,
                entry.changed_at,
                entry.action.value,
                entry.description,
                Json(entry.changes) if entry.changes is not None else None,
            ),
        )
