"""
CSV import of buyer leads.

Each row is processed on its own: defaults, validation, then creation with a
per-row commit. A failing row is recorded and the import moves on, so one bad
row never blocks the rest. Already imported rows stay imported if a later row
fails.
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from core.config import LeadsConfig
from core.csv_io import parse_csv, resolve_header
from core.exceptions import ValidationError
from core.normalizer import EnumNormalizer
from core.services.lead_service import LeadService

logger = logging.getLogger(__name__)

ACCEPTED_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "text/plain",
}


class ImportRowError(BaseModel):
    """One problem with one row of an import."""

    row: int
    field: str
    message: str
    data: dict[str, str]


class ImportResult(BaseModel):
    """Outcome of an import: rows created, row problems, rows seen."""

    success: int = 0
    errors: list[ImportRowError] = Field(default_factory=list)
    total: int = 0


class LeadImporter:
    """Import leads from CSV uploads."""

    def __init__(
        self,
        service: LeadService,
        normalizer: EnumNormalizer,
        config: LeadsConfig | None = None,
    ):
        self.service = service
        self.normalizer = normalizer
        self.config = config or LeadsConfig()

    def import_csv(
        self,
        content: bytes,
        filename: str | None = None,
        content_type: str | None = None,
    ) -> ImportResult:
        """
        Import every data row of a CSV upload.

        Args:
            content: Raw file bytes
            filename: Uploaded file name
            content_type: Declared MIME type

        Returns:
            ImportResult with per-row errors, in row order

        Raises:
            ValidationError: If the upload as a whole is unacceptable
        """
        self._check_upload(content, filename, content_type)

        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError:
            raise ValidationError.single("file", "File must be UTF-8 encoded text")

        header, records = parse_csv(text)
        if not header:
            raise ValidationError.single("file", "CSV file is empty")
        if len(records) > self.config.max_import_rows:
            raise ValidationError.single(
                "file",
                f"Too many rows: {len(records)} (maximum {self.config.max_import_rows})",
            )

        fields = [resolve_header(h) for h in header]
        result = ImportResult()

        for row_number, cells in records:
            result.total += 1
            data = {h: (cells[i] if i < len(cells) else "") for i, h in enumerate(header)}

            if len(cells) != len(header):
                result.errors.append(ImportRowError(
                    row=row_number,
                    field="row",
                    message=(
                        f"Column count mismatch: expected {len(header)} values, "
                        f"got {len(cells)}"
                    ),
                    data=data,
                ))
                continue

            row = self.normalizer.with_defaults(dict(zip(fields, cells)))
            row_errors = self._import_row(row_number, row, data)
            if row_errors:
                result.errors.extend(row_errors)
            else:
                result.success += 1

        logger.info(
            f"Imported {result.success} of {result.total} rows "
            f"({len(result.errors)} errors)"
        )
        return result

    def _import_row(
        self,
        row_number: int,
        row: dict[str, Any],
        data: dict[str, str],
    ) -> list[ImportRowError]:
        """Create one lead. Returns the row's errors; empty on success."""
        try:
            self.service.create(row, imported=True)
        except ValidationError as e:
            logger.info(f"Import row {row_number} rejected: {', '.join(e.fields)}")
            return [
                ImportRowError(row=row_number, field=fe.field, message=fe.message, data=data)
                for fe in e.errors
            ]
        except Exception:
            logger.exception(f"Import row {row_number} failed")
            return [ImportRowError(
                row=row_number,
                field="general",
                message="Failed to import row",
                data=data,
            )]
        return []

    def _check_upload(
        self,
        content: bytes,
        filename: str | None,
        content_type: str | None,
    ) -> None:
        if not content:
            raise ValidationError.single("file", "No file uploaded or file is empty")

        is_csv_name = bool(filename) and filename.lower().endswith(".csv")
        declared = (content_type or "").split(";")[0].strip().lower()
        if not is_csv_name and declared not in ACCEPTED_CONTENT_TYPES:
            raise ValidationError.single("file", "File must be a CSV file")

        if len(content) > self.config.max_import_bytes:
            raise ValidationError.single(
                "file",
                f"File too large (maximum {self.config.max_import_bytes} bytes)",
            )
