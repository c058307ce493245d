"""
Record validator for buyer leads.

Turns an untyped field mapping (form body, CSV row) into a typed candidate
lead, or a ValidationError listing every field-level problem.

Order:
1. Enumerated fields are canonicalized by the EnumNormalizer.
2. Field constraints are checked by the pydantic models.
3. Cross-field rules run last, on the fully typed candidate.
"""

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from core.exceptions import FieldError, ValidationError
from core.models import BHK_REQUIRED_FOR, Lead, LeadCreate, LeadFilter, LeadUpdate
from core.normalizer import EnumNormalizer
from utils.timezone import parse_iso

logger = logging.getLogger(__name__)

# Fields canonicalized through the normalizer before type checks.
ENUM_FIELDS = (
    "city", "property_type", "bhk_requirement", "purpose",
    "possession_timeline", "lead_source", "status", "priority",
)

# Alternate spellings accepted for input keys.
FIELD_ALIASES = {
    "fullName": "full_name",
    "propertyType": "property_type",
    "bhk": "bhk_requirement",
    "bhkRequirement": "bhk_requirement",
    "budgetMin": "budget_min",
    "budgetMax": "budget_max",
    "possessionTimeline": "possession_timeline",
    "timeline": "possession_timeline",
    "specificRequirements": "specific_requirements",
    "leadSource": "lead_source",
    "source": "lead_source",
    "createdAt": "created_at",
    "updatedAt": "updated_at",
    "sortBy": "sort_by",
    "sortOrder": "sort_order",
    "ownerId": "owner_id",
}

_FILTER_ENUM_FIELDS = (
    "city", "property_type", "status", "priority", "lead_source", "possession_timeline",
)


def canonical_field_name(name: str) -> str:
    return FIELD_ALIASES.get(name, name)


def check_lead_rules(candidate: LeadCreate) -> list[FieldError]:
    """Cross-field rules for a typed candidate. Empty list means valid."""
    errors = []

    if (
        candidate.budget_min is not None
        and candidate.budget_max is not None
        and candidate.budget_max < candidate.budget_min
    ):
        errors.append(FieldError(
            "budget_max",
            "Maximum budget must be greater than or equal to minimum budget",
        ))

    if candidate.property_type in BHK_REQUIRED_FOR and not candidate.bhk_requirement:
        errors.append(FieldError(
            "bhk_requirement",
            "BHK is required for Apartment or Villa",
        ))

    return errors


def field_errors_from_pydantic(exc: PydanticValidationError) -> list[FieldError]:
    """Flatten pydantic errors into (field, message) pairs."""
    errors = []
    for err in exc.errors():
        loc = err.get("loc") or ()
        field = str(loc[0]) if loc else "general"
        message = err.get("msg", "Invalid value")
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        errors.append(FieldError(field, message))
    return errors


def parse_version(value: Any, field: str = "updated_at") -> datetime:
    """Parse a client-supplied version token (ISO 8601 with offset)."""
    if isinstance(value, datetime):
        if value.tzinfo is None:
            raise ValidationError.single(field, "Version timestamp must include a timezone")
        return value
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError.single(field, "Version timestamp is required")
    try:
        return parse_iso(str(value).strip())
    except ValueError as e:
        raise ValidationError.single(field, f"Invalid version timestamp: {e}")


class LeadValidator:
    """Validate raw lead input into typed candidates."""

    def __init__(self, normalizer: EnumNormalizer):
        self.normalizer = normalizer

    def validate(self, raw: Mapping[str, Any]) -> LeadCreate:
        """
        Validate a complete lead record.

        Raises:
            ValidationError: With one FieldError per problem found
        """
        data = self._rename(raw)
        errors = self._canonicalize(data)
        candidate = self._construct(LeadCreate, data, errors)

        errors.extend(check_lead_rules(candidate))
        if errors:
            raise ValidationError(errors)
        return candidate

    def validate_patch(self, raw: Mapping[str, Any]) -> LeadUpdate:
        """Validate a partial update. Cross-field rules run on apply_patch()."""
        data = self._rename(raw)
        data.pop("updated_at", None)
        unknown = sorted(set(data) - set(LeadUpdate.model_fields))
        if unknown:
            logger.warning(f"Ignoring unknown update fields: {', '.join(unknown)}")
        errors = self._canonicalize(data, clearing_allowed=False)
        return self._construct(LeadUpdate, data, errors)

    def apply_patch(self, current: Lead, patch: LeadUpdate) -> LeadCreate:
        """
        Merge a patch onto the stored lead and re-check the result.

        Raises:
            ValidationError: If the merged record breaks a cross-field rule
        """
        merged = current.model_dump(include=set(LeadCreate.model_fields))
        merged.update(patch.model_dump(exclude_unset=True))

        try:
            candidate = LeadCreate.model_validate(merged)
        except PydanticValidationError as e:
            raise ValidationError(field_errors_from_pydantic(e))

        errors = check_lead_rules(candidate)
        if errors:
            raise ValidationError(errors)
        return candidate

    def validate_filter(self, raw: Mapping[str, Any]) -> LeadFilter:
        """Build listing criteria. Blank values and 'all' mean no filter."""
        data = {}
        for key, value in self._rename(raw).items():
            if value is None:
                continue
            if isinstance(value, str) and (not value.strip() or value.strip().lower() == "all"):
                continue
            data[key] = value

        errors = []
        for name in _FILTER_ENUM_FIELDS:
            if name in data:
                try:
                    data[name] = self.normalizer.to_canonical(data[name], name, strict=True)
                except ValidationError as e:
                    errors.extend(e.errors)
                    del data[name]
        return self._construct(LeadFilter, data, errors)

    def _rename(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        return {canonical_field_name(str(k)): v for k, v in raw.items()}

    def _canonicalize(
        self,
        data: dict[str, Any],
        clearing_allowed: bool = True,
    ) -> list[FieldError]:
        """
        Canonicalize enum fields in place; collect unknown values.

        Blank values mean "not given" for a new record. In a patch they would
        clear a required field, which is an error; only the BHK may be cleared.
        """
        errors = []
        for name in ENUM_FIELDS:
            if name not in data:
                continue
            value = data[name]
            if value is None or (isinstance(value, str) and not value.strip()):
                if name == "bhk_requirement":
                    data[name] = None
                elif not clearing_allowed:
                    label = name.replace("_", " ").capitalize()
                    errors.append(FieldError(name, f"{label} cannot be cleared"))
                    del data[name]
                else:
                    del data[name]
                continue
            try:
                data[name] = self.normalizer.to_canonical(value, name)
            except ValidationError as e:
                errors.extend(e.errors)
                del data[name]
        return errors

    def _construct(
        self,
        model: type[BaseModel],
        data: dict[str, Any],
        errors: list[FieldError],
    ):
        """Run pydantic; merge its errors with those already collected."""
        already = {e.field for e in errors}
        try:
            candidate = model.model_validate(data)
        except PydanticValidationError as e:
            errors.extend(
                fe for fe in field_errors_from_pydantic(e) if fe.field not in already
            )
            raise ValidationError(errors)

        if errors:
            raise ValidationError(errors)
        return candidate


def error_rows(errors: Iterable[FieldError]) -> list[dict[str, str]]:
    return [e.as_dict() for e in errors]
