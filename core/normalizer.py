"""
Enumeration normalizer.

Translates enumerated lead fields between the labels people type or read
("Chandigarh", "2 BHK", "0-3 months") and the canonical codes stored in the
database (CHANDIGARH, Two, WITHIN_3_MONTHS).

Vocabularies are immutable and injected, so a deployment can swap in its own
labels without touching the normalizer.

Some mappings are deliberately many-to-one. "Office" and "Retail" both
canonicalize to COMMERCIAL, and "Walk-in" canonicalizes to OTHER. Converting
such a label to canonical and back yields the primary label ("Commercial",
"Other"), not the one originally supplied. Canonical -> display -> canonical
is always the identity.
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from core.exceptions import ValidationError


@dataclass(frozen=True)
class Vocabulary:
    """
    Label table for one enumerated field.

    Args:
        label: Human name of the field, used in error messages
        display: Canonical code -> primary display label
        aliases: Additional accepted labels -> canonical code
        default: Canonical value substituted when bulk input leaves it blank
        strict: Reject unknown input (True) or pass it through unchanged
    """

    label: str
    display: Mapping[str, str]
    aliases: Mapping[str, str] = field(default_factory=dict)
    default: str | None = None
    strict: bool = True

    def __post_init__(self):
        object.__setattr__(self, "display", MappingProxyType(dict(self.display)))
        object.__setattr__(self, "aliases", MappingProxyType(dict(self.aliases)))

        lookup: dict[str, str] = {}
        for code, label in self.display.items():
            lookup.setdefault(label, code)
        for code in self.display:
            lookup.setdefault(code, code)
        for label, code in self.aliases.items():
            if code not in self.display:
                raise ValueError(f"Alias '{label}' maps to unknown code '{code}'")
            lookup.setdefault(label, code)
        object.__setattr__(self, "_lookup", MappingProxyType(lookup))

    @property
    def lookup(self) -> Mapping[str, str]:
        """Every accepted input string -> canonical code."""
        return self._lookup

    @property
    def codes(self) -> tuple[str, ...]:
        return tuple(self.display)


DEFAULT_VOCABULARIES: Mapping[str, Vocabulary] = MappingProxyType({
    "city": Vocabulary(
        label="city",
        display={
            "CHANDIGARH": "Chandigarh",
            "MOHALI": "Mohali",
            "ZIRAKPUR": "Zirakpur",
            "PANCHKULA": "Panchkula",
            "OTHER": "Other",
        },
        default="OTHER",
    ),
    "property_type": Vocabulary(
        label="property type",
        display={
            "APARTMENT": "Apartment",
            "INDEPENDENT_HOUSE": "Independent House",
            "VILLA": "Villa",
            "PLOT": "Plot",
            "COMMERCIAL": "Commercial",
        },
        aliases={
            "Office": "COMMERCIAL",
            "Retail": "COMMERCIAL",
            "House": "INDEPENDENT_HOUSE",
        },
        default="APARTMENT",
    ),
    "bhk_requirement": Vocabulary(
        label="BHK",
        display={
            "Studio": "Studio",
            "One": "1 BHK",
            "Two": "2 BHK",
            "Three": "3 BHK",
            "Four": "4 BHK",
        },
        aliases={
            "1": "One", "2": "Two", "3": "Three", "4": "Four",
            "1BHK": "One", "2BHK": "Two", "3BHK": "Three", "4BHK": "Four",
        },
        strict=False,
    ),
    "purpose": Vocabulary(
        label="purpose",
        display={"BUY": "Buy", "RENT": "Rent"},
        default="BUY",
    ),
    "possession_timeline": Vocabulary(
        label="possession timeline",
        display={
            "IMMEDIATE": "Immediate",
            "WITHIN_3_MONTHS": "0-3 months",
            "WITHIN_6_MONTHS": "3-6 months",
            "WITHIN_1_YEAR": "6+ months",
            "AFTER_1_YEAR": "Exploring",
        },
        aliases={
            "0-3m": "WITHIN_3_MONTHS",
            "3-6m": "WITHIN_6_MONTHS",
            ">6m": "WITHIN_1_YEAR",
            "Within 3 Months": "WITHIN_3_MONTHS",
            "Within 6 Months": "WITHIN_6_MONTHS",
            "Within 1 Year": "WITHIN_1_YEAR",
            "After 1 Year": "AFTER_1_YEAR",
        },
        default="WITHIN_1_YEAR",
    ),
    "lead_source": Vocabulary(
        label="lead source",
        display={
            "WEBSITE": "Website",
            "SOCIAL_MEDIA": "Social Media",
            "REFERRAL": "Referral",
            "ADVERTISEMENT": "Advertisement",
            "COLD_CALL": "Cold Call",
            "EMAIL_CAMPAIGN": "Email Campaign",
            "TRADE_SHOW": "Trade Show",
            "OTHER": "Other",
        },
        aliases={
            "Walk-in": "OTHER",
            "WalkIn": "OTHER",
            "Call": "COLD_CALL",
        },
        default="OTHER",
    ),
    "status": Vocabulary(
        label="status",
        display={
            "NEW": "New",
            "CONTACTED": "Contacted",
            "INTERESTED": "Interested",
            "NOT_INTERESTED": "Not Interested",
            "CONVERTED": "Converted",
        },
        default="NEW",
    ),
    "priority": Vocabulary(
        label="priority",
        display={
            "LOW": "Low",
            "MEDIUM": "Medium",
            "HIGH": "High",
            "URGENT": "Urgent",
        },
        default="MEDIUM",
    ),
})


def _as_text(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    return str(value)


class EnumNormalizer:
    """Bidirectional display <-> canonical conversion for enumerated fields."""

    def __init__(self, vocabularies: Mapping[str, Vocabulary] = DEFAULT_VOCABULARIES):
        self._vocabularies = MappingProxyType(dict(vocabularies))

    @property
    def fields(self) -> tuple[str, ...]:
        return tuple(self._vocabularies)

    def vocabulary(self, field: str) -> Vocabulary:
        try:
            return self._vocabularies[field]
        except KeyError:
            raise KeyError(f"No vocabulary for field '{field}'")

    def accepted_values(self, field: str) -> list[str]:
        return list(self.vocabulary(field).lookup)

    def to_canonical(self, value: Any, field: str, strict: bool | None = None) -> Any:
        """
        Canonical code for a display label or code.

        Exact match first, then a case-insensitive match. Unmatched input is
        returned unchanged for lenient fields and raises ValidationError for
        strict ones. Blank input returns None.

        Args:
            value: Label, code or enum member
            field: Field name (e.g. "city")
            strict: Override the vocabulary's own strictness
        """
        if value is None:
            return None

        vocab = self.vocabulary(field)
        text = _as_text(value).strip()
        if not text:
            return None

        lookup = vocab.lookup
        if text in lookup:
            return lookup[text]

        folded = text.casefold()
        for label, code in lookup.items():
            if label.casefold() == folded:
                return code

        if vocab.strict if strict is None else strict:
            raise ValidationError.single(
                field,
                f"Invalid {vocab.label}: {text}. "
                f"Expected one of: {', '.join(lookup)}",
            )
        return value

    def to_display(self, value: Any, field: str) -> str:
        """Primary display label for a canonical code; unknown codes pass through."""
        if value is None:
            return ""
        text = _as_text(value)
        return self.vocabulary(field).display.get(text, text)

    def default_for(self, field: str) -> str | None:
        return self.vocabulary(field).default

    def with_defaults(self, row: Mapping[str, Any]) -> dict[str, Any]:
        """Copy of row with blank or missing defaultable fields filled in."""
        filled = dict(row)
        for name, vocab in self._vocabularies.items():
            if vocab.default is None:
                continue
            value = filled.get(name)
            if value is None or (isinstance(value, str) and not value.strip()):
                filled[name] = vocab.default
        return filled
