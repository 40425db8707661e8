"""Claimed identity vs. official roll record evaluation.

Produces a per-field comparison so callers can route mismatches to manual
review instead of relying on a single aggregate boolean.
"""

import uuid
from dataclasses import dataclass, field
from datetime import date
from enum import StrEnum
from typing import Any, Protocol

from evote_api.lib.roll_matcher.comparators import (
    AddressComparator,
    AddressParts,
    DateComparator,
    FieldComparator,
    FuzzyNameComparator,
    normalize_text,
)

# Display weights for match_score; they do not drive the verified decision.
FIELD_WEIGHTS: dict[str, float] = {
    "name": 0.30,
    "dob": 0.25,
    "father_name": 0.25,
    "address": 0.20,
}

PARTIAL_MATCH_SCORE = 0.5

MSG_VERIFIED = "Electoral roll verified successfully. All data matches official records."
MSG_PARTIAL = "Partial match with electoral roll. Manual review required for verification."
MSG_MISMATCH = "Data mismatch with electoral roll. Manual review required."
MSG_NOT_FOUND = (
    "Your data is not registered in the voter list. You may not generate your voter ID till now."
)
MSG_NO_ID = "No Aadhaar or EPIC number provided for verification."


class RollMatchOutcome(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    VERIFIED = "VERIFIED"
    MISMATCH = "MISMATCH"


class RollEntry(Protocol):
    """Attributes read from an official roll record."""

    id: uuid.UUID
    full_name: str
    father_name: str | None
    dob: date | None
    address_state: str | None
    address_district: str | None
    address_city: str | None


@dataclass
class ClaimedIdentity:
    """Identity attributes a registrant asserts about themselves."""

    first_name: str
    last_name: str
    dob: date | str | None = None
    father_name: str | None = None
    state: str | None = None
    district: str | None = None
    city: str | None = None
    aadhaar_number: str | None = None
    epic_number: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def has_id_number(self) -> bool:
        return bool(normalize_text(self.aadhaar_number) or normalize_text(self.epic_number))


@dataclass
class RollComparison:
    """Result of comparing a claimed identity against the roll."""

    found: bool
    verified: bool
    match_score: float
    message: str
    name_match: bool = False
    dob_match: bool = False
    father_name_match: bool = False
    address_match: bool = False
    record_id: uuid.UUID | None = None
    fields: dict[str, bool] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.fields = {
            "name": self.name_match,
            "dob": self.dob_match,
            "father_name": self.father_name_match,
            "address": self.address_match,
        }

    @classmethod
    def not_found(cls, message: str = MSG_NOT_FOUND) -> "RollComparison":
        return cls(found=False, verified=False, match_score=0.0, message=message)

    @property
    def outcome(self) -> RollMatchOutcome:
        if not self.found:
            return RollMatchOutcome.NOT_FOUND
        return RollMatchOutcome.VERIFIED if self.verified else RollMatchOutcome.MISMATCH

    @property
    def mismatched_fields(self) -> list[str]:
        """Names of the fields that disagree (empty when not found)."""
        if not self.found:
            return []
        return [name for name, matched in self.fields.items() if not matched]

    def to_dict(self) -> dict[str, Any]:
        return {
            "found": self.found,
            "verified": self.verified,
            "outcome": self.outcome.value,
            "match_score": self.match_score,
            "message": self.message,
            "name_match": self.name_match,
            "dob_match": self.dob_match,
            "father_name_match": self.father_name_match,
            "address_match": self.address_match,
            "mismatched_fields": self.mismatched_fields,
            "record_id": str(self.record_id) if self.record_id else None,
        }


class RollMatchEvaluator:
    """Compares a ``ClaimedIdentity`` against a roll record field by field.

    Comparators are injectable so matching strictness can be tuned without
    touching the verification state machine.

    Args:
        name_comparator: Comparator for the full name.
        dob_comparator: Comparator for date of birth.
        father_name_comparator: Comparator for the father's name.
        address_comparator: Comparator for state/district/city.
        name_similarity_threshold: Threshold for the default fuzzy comparators.
        address_match_ratio: Required agreement ratio for the default address comparator.
    """

    def __init__(
        self,
        name_comparator: FieldComparator | None = None,
        dob_comparator: FieldComparator | None = None,
        father_name_comparator: FieldComparator | None = None,
        address_comparator: FieldComparator | None = None,
        *,
        name_similarity_threshold: float = 0.8,
        address_match_ratio: float = 0.66,
    ) -> None:
        self.name_comparator = name_comparator or FuzzyNameComparator(name_similarity_threshold)
        self.dob_comparator = dob_comparator or DateComparator()
        self.father_name_comparator = father_name_comparator or FuzzyNameComparator(name_similarity_threshold)
        self.address_comparator = address_comparator or AddressComparator(address_match_ratio)

    def evaluate(self, claims: ClaimedIdentity, record: RollEntry | None) -> RollComparison:
        """Classify ``claims`` against ``record``.

        Args:
            claims: The registrant's claimed attributes.
            record: The roll record selected by ID-number lookup, or None.

        Returns:
            A RollComparison. ``verified`` is true only when every field agrees.
        """
        if not claims.has_id_number:
            return RollComparison.not_found(MSG_NO_ID)
        if record is None:
            return RollComparison.not_found()

        name_match = self.name_comparator.compare(claims.full_name, record.full_name)
        dob_match = self.dob_comparator.compare(claims.dob, record.dob)

        # A registrant who leaves father's name blank is not penalised.
        if normalize_text(claims.father_name):
            father_name_match = self.father_name_comparator.compare(claims.father_name, record.father_name)
        else:
            father_name_match = True

        address_match = self.address_comparator.compare(
            AddressParts(claims.state, claims.district, claims.city),
            AddressParts(record.address_state, record.address_district, record.address_city),
        )

        results = {
            "name": name_match,
            "dob": dob_match,
            "father_name": father_name_match,
            "address": address_match,
        }
        score = round(sum(FIELD_WEIGHTS[name] for name, ok in results.items() if ok), 2)
        verified = all(results.values())

        if verified:
            message = MSG_VERIFIED
        elif score >= PARTIAL_MATCH_SCORE:
            message = MSG_PARTIAL
        else:
            message = MSG_MISMATCH

        return RollComparison(
            found=True,
            verified=verified,
            match_score=score,
            message=message,
            name_match=name_match,
            dob_match=dob_match,
            father_name_match=father_name_match,
            address_match=address_match,
            record_id=record.id,
        )
