"""Pluggable field comparators for claimed-vs-official identity fields.

Each comparator implements ``compare(claimed, official) -> bool`` so matching
strictness can be swapped without touching the evaluator or state machine.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

_PUNCTUATION = re.compile(r"[.,'\-_/]+")
_WHITESPACE = re.compile(r"\s+")
_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%Y/%m/%d")


class FieldComparator(Protocol):
    """Strategy interface for comparing one identity field."""

    def compare(self, claimed: Any, official: Any) -> bool: ...


def normalize_text(value: str | None) -> str:
    """Lowercase, trim and collapse internal whitespace."""
    if not value:
        return ""
    return _WHITESPACE.sub(" ", str(value).strip().lower())


def normalize_name(value: str | None) -> str:
    """``normalize_text`` plus punctuation folded to spaces (``R.K. Sharma`` → ``r k sharma``)."""
    return normalize_text(_PUNCTUATION.sub(" ", value or ""))


def levenshtein_distance(a: str, b: str) -> int:
    """Classic edit distance with a rolling row."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i]
        for j, cb in enumerate(b, start=1):
            cost = 0 if ca == cb else 1
            current.append(min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost))
        previous = current
    return previous[-1]


def similarity(a: str, b: str) -> float:
    """Normalized edit similarity in [0, 1]."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return 1.0 - levenshtein_distance(a, b) / max(len(a), len(b))


class NormalizedComparator:
    """Case- and whitespace-insensitive equality. Empty values never match."""

    def compare(self, claimed: Any, official: Any) -> bool:
        left = normalize_text(claimed)
        return bool(left) and left == normalize_text(official)


class FuzzyNameComparator:
    """Name comparison tolerant of formatting differences.

    Matches when the normalized names are equal, when one name's tokens are a
    subset of the other's (omitted middle name, at least two tokens shared), or
    when edit similarity reaches ``threshold``.
    """

    def __init__(self, threshold: float = 0.8) -> None:
        self.threshold = threshold

    def compare(self, claimed: Any, official: Any) -> bool:
        left = normalize_name(claimed)
        right = normalize_name(official)
        if not left or not right:
            return False
        if left == right:
            return True

        left_tokens = set(left.split())
        right_tokens = set(right.split())
        smaller, larger = sorted((left_tokens, right_tokens), key=len)
        if len(smaller) >= 2 and smaller <= larger:
            return True

        return similarity(left, right) >= self.threshold


def coerce_date(value: Any) -> date | None:
    """Parse a date from a ``date``, ``datetime`` or common string format."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text[:10], fmt).date()
        except ValueError:
            continue
    return None


class DateComparator:
    """Calendar-date equality across representations. Unparseable values never match."""

    def compare(self, claimed: Any, official: Any) -> bool:
        left = coerce_date(claimed)
        return left is not None and left == coerce_date(official)


@dataclass(frozen=True)
class AddressParts:
    state: str | None = None
    district: str | None = None
    city: str | None = None


class AddressComparator:
    """State/district/city comparison by agreement ratio.

    Only fields present on both sides are compared. With nothing comparable
    the address is not held against the registrant.
    """

    def __init__(self, required_ratio: float = 0.66) -> None:
        self.required_ratio = required_ratio
        self._field = NormalizedComparator()

    def compare(self, claimed: AddressParts, official: AddressParts) -> bool:
        compared = 0
        agreed = 0
        for name in ("state", "district", "city"):
            left = getattr(claimed, name)
            right = getattr(official, name)
            if not normalize_text(left) or not normalize_text(right):
                continue
            compared += 1
            if self._field.compare(left, right):
                agreed += 1
        if compared == 0:
            return True
        return agreed / compared >= self.required_ratio
