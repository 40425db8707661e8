"""Roll matching library: field comparators, evaluator and upload parsing.

Public API:
    - FieldComparator and built-in comparators
    - ClaimedIdentity / RollMatchEvaluator / RollComparison / RollMatchOutcome
    - parse_roll_file / parse_roll_dataframe: Authority upload parsing
"""

from evote_api.lib.roll_matcher.comparators import (
    AddressComparator,
    AddressParts,
    DateComparator,
    FieldComparator,
    FuzzyNameComparator,
    NormalizedComparator,
    coerce_date,
    normalize_name,
    normalize_text,
    similarity,
)
from evote_api.lib.roll_matcher.evaluator import (
    ClaimedIdentity,
    RollComparison,
    RollEntry,
    RollMatchEvaluator,
    RollMatchOutcome,
)
from evote_api.lib.roll_matcher.parser import parse_roll_dataframe, parse_roll_file

__all__ = [
    "AddressComparator",
    "AddressParts",
    "ClaimedIdentity",
    "DateComparator",
    "FieldComparator",
    "FuzzyNameComparator",
    "NormalizedComparator",
    "RollComparison",
    "RollEntry",
    "RollMatchEvaluator",
    "RollMatchOutcome",
    "coerce_date",
    "normalize_name",
    "normalize_text",
    "parse_roll_dataframe",
    "parse_roll_file",
    "similarity",
]
