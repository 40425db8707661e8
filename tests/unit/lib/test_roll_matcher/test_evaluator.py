"""Tests for claimed identity vs. roll record evaluation."""

import uuid
from dataclasses import dataclass
from datetime import date

import pytest

from evote_api.lib.roll_matcher import ClaimedIdentity, RollMatchEvaluator, RollMatchOutcome
from evote_api.lib.roll_matcher.evaluator import MSG_MISMATCH, MSG_NO_ID, MSG_NOT_FOUND, MSG_PARTIAL, MSG_VERIFIED


@dataclass
class _Record:
    id: uuid.UUID
    full_name: str | None = "Asha Kumar"
    father_name: str | None = "Ramesh Kumar"
    dob: date | None = date(1990, 5, 14)
    address_state: str | None = "Karnataka"
    address_district: str | None = "Bengaluru Urban"
    address_city: str | None = "Bengaluru"


def _claims(**overrides: object) -> ClaimedIdentity:
    fields: dict = {
        "first_name": "Asha",
        "last_name": "Kumar",
        "dob": date(1990, 5, 14),
        "father_name": "Ramesh Kumar",
        "state": "Karnataka",
        "district": "Bengaluru Urban",
        "city": "Bengaluru",
        "aadhaar_number": "123456789012",
    }
    fields.update(overrides)
    return ClaimedIdentity(**fields)


@pytest.fixture
def record() -> _Record:
    return _Record(id=uuid.uuid4())


class TestRollMatchEvaluator:
    """Tests for RollMatchEvaluator.evaluate."""

    evaluator = RollMatchEvaluator()

    def test_all_fields_agree(self, record: _Record) -> None:
        result = self.evaluator.evaluate(_claims(), record)
        assert result.found is True
        assert result.verified is True
        assert result.outcome is RollMatchOutcome.VERIFIED
        assert result.match_score == 1.0
        assert result.message == MSG_VERIFIED
        assert result.record_id == record.id
        assert result.mismatched_fields == []

    def test_no_record_is_not_found(self) -> None:
        result = self.evaluator.evaluate(_claims(), None)
        assert result.outcome is RollMatchOutcome.NOT_FOUND
        assert result.message == MSG_NOT_FOUND
        assert result.match_score == 0.0

    def test_no_id_numbers_is_not_found_without_lookup(self, record: _Record) -> None:
        result = self.evaluator.evaluate(_claims(aadhaar_number=None, epic_number=" "), record)
        assert result.outcome is RollMatchOutcome.NOT_FOUND
        assert result.message == MSG_NO_ID

    def test_dob_mismatch_is_partial(self, record: _Record) -> None:
        result = self.evaluator.evaluate(_claims(dob=date(1991, 5, 14)), record)
        assert result.verified is False
        assert result.outcome is RollMatchOutcome.MISMATCH
        assert result.dob_match is False
        assert result.match_score == 0.75
        assert result.message == MSG_PARTIAL
        assert result.mismatched_fields == ["dob"]

    def test_high_score_is_still_not_verified(self, record: _Record) -> None:
        # 80 points without the father's name; every field must agree
        result = self.evaluator.evaluate(_claims(father_name="Suresh Iyer"), record)
        assert result.verified is False
        assert result.match_score == 0.75

    def test_mostly_wrong_is_mismatch(self, record: _Record) -> None:
        result = self.evaluator.evaluate(
            _claims(first_name="Priya", last_name="Nair", dob=date(1985, 1, 1), father_name="Suresh Iyer"),
            record,
        )
        assert result.message == MSG_MISMATCH
        assert result.match_score == 0.2
        assert set(result.mismatched_fields) == {"name", "dob", "father_name"}

    def test_blank_father_name_is_not_penalised(self, record: _Record) -> None:
        result = self.evaluator.evaluate(_claims(father_name=None), record)
        assert result.father_name_match is True
        assert result.verified is True

    def test_dob_as_string(self, record: _Record) -> None:
        assert self.evaluator.evaluate(_claims(dob="14/05/1990"), record).dob_match is True

    def test_custom_comparator(self, record: _Record) -> None:
        class _Strict:
            def compare(self, claimed: object, official: object) -> bool:
                return claimed == official

        evaluator = RollMatchEvaluator(name_comparator=_Strict())
        result = evaluator.evaluate(_claims(first_name="ASHA"), record)
        assert result.name_match is False

    def test_to_dict(self, record: _Record) -> None:
        data = self.evaluator.evaluate(_claims(), record).to_dict()
        assert data["outcome"] == "VERIFIED"
        assert data["record_id"] == str(record.id)
        assert data["mismatched_fields"] == []
