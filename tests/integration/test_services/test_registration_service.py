"""Integration tests for the registration pipeline against SQLite."""

import asyncio
from collections.abc import Callable
from datetime import date
from types import SimpleNamespace
from typing import Any
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings
from evote_api.core.events import VOTER_REGISTERED, ChangeFeed
from evote_api.core.security import verify_password
from evote_api.lib.biometrics import EmbeddingServiceError, FaceMatcher
from evote_api.lib.roll_matcher import RollMatchEvaluator
from evote_api.lib.verification import IdentityMismatchError
from evote_api.models.audit_log import AuditLog
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.schemas.voter import RegistrationRequest
from evote_api.services import registration_service
from evote_api.services.auth_service import DuplicateUserError
from evote_api.services.registration_service import (
    DuplicateIdNumberError,
    LivenessFailedError,
    RegistrationValidationError,
    register_voter,
)


@pytest.fixture
def register(
    async_session: AsyncSession,
    embedding_extractor: Any,
    matcher: FaceMatcher,
    evaluator: RollMatchEvaluator,
    settings: Settings,
    change_feed: ChangeFeed,
    registration_payload: Callable[..., dict[str, Any]],
) -> Callable[..., Any]:
    """Run register_voter with the test providers."""

    async def _register(**overrides: Any) -> registration_service.RegistrationOutcome:
        request = RegistrationRequest(**registration_payload(**overrides))
        return await register_voter(
            async_session,
            request,
            extractor=embedding_extractor,
            matcher=matcher,
            evaluator=evaluator,
            settings=settings,
            feed=change_feed,
        )

    return _register


async def _count(session: AsyncSession, model: type) -> int:
    return (await session.execute(select(func.count()).select_from(model))).scalar_one()


class TestRegistrationOutcomes:
    """Roll and biometric outcomes combine into the initial verification state."""

    async def test_full_match_is_verified(
        self, register: Callable[..., Any], roll_record: RollRecord, change_feed: ChangeFeed, async_session: AsyncSession
    ) -> None:
        events = change_feed.subscribe()
        outcome = await register()
        voter = outcome.voter

        assert voter.verification_status == "VERIFIED"
        assert voter.electoral_roll_verified is True
        assert voter.manual_verify_requested is False
        assert voter.electoral_roll_record_id == roll_record.id
        assert voter.liveness_verified is True
        assert voter.face_embedding == [1.0, 2.0, 3.0, 4.0]
        assert outcome.face_match is not None and outcome.face_match.match
        assert outcome.roll.match_score == 1.0

        user = await async_session.get(User, voter.user_id)
        assert user.role == "voter"
        assert verify_password("correct-horse-battery", user.hashed_password)

        audit = (await async_session.execute(select(AuditLog))).scalars().all()
        assert [a.action for a in audit] == ["voter.register"]
        assert events.get_nowait().type == VOTER_REGISTERED

    async def test_dob_mismatch_goes_to_manual_review(self, register: Callable[..., Any], roll_record: RollRecord) -> None:
        outcome = await register(dob=date(1991, 5, 14))
        voter = outcome.voter
        assert voter.verification_status == "PENDING"
        assert voter.electoral_roll_verified is False
        assert voter.manual_verify_requested is True
        assert voter.manual_verify_requested_at is not None
        assert voter.electoral_roll_record_id is None
        assert voter.roll_match_details["mismatched_fields"] == ["dob"]

    async def test_not_in_roll_is_pending(self, register: Callable[..., Any]) -> None:
        outcome = await register()
        assert outcome.voter.verification_status == "PENDING"
        assert outcome.voter.manual_verify_requested is False
        assert outcome.roll.found is False

    async def test_epic_fallback_when_aadhaar_unknown(
        self, register: Callable[..., Any], roll_record: RollRecord, samples: SimpleNamespace
    ) -> None:
        outcome = await register(document_type="EPIC", aadhaar_number="999999999999", epic_number=samples.epic)
        assert outcome.roll.record_id == roll_record.id
        assert outcome.voter.verification_status == "VERIFIED"

    async def test_pdf_document_routes_to_manual_review(
        self,
        register: Callable[..., Any],
        roll_record: RollRecord,
        samples: SimpleNamespace,
        embedding_extractor: Any,
    ) -> None:
        outcome = await register(document=samples.pdf_document)
        voter = outcome.voter
        assert voter.verification_status == "PENDING"
        assert voter.manual_verify_requested is True
        assert voter.electoral_roll_verified is True
        assert voter.document_content_type == "application/pdf"
        assert outcome.face_match is None
        assert embedding_extractor.calls == [samples.frames[1]]


class TestRegistrationRefusals:
    """Refused registrations persist nothing."""

    async def test_face_document_mismatch_is_refused(
        self,
        register: Callable[..., Any],
        roll_record: RollRecord,
        samples: SimpleNamespace,
        async_session: AsyncSession,
    ) -> None:
        with pytest.raises(IdentityMismatchError):
            await register(document=samples.stranger_document)
        assert await _count(async_session, Voter) == 0
        assert await _count(async_session, User) == 0

    async def test_liveness_failure_skips_embedding(
        self, register: Callable[..., Any], samples: SimpleNamespace, embedding_extractor: Any
    ) -> None:
        with pytest.raises(LivenessFailedError):
            await register(frames=[samples.frames[0]] * 3)
        assert embedding_extractor.calls == []

    async def test_embedding_service_down(
        self, register: Callable[..., Any], embedding_extractor: Any, async_session: AsyncSession
    ) -> None:
        embedding_extractor.error = EmbeddingServiceError("Connection to embedding service failed")
        with pytest.raises(EmbeddingServiceError):
            await register()
        assert await _count(async_session, Voter) == 0

    async def test_embedding_timeout_is_service_error(
        self,
        async_session: AsyncSession,
        matcher: FaceMatcher,
        evaluator: RollMatchEvaluator,
        settings: Settings,
        embedding_extractor: Any,
        registration_payload: Callable[..., dict[str, Any]],
    ) -> None:
        async def _slow(image_bytes: bytes) -> list[float]:
            await asyncio.sleep(5)
            return [0.0]

        embedding_extractor.extract = _slow
        fast_settings = settings.model_copy(update={"deepface_timeout": 0.05})
        with pytest.raises(EmbeddingServiceError, match="did not respond"):
            await register_voter(
                async_session,
                RegistrationRequest(**registration_payload()),
                extractor=embedding_extractor,
                matcher=matcher,
                evaluator=evaluator,
                settings=fast_settings,
            )
        assert await _count(async_session, Voter) == 0

    async def test_under_age(self, register: Callable[..., Any]) -> None:
        today = date.today()
        with pytest.raises(RegistrationValidationError, match="at least 18"):
            await register(dob=today.replace(year=today.year - 10))

    async def test_empty_document_is_rejected(
        self,
        async_session: AsyncSession,
        matcher: FaceMatcher,
        evaluator: RollMatchEvaluator,
        settings: Settings,
        embedding_extractor: Any,
        registration_payload: Callable[..., dict[str, Any]],
    ) -> None:
        request = RegistrationRequest(**registration_payload()).model_copy(update={"document": b""})
        with pytest.raises(RegistrationValidationError, match="ID document is required"):
            await register_voter(
                async_session,
                request,
                extractor=embedding_extractor,
                matcher=matcher,
                evaluator=evaluator,
                settings=settings,
            )
        assert embedding_extractor.calls == []
        assert await _count(async_session, Voter) == 0
        assert await _count(async_session, User) == 0

    async def test_empty_frame_fails_liveness_not_service(
        self,
        async_session: AsyncSession,
        matcher: FaceMatcher,
        evaluator: RollMatchEvaluator,
        settings: Settings,
        embedding_extractor: Any,
        registration_payload: Callable[..., dict[str, Any]],
    ) -> None:
        request = RegistrationRequest(**registration_payload()).model_copy(update={"frames": [b"a", b"", b"b"]})
        with pytest.raises(LivenessFailedError, match="empty"):
            await register_voter(
                async_session,
                request,
                extractor=embedding_extractor,
                matcher=matcher,
                evaluator=evaluator,
                settings=settings,
            )
        assert embedding_extractor.calls == []
        assert await _count(async_session, Voter) == 0


class TestDuplicates:
    async def test_duplicate_aadhaar(self, register: Callable[..., Any], roll_record: RollRecord) -> None:
        await register()
        with pytest.raises(DuplicateIdNumberError):
            await register(username="asha2", email="asha2@example.com")

    async def test_duplicate_username(self, register: Callable[..., Any]) -> None:
        await register()
        with pytest.raises(DuplicateUserError):
            await register(aadhaar_number="111122223333")

    async def test_unique_constraint_decides_when_precheck_misses(
        self, register: Callable[..., Any], async_session: AsyncSession
    ) -> None:
        await register()
        with patch.object(registration_service, "_id_number_taken", AsyncMock(return_value=False)):
            with pytest.raises(DuplicateIdNumberError):
                await register(username="asha2", email="asha2@example.com")
        assert await _count(async_session, Voter) == 1
        assert await _count(async_session, User) == 1
