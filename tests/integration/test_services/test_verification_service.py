"""Integration tests for the post-registration verification lifecycle."""

import uuid
from collections.abc import Callable
from types import SimpleNamespace
from typing import Any

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings
from evote_api.core.events import VOTER_UPDATED, ChangeFeed
from evote_api.lib.biometrics import EmbeddingServiceError, FaceMatcher
from evote_api.lib.roll_matcher import RollMatchEvaluator
from evote_api.lib.verification import IdentityMismatchError, IllegalTransitionError
from evote_api.models.audit_log import AuditLog
from evote_api.models.election import Election
from evote_api.models.fraud_alert import FraudAlert
from evote_api.models.roll_record import RollRecord
from evote_api.models.user import User
from evote_api.services import verification_service
from evote_api.services.errors import RollRecordNotFoundError, VoterNotFoundError
from evote_api.services.registration_service import LivenessFailedError
from evote_api.services.verification_service import NoFaceReferenceError


class TestUpdateStatus:
    async def test_admin_can_verify_pending_voter(
        self, async_session: AsyncSession, make_voter: Callable[..., Any], admin_user: User, change_feed: ChangeFeed
    ) -> None:
        voter = await make_voter(verification_status="PENDING", manual_verify_requested=True)
        events = change_feed.subscribe()

        updated = await verification_service.update_status(
            async_session, voter.id, "VERIFIED", actor=admin_user, note="Checked in person", feed=change_feed
        )

        assert updated.verification_status == "VERIFIED"
        assert updated.manual_verify_requested is False
        assert updated.manual_verify_requested_at is None
        assert updated.verification_note == "Checked in person"
        assert events.get_nowait().type == VOTER_UPDATED

        audit = (await async_session.execute(select(AuditLog))).scalars().one()
        assert audit.action == "voter.status_override"
        assert audit.details == {"from": "PENDING", "to": "VERIFIED"}

    async def test_override_is_idempotent(
        self, async_session: AsyncSession, make_voter: Callable[..., Any], admin_user: User
    ) -> None:
        voter = await make_voter(verification_status="REJECTED")
        updated = await verification_service.update_status(async_session, voter.id, "REJECTED", actor=admin_user)
        assert updated.verification_status == "REJECTED"

    async def test_pending_is_not_an_override_target(
        self, async_session: AsyncSession, make_voter: Callable[..., Any], admin_user: User
    ) -> None:
        voter = await make_voter()
        with pytest.raises(IllegalTransitionError):
            await verification_service.update_status(async_session, voter.id, "PENDING", actor=admin_user)

    async def test_unknown_voter(self, async_session: AsyncSession, admin_user: User) -> None:
        with pytest.raises(VoterNotFoundError):
            await verification_service.update_status(async_session, uuid.uuid4(), "VERIFIED", actor=admin_user)


class TestManualVerificationRequest:
    async def test_request_sets_flag_and_timestamp(
        self, async_session: AsyncSession, make_voter: Callable[..., Any]
    ) -> None:
        voter = await make_voter(verification_status="PENDING", electoral_roll_verified=False)
        updated = await verification_service.request_manual_verification(async_session, voter.id)
        assert updated.manual_verify_requested is True
        assert updated.manual_verify_requested_at is not None
        assert updated.verification_status == "PENDING"

    async def test_repeat_request_keeps_original_timestamp(
        self, async_session: AsyncSession, make_voter: Callable[..., Any]
    ) -> None:
        voter = await make_voter(verification_status="PENDING", electoral_roll_verified=False)
        first = await verification_service.request_manual_verification(async_session, voter.id)
        requested_at = first.manual_verify_requested_at

        again = await verification_service.request_manual_verification(async_session, voter.id)
        assert again.manual_verify_requested_at == requested_at
        audit = (await async_session.execute(select(AuditLog))).scalars().all()
        assert len(audit) == 1

    async def test_roll_verified_voter_cannot_request(
        self, async_session: AsyncSession, make_voter: Callable[..., Any]
    ) -> None:
        voter = await make_voter()
        with pytest.raises(IllegalTransitionError):
            await verification_service.request_manual_verification(async_session, voter.id)


class TestCrossVerify:
    async def test_marks_roll_verified_and_keeps_status(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        roll_record: RollRecord,
        admin_user: User,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter(
            aadhaar_number=samples.aadhaar,
            verification_status="PENDING",
            electoral_roll_verified=False,
            manual_verify_requested=True,
        )

        updated = await verification_service.cross_verify(async_session, voter.id, roll_record.id, actor=admin_user)

        assert updated.electoral_roll_verified is True
        assert updated.manual_verify_requested is False
        assert updated.electoral_roll_record_id == roll_record.id
        assert updated.verification_status == "PENDING"

    async def test_no_shared_id_number_still_applies(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        roll_record: RollRecord,
        admin_user: User,
    ) -> None:
        voter = await make_voter(electoral_roll_verified=False)
        updated = await verification_service.cross_verify(async_session, voter.id, roll_record.id, actor=admin_user)
        assert updated.electoral_roll_verified is True
        audit = (await async_session.execute(select(AuditLog))).scalars().one()
        assert audit.details["shares_id_number"] is False

    async def test_unknown_roll_record(
        self, async_session: AsyncSession, make_voter: Callable[..., Any], admin_user: User
    ) -> None:
        voter = await make_voter()
        with pytest.raises(RollRecordNotFoundError):
            await verification_service.cross_verify(async_session, voter.id, uuid.uuid4(), actor=admin_user)

    async def test_cross_verify_by_roll_record(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        roll_record: RollRecord,
        admin_user: User,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter(epic_number=samples.epic, electoral_roll_verified=False)
        updated = await verification_service.cross_verify_roll_record(async_session, roll_record.id, actor=admin_user)
        assert updated.id == voter.id
        assert updated.electoral_roll_verified is True


class TestReverify:
    @pytest.fixture
    def run_reverify(
        self,
        async_session: AsyncSession,
        embedding_extractor: Any,
        matcher: FaceMatcher,
        evaluator: RollMatchEvaluator,
        settings: Settings,
        samples: SimpleNamespace,
    ) -> Callable[..., Any]:
        async def _run(voter_id: uuid.UUID, document: bytes | None = None) -> Any:
            return await verification_service.reverify(
                async_session,
                voter_id,
                samples.frames,
                document or samples.document_image,
                None,
                extractor=embedding_extractor,
                matcher=matcher,
                evaluator=evaluator,
                settings=settings,
            )

        return _run

    async def test_successful_reverification(
        self,
        make_voter: Callable[..., Any],
        roll_record: RollRecord,
        run_reverify: Callable[..., Any],
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter(
            aadhaar_number=samples.aadhaar,
            verification_status="REJECTED",
            electoral_roll_verified=False,
            face_embedding=None,
            liveness_verified=False,
        )

        outcome = await run_reverify(voter.id)

        assert outcome.voter.verification_status == "VERIFIED"
        assert outcome.voter.electoral_roll_verified is True
        assert outcome.voter.electoral_roll_record_id == roll_record.id
        assert outcome.voter.face_embedding == samples.live_embedding
        assert outcome.voter.liveness_verified is True

    async def test_existing_roll_verification_is_kept(
        self, make_voter: Callable[..., Any], run_reverify: Callable[..., Any]
    ) -> None:
        # Not in the roll at all, but an admin already cross-verified.
        voter = await make_voter(verification_status="PENDING", electoral_roll_verified=True)
        outcome = await run_reverify(voter.id)
        assert outcome.roll.found is False
        assert outcome.voter.verification_status == "VERIFIED"
        assert outcome.voter.electoral_roll_verified is True

    async def test_mismatch_leaves_voter_pending(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        run_reverify: Callable[..., Any],
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter()
        with pytest.raises(IdentityMismatchError):
            await run_reverify(voter.id, document=samples.stranger_document)

        await async_session.refresh(voter)
        assert voter.verification_status == "PENDING"
        assert "does not match" in voter.verification_note
        assert voter.face_embedding == samples.live_embedding

    async def test_provider_failure_leaves_record_untouched(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        run_reverify: Callable[..., Any],
        embedding_extractor: Any,
    ) -> None:
        voter = await make_voter()
        embedding_extractor.error = EmbeddingServiceError("Embedding request timed out")
        with pytest.raises(EmbeddingServiceError):
            await run_reverify(voter.id)

        await async_session.refresh(voter)
        assert voter.verification_status == "VERIFIED"


class TestBlocking:
    async def test_block_makes_voter_ineligible(
        self, async_session: AsyncSession, make_voter: Callable[..., Any], admin_user: User
    ) -> None:
        voter = await make_voter()
        assert verification_service.eligibility_of(voter).eligible is True

        blocked = await verification_service.set_blocked(
            async_session, voter.id, blocked=True, reason="Duplicate identity", actor=admin_user
        )
        assert blocked.block_reason == "Duplicate identity"
        result = verification_service.eligibility_of(blocked)
        assert result.eligible is False
        assert "Voter is blocked" in result.reasons

        unblocked = await verification_service.set_blocked(async_session, voter.id, blocked=False, actor=admin_user)
        assert unblocked.block_reason is None
        assert verification_service.eligibility_of(unblocked).eligible is True


class TestVerifyVoterFace:
    async def test_matching_face(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        embedding_extractor: Any,
        matcher: FaceMatcher,
        settings: Settings,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter()
        result = await verification_service.verify_voter_face(
            async_session,
            voter.id,
            samples.frames,
            extractor=embedding_extractor,
            matcher=matcher,
            settings=settings,
        )
        assert result.match is True
        assert result.distance == 0.0

    async def test_mismatch_during_election_raises_alert(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        active_election: Election,
        embedding_extractor: Any,
        matcher: FaceMatcher,
        settings: Settings,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter()
        result = await verification_service.verify_voter_face(
            async_session,
            voter.id,
            samples.stranger_frames,
            extractor=embedding_extractor,
            matcher=matcher,
            settings=settings,
            election_id=active_election.id,
        )
        assert result.match is False

        alert = (await async_session.execute(select(FraudAlert))).scalars().one()
        assert alert.signal == "FACE_MISMATCH"
        assert alert.risk_level == "HIGH"
        assert alert.session_id == str(active_election.id)

    async def test_no_reference(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        embedding_extractor: Any,
        matcher: FaceMatcher,
        settings: Settings,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter(face_embedding=None)
        with pytest.raises(NoFaceReferenceError):
            await verification_service.verify_voter_face(
                async_session, voter.id, samples.frames, extractor=embedding_extractor, matcher=matcher, settings=settings
            )

    async def test_replayed_frames(
        self,
        async_session: AsyncSession,
        make_voter: Callable[..., Any],
        embedding_extractor: Any,
        matcher: FaceMatcher,
        settings: Settings,
        samples: SimpleNamespace,
    ) -> None:
        voter = await make_voter()
        with pytest.raises(LivenessFailedError):
            await verification_service.verify_voter_face(
                async_session,
                voter.id,
                [samples.frames[0]] * 3,
                extractor=embedding_extractor,
                matcher=matcher,
                settings=settings,
            )
