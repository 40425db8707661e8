"""Verification lifecycle after registration.

Admin review resolution, voter-initiated manual review requests, roll
cross-verification, re-verification, blocking and the pre-ballot face check.
Each operation loads the voter's state, applies a state machine transition
and persists the result with an audit entry in one commit.
"""

import uuid
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings
from evote_api.core.events import VOTER_UPDATED, ChangeEvent, ChangeFeed
from evote_api.lib.biometrics import (
    BaseEmbeddingExtractor,
    FaceMatcher,
    FaceMatchResult,
    check_liveness,
    select_reference_frame,
)
from evote_api.lib.fraud import FraudSignal
from evote_api.lib.roll_matcher import ClaimedIdentity, RollComparison, RollMatchEvaluator, RollMatchOutcome
from evote_api.lib.verification import (
    EligibilityResult,
    IdentityMismatchError,
    RegistrationDecision,
    VerificationState,
    VerificationStatus,
    apply_admin_override,
    apply_cross_verification,
    begin_reverification,
    check_eligibility,
    decide_registration,
    request_manual_review,
)
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.services import audit_service, fraud_service, roll_service
from evote_api.services.errors import VoterNotFoundError
from evote_api.services.registration_service import (
    LivenessFailedError,
    document_ref,
    evaluate_roll,
    extract_with_timeout,
    run_biometric_check,
)


class NoFaceReferenceError(ValueError):
    """The voter has no stored face embedding to compare against."""


@dataclass(frozen=True)
class ReverificationOutcome:
    voter: Voter
    decision: RegistrationDecision
    roll: RollComparison
    face_match: FaceMatchResult | None


def state_of(voter: Voter) -> VerificationState:
    return VerificationState(
        status=VerificationStatus(voter.verification_status),
        electoral_roll_verified=voter.electoral_roll_verified,
        manual_verify_requested=voter.manual_verify_requested,
    )


def _apply_state(voter: Voter, state: VerificationState) -> None:
    if state.manual_verify_requested and not voter.manual_verify_requested:
        voter.manual_verify_requested_at = datetime.now(UTC)
    elif not state.manual_verify_requested:
        voter.manual_verify_requested_at = None
    voter.verification_status = state.status.value
    voter.electoral_roll_verified = state.electoral_roll_verified
    voter.manual_verify_requested = state.manual_verify_requested


def eligibility_of(voter: Voter) -> EligibilityResult:
    return check_eligibility(
        state_of(voter),
        has_face_embedding=bool(voter.face_embedding),
        is_blocked=voter.is_blocked,
    )


def _publish(feed: ChangeFeed | None, voter: Voter) -> None:
    if feed is not None:
        feed.publish(
            ChangeEvent(
                VOTER_UPDATED,
                str(voter.id),
                {
                    "verification_status": voter.verification_status,
                    "electoral_roll_verified": voter.electoral_roll_verified,
                    "manual_verify_requested": voter.manual_verify_requested,
                    "is_blocked": voter.is_blocked,
                },
            )
        )


async def get_voter(session: AsyncSession, voter_id: uuid.UUID) -> Voter:
    """Load a voter by primary key.

    Raises:
        VoterNotFoundError: If no such voter exists.
    """
    voter = await session.get(Voter, voter_id)
    if voter is None:
        msg = f"Voter {voter_id} not found"
        raise VoterNotFoundError(msg)
    return voter


async def get_voter_for_user(session: AsyncSession, user_id: uuid.UUID) -> Voter | None:
    result = await session.execute(select(Voter).where(Voter.user_id == user_id))
    return result.scalar_one_or_none()


async def list_voters(
    session: AsyncSession,
    *,
    verification_status: str | None = None,
    manual_verify_requested: bool | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Voter], int]:
    """List voters for the review queue, oldest first.

    Returns:
        Tuple of (voters, total count).
    """
    filters = []
    if verification_status is not None:
        filters.append(Voter.verification_status == verification_status.upper())
    if manual_verify_requested is not None:
        filters.append(Voter.manual_verify_requested == manual_verify_requested)

    total = (await session.execute(select(func.count(Voter.id)).where(*filters))).scalar_one()
    offset = (page - 1) * page_size
    result = await session.execute(
        select(Voter).where(*filters).order_by(Voter.created_at).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total


async def update_status(
    session: AsyncSession,
    voter_id: uuid.UUID,
    target: VerificationStatus | str,
    *,
    actor: User | None,
    note: str | None = None,
    feed: ChangeFeed | None = None,
) -> Voter:
    """Admin resolution: set VERIFIED or REJECTED regardless of current state.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        IllegalTransitionError: If ``target`` is not VERIFIED or REJECTED.
    """
    voter = await get_voter(session, voter_id)
    previous = voter.verification_status
    _apply_state(voter, apply_admin_override(state_of(voter), target))
    if note is not None:
        voter.verification_note = note

    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_STATUS_OVERRIDE,
        resource_type="voter",
        resource_id=voter.id,
        details={"from": previous, "to": voter.verification_status},
    )
    await session.commit()
    logger.info("Voter {} status set to {} (was {})", voter.id, voter.verification_status, previous)
    _publish(feed, voter)
    return voter


async def request_manual_verification(
    session: AsyncSession,
    voter_id: uuid.UUID,
    *,
    actor: User | None = None,
    feed: ChangeFeed | None = None,
) -> Voter:
    """Voter-initiated manual review request. Status is unchanged.

    An already pending request keeps its original timestamp.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        IllegalTransitionError: If the roll is already verified.
    """
    voter = await get_voter(session, voter_id)
    current = state_of(voter)
    updated = request_manual_review(current)
    if updated == current:
        return voter

    _apply_state(voter, updated)
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_MANUAL_REQUEST,
        resource_type="voter",
        resource_id=voter.id,
    )
    await session.commit()
    logger.info("Manual verification requested for voter {}", voter.id)
    _publish(feed, voter)
    return voter


async def cross_verify(
    session: AsyncSession,
    voter_id: uuid.UUID,
    roll_record_id: uuid.UUID,
    *,
    actor: User | None,
    feed: ChangeFeed | None = None,
) -> Voter:
    """Mark the voter's roll match as verified against a specific roll record.

    Sets ``electoral_roll_verified``, records the roll record and clears a
    pending manual request. Verification status is left as it is.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        RollRecordNotFoundError: If the roll record does not exist.
    """
    voter = await get_voter(session, voter_id)
    record = await roll_service.get_roll_record(session, roll_record_id)

    shares_id = (record.aadhaar_number and record.aadhaar_number == voter.aadhaar_number) or (
        record.epic_number and record.epic_number == voter.epic_number
    )
    if not shares_id:
        logger.warning("Cross-verifying voter {} against roll record {} with no shared ID number", voter.id, record.id)

    _apply_state(voter, apply_cross_verification(state_of(voter)))
    voter.electoral_roll_record_id = record.id

    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_CROSS_VERIFY,
        resource_type="voter",
        resource_id=voter.id,
        details={"roll_record_id": str(record.id), "shares_id_number": bool(shares_id)},
    )
    await session.commit()
    logger.info("Voter {} cross-verified against roll record {}", voter.id, record.id)
    _publish(feed, voter)
    return voter


async def cross_verify_roll_record(
    session: AsyncSession,
    roll_record_id: uuid.UUID,
    *,
    actor: User | None,
    feed: ChangeFeed | None = None,
) -> Voter:
    """Cross-verify whichever registered voter shares an ID number with a roll record.

    Raises:
        RollRecordNotFoundError: If the roll record does not exist.
        VoterNotFoundError: If no registered voter matches.
    """
    record = await roll_service.get_roll_record(session, roll_record_id)
    voter = await roll_service.find_voter_for_record(session, record)
    return await cross_verify(session, voter.id, record.id, actor=actor, feed=feed)


def _claims_of(voter: Voter) -> ClaimedIdentity:
    return ClaimedIdentity(
        first_name=voter.first_name,
        last_name=voter.last_name,
        dob=voter.dob,
        father_name=voter.father_name,
        state=voter.address_state,
        district=voter.address_district,
        city=voter.address_city,
        aadhaar_number=voter.aadhaar_number,
        epic_number=voter.epic_number,
    )


async def reverify(
    session: AsyncSession,
    voter_id: uuid.UUID,
    frames: Sequence[bytes],
    document: bytes,
    document_content_type: str | None,
    *,
    extractor: BaseEmbeddingExtractor,
    matcher: FaceMatcher,
    evaluator: RollMatchEvaluator,
    settings: Settings,
    actor: User | None = None,
    feed: ChangeFeed | None = None,
) -> ReverificationOutcome:
    """Re-run the full match pipeline and replace the biometric reference.

    External checks run first; if the provider is unavailable or the frames
    fail liveness the record is untouched. A face/document mismatch leaves the
    record PENDING with the reason noted, then raises.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        RegistrationValidationError: If the document is empty.
        LivenessFailedError: If the frames fail the liveness gate.
        EmbeddingServiceError: If the embedding service is unavailable.
        InvalidEmbeddingError: If embeddings could not be compared.
        IdentityMismatchError: If the live face does not match the document.
    """
    voter = await get_voter(session, voter_id)
    biometric = await run_biometric_check(
        frames,
        document,
        document_content_type,
        extractor=extractor,
        matcher=matcher,
        settings=settings,
    )
    roll = await evaluate_roll(session, _claims_of(voter), evaluator)

    pending = begin_reverification(state_of(voter))
    # Roll verification is independent; a previous cross-verification stands.
    roll_outcome = RollMatchOutcome.VERIFIED if pending.electoral_roll_verified else roll.outcome
    try:
        decision = decide_registration(roll_outcome, biometric.outcome)
    except IdentityMismatchError:
        _apply_state(voter, pending)
        voter.verification_note = "Re-verification failed: face does not match the uploaded document."
        audit_service.record_action(
            session,
            actor=actor,
            action=audit_service.ACTION_REVERIFY,
            resource_type="voter",
            resource_id=voter.id,
            details={"result": "identity_mismatch"},
        )
        await session.commit()
        _publish(feed, voter)
        raise

    _apply_state(voter, decision.state)
    voter.face_embedding = biometric.live_embedding
    voter.liveness_verified = True
    voter.document_ref = document_ref(document)
    voter.document_content_type = biometric.document_media_type
    voter.roll_match_details = roll.to_dict()
    if roll.verified:
        voter.electoral_roll_record_id = roll.record_id
    voter.verification_note = decision.reason

    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_REVERIFY,
        resource_type="voter",
        resource_id=voter.id,
        details={"status": voter.verification_status, "roll_outcome": roll.outcome.value},
    )
    await session.commit()
    logger.info("Voter {} re-verified with status {}", voter.id, voter.verification_status)
    _publish(feed, voter)
    return ReverificationOutcome(voter=voter, decision=decision, roll=roll, face_match=biometric.face_match)


async def set_blocked(
    session: AsyncSession,
    voter_id: uuid.UUID,
    *,
    blocked: bool,
    reason: str | None = None,
    actor: User | None,
    feed: ChangeFeed | None = None,
) -> Voter:
    """Block or unblock a voter. Blocked voters are ineligible to vote.

    Raises:
        VoterNotFoundError: If the voter does not exist.
    """
    voter = await get_voter(session, voter_id)
    voter.is_blocked = blocked
    voter.block_reason = reason if blocked else None
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_BLOCK if blocked else audit_service.ACTION_UNBLOCK,
        resource_type="voter",
        resource_id=voter.id,
        details={"reason": reason} if blocked else None,
    )
    await session.commit()
    logger.info("Voter {} {}", voter.id, "blocked" if blocked else "unblocked")
    _publish(feed, voter)
    return voter


async def verify_voter_face(
    session: AsyncSession,
    voter_id: uuid.UUID,
    frames: Sequence[bytes],
    *,
    extractor: BaseEmbeddingExtractor,
    matcher: FaceMatcher,
    settings: Settings,
    election_id: uuid.UUID | None = None,
    session_id: str | None = None,
    feed: ChangeFeed | None = None,
) -> FaceMatchResult:
    """Compare live frames with the voter's stored face reference.

    A mismatch during an election raises a HIGH FACE_MISMATCH fraud alert.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        NoFaceReferenceError: If no face reference is stored.
        LivenessFailedError: If the frames fail the liveness gate.
        EmbeddingServiceError: If the embedding service is unavailable.
    """
    voter = await get_voter(session, voter_id)
    if not voter.face_embedding:
        msg = "No face reference on file for this voter"
        raise NoFaceReferenceError(msg)

    liveness = check_liveness(frames, min_frames=settings.liveness_min_frames)
    if not liveness.passed:
        raise LivenessFailedError(liveness.reason)

    live = await extract_with_timeout(extractor.extract(select_reference_frame(frames)), settings.deepface_timeout)
    result = matcher.compare(live, voter.face_embedding)

    if not result.match:
        logger.warning("Face verification failed for voter {} (distance={})", voter.id, result.distance)
        if election_id is not None:
            await fraud_service.report_signal(
                session,
                voter_id=voter.id,
                election_id=election_id,
                signal=FraudSignal.FACE_MISMATCH,
                session_id=session_id,
                details=f"distance={result.distance}",
                threshold=settings.fraud_violation_threshold,
                feed=feed,
            )
    return result
