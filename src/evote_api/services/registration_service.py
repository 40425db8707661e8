"""Voter registration pipeline.

Liveness gate, live face vs. document face comparison, roll lookup and
evaluation, then the verification state machine. Every external call runs
under a timeout before anything is written, so a slow or failing provider
leaves no partial state. The User, Voter and audit entry are committed
together.
"""

import asyncio
import hashlib
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import TypeVar

from loguru import logger
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings
from evote_api.core.events import VOTER_REGISTERED, ChangeEvent, ChangeFeed
from evote_api.core.security import ROLE_VOTER
from evote_api.lib.biometrics import (
    BaseEmbeddingExtractor,
    EmbeddingServiceError,
    FaceMatcher,
    FaceMatchResult,
    check_liveness,
    select_reference_frame,
)
from evote_api.lib.documents import detect_media_type, is_comparable_image
from evote_api.lib.roll_matcher import ClaimedIdentity, RollComparison, RollMatchEvaluator
from evote_api.lib.verification import (
    BiometricOutcome,
    IdentityMismatchError,
    RegistrationDecision,
    decide_registration,
)
from evote_api.models.voter import Voter
from evote_api.schemas.voter import RegistrationRequest
from evote_api.services import audit_service, auth_service, roll_service
from evote_api.services.auth_service import DuplicateUserError

T = TypeVar("T")


class RegistrationValidationError(ValueError):
    """Registration input was rejected before any check ran."""


class LivenessFailedError(ValueError):
    """The captured frames did not pass the liveness gate."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class DuplicateIdNumberError(ValueError):
    """An Aadhaar or EPIC number is already registered to another voter."""


@dataclass(frozen=True)
class BiometricCheck:
    outcome: BiometricOutcome
    live_embedding: list[float]
    face_match: FaceMatchResult | None
    document_media_type: str


@dataclass(frozen=True)
class RegistrationOutcome:
    voter: Voter
    decision: RegistrationDecision
    roll: RollComparison
    face_match: FaceMatchResult | None


async def extract_with_timeout(
    call: Awaitable[T],
    timeout: float,
) -> T:
    """Await an embedding call, converting a stuck call into a service error."""
    try:
        return await asyncio.wait_for(call, timeout=timeout)
    except TimeoutError as e:
        msg = f"Embedding service did not respond within {timeout:.0f}s"
        raise EmbeddingServiceError(msg) from e


def calculate_age(dob: date, today: date | None = None) -> int:
    today = today or datetime.now(UTC).date()
    return today.year - dob.year - ((today.month, today.day) < (dob.month, dob.day))


def document_ref(content: bytes) -> str:
    """Content hash stored in place of the document bytes."""
    return hashlib.sha256(content).hexdigest()


async def run_biometric_check(
    frames: Sequence[bytes],
    document: bytes,
    document_content_type: str | None,
    *,
    extractor: BaseEmbeddingExtractor,
    matcher: FaceMatcher,
    settings: Settings,
) -> BiometricCheck:
    """Gate the frames and compare the live face to the document photo.

    Raises:
        RegistrationValidationError: If the document is empty.
        LivenessFailedError: If the frames fail the liveness gate.
        EmbeddingServiceError: If an embedding could not be obtained.
        InvalidEmbeddingError: If the service returned unusable embeddings.
    """
    if not document:
        msg = "An ID document is required"
        raise RegistrationValidationError(msg)

    liveness = check_liveness(frames, min_frames=settings.liveness_min_frames)
    if not liveness.passed:
        raise LivenessFailedError(liveness.reason)

    live_embedding = await extract_with_timeout(
        extractor.extract(select_reference_frame(frames)),
        settings.deepface_timeout,
    )

    media_type = detect_media_type(document, document_content_type)
    if not is_comparable_image(media_type):
        logger.info("Document media type {} is not comparable; routing to manual review", media_type)
        return BiometricCheck(BiometricOutcome.DOCUMENT_UNAVAILABLE, live_embedding, None, media_type)

    document_embedding = await extract_with_timeout(extractor.extract(document), settings.deepface_timeout)
    result = matcher.compare(live_embedding, document_embedding)
    outcome = BiometricOutcome.MATCH if result.match else BiometricOutcome.NO_MATCH
    return BiometricCheck(outcome, live_embedding, result, media_type)


def claims_from_request(request: RegistrationRequest) -> ClaimedIdentity:
    return ClaimedIdentity(
        first_name=request.first_name,
        last_name=request.last_name,
        dob=request.dob,
        father_name=request.father_name,
        state=request.state,
        district=request.district,
        city=request.city,
        aadhaar_number=request.aadhaar_number,
        epic_number=request.epic_number,
    )


async def evaluate_roll(
    session: AsyncSession,
    claims: ClaimedIdentity,
    evaluator: RollMatchEvaluator,
) -> RollComparison:
    record = await roll_service.lookup_roll_record(
        session,
        aadhaar_number=claims.aadhaar_number,
        epic_number=claims.epic_number,
    )
    return evaluator.evaluate(claims, record)


async def _id_number_taken(session: AsyncSession, aadhaar: str | None, epic: str | None) -> bool:
    conditions = []
    if aadhaar:
        conditions.append(Voter.aadhaar_number == aadhaar)
    if epic:
        conditions.append(Voter.epic_number == epic)
    if not conditions:
        return False
    result = await session.execute(select(Voter.id).where(or_(*conditions)).limit(1))
    return result.scalar_one_or_none() is not None


def _is_id_number_violation(exc: IntegrityError) -> bool:
    message = str(exc.orig).lower()
    return "aadhaar_number" in message or "epic_number" in message


async def register_voter(
    session: AsyncSession,
    request: RegistrationRequest,
    *,
    extractor: BaseEmbeddingExtractor,
    matcher: FaceMatcher,
    evaluator: RollMatchEvaluator,
    settings: Settings,
    feed: ChangeFeed | None = None,
) -> RegistrationOutcome:
    """Run the full registration pipeline and persist the result.

    Args:
        session: The database session.
        request: Validated registration payload.
        extractor: Face embedding provider.
        matcher: Distance/threshold matcher.
        evaluator: Roll match evaluator.
        settings: Application settings.
        feed: Change feed to notify after commit.

    Returns:
        RegistrationOutcome with the created voter and the decision details.

    Raises:
        RegistrationValidationError: If the registrant is under age.
        DuplicateUserError: If the username or email is taken.
        DuplicateIdNumberError: If an ID number is already registered.
        LivenessFailedError: If the frames fail the liveness gate.
        EmbeddingServiceError: If the embedding service is unavailable.
        InvalidEmbeddingError: If embeddings could not be compared.
        IdentityMismatchError: If the live face does not match the document.
    """
    age = calculate_age(request.dob)
    if age < settings.minimum_voter_age:
        msg = f"Registrant must be at least {settings.minimum_voter_age} years old"
        raise RegistrationValidationError(msg)

    # Advisory fast path; the unique constraints decide.
    if await auth_service.username_or_email_taken(session, request.username, str(request.email)):
        msg = "Username or email already exists"
        raise DuplicateUserError(msg)
    if await _id_number_taken(session, request.aadhaar_number, request.epic_number):
        msg = "This Aadhaar or EPIC number is already registered"
        raise DuplicateIdNumberError(msg)

    biometric = await run_biometric_check(
        request.frames,
        request.document,
        request.document_content_type,
        extractor=extractor,
        matcher=matcher,
        settings=settings,
    )

    claims = claims_from_request(request)
    roll = await evaluate_roll(session, claims, evaluator)

    try:
        decision = decide_registration(roll.outcome, biometric.outcome)
    except IdentityMismatchError:
        logger.warning(
            "Registration refused for {}: face/document mismatch (distance={})",
            request.username,
            biometric.face_match.distance if biometric.face_match else None,
        )
        raise

    user = auth_service.build_user(request.username, str(request.email), request.password, ROLE_VOTER)
    state = decision.state
    voter = Voter(
        user=user,
        first_name=request.first_name,
        last_name=request.last_name,
        father_name=request.father_name,
        dob=request.dob,
        phone=request.phone,
        address_state=request.state,
        address_district=request.district,
        address_city=request.city,
        aadhaar_number=request.aadhaar_number,
        epic_number=request.epic_number,
        document_type=request.document_type.value,
        document_ref=document_ref(request.document),
        document_content_type=biometric.document_media_type,
        face_embedding=biometric.live_embedding,
        liveness_verified=True,
        verification_status=state.status.value,
        electoral_roll_verified=state.electoral_roll_verified,
        electoral_roll_record_id=roll.record_id if roll.verified else None,
        roll_match_details=roll.to_dict(),
        manual_verify_requested=state.manual_verify_requested,
        manual_verify_requested_at=datetime.now(UTC) if state.manual_verify_requested else None,
        verification_note=decision.reason,
    )
    session.add(voter)

    try:
        await session.flush()
        audit_service.record_action(
            session,
            actor=user,
            action=audit_service.ACTION_REGISTER,
            resource_type="voter",
            resource_id=voter.id,
            details={"status": state.status.value, "roll_outcome": roll.outcome.value},
        )
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if _is_id_number_violation(e):
            msg = "This Aadhaar or EPIC number is already registered"
            raise DuplicateIdNumberError(msg) from e
        msg = "Username or email already exists"
        raise DuplicateUserError(msg) from e

    logger.info(
        "Registered voter {} with status {} (roll={}, biometric={})",
        voter.id,
        state.status,
        roll.outcome,
        biometric.outcome,
    )
    if feed is not None:
        feed.publish(ChangeEvent(VOTER_REGISTERED, str(voter.id), {"status": state.status.value}))

    return RegistrationOutcome(voter=voter, decision=decision, roll=roll, face_match=biometric.face_match)
