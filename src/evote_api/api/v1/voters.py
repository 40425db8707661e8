"""Voter registration and verification API endpoints.

POST /voters/register: run the registration pipeline
GET /voters/me, GET /voters/{id}, GET /voters/{id}/eligibility
POST /voters/{id}/manual-verification, /reverify, /face-verification
Admin: GET /voters, PATCH /voters/{id}/status, POST /voters/{id}/cross-verify,
POST /voters/{id}/block, POST /voters/{id}/unblock
"""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings, get_settings
from evote_api.core.dependencies import (
    get_async_session,
    get_current_user,
    get_current_voter,
    get_embedding_extractor,
    get_face_matcher,
    get_feed,
    get_roll_evaluator,
    require_role,
)
from evote_api.core.events import ChangeFeed
from evote_api.core.security import ROLE_ADMIN
from evote_api.lib.biometrics import BaseEmbeddingExtractor, FaceMatcher, FaceMatchResult
from evote_api.lib.roll_matcher import RollMatchEvaluator
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.schemas.common import PaginationMeta
from evote_api.schemas.roll import RollComparisonResponse
from evote_api.schemas.voter import (
    BlockRequest,
    CrossVerifyRequest,
    EligibilityResponse,
    FaceMatchResponse,
    FaceVerificationRequest,
    PaginatedVoterResponse,
    RegistrationRequest,
    ReverificationRequest,
    StatusUpdateRequest,
    VerificationOutcomeResponse,
    VoterResponse,
)
from evote_api.services import registration_service, verification_service

voters_router = APIRouter(prefix="/voters", tags=["voters"])


def _face_response(result: FaceMatchResult | None) -> FaceMatchResponse | None:
    if result is None:
        return None
    return FaceMatchResponse(
        match=result.match,
        distance=result.distance,
        confidence=result.confidence,
        threshold=result.threshold,
        risk_score=result.risk_score,
    )


def _outcome_response(
    outcome: registration_service.RegistrationOutcome | verification_service.ReverificationOutcome,
) -> VerificationOutcomeResponse:
    voter = outcome.voter
    return VerificationOutcomeResponse(
        voter_id=voter.id,
        user_id=voter.user_id,
        verification_status=voter.verification_status,
        electoral_roll_verified=voter.electoral_roll_verified,
        manual_verify_requested=voter.manual_verify_requested,
        liveness_verified=voter.liveness_verified,
        reason=outcome.decision.reason,
        roll_match=RollComparisonResponse(**outcome.roll.to_dict()),
        face_match=_face_response(outcome.face_match),
    )


async def _owned_voter(session: AsyncSession, voter_id: uuid.UUID, user: User) -> Voter:
    voter = await verification_service.get_voter(session, voter_id)
    if voter.user_id != user.id and user.role != ROLE_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not allowed to access this voter")
    return voter


@voters_router.post("/register", response_model=VerificationOutcomeResponse, status_code=201)
async def register_voter(
    request: RegistrationRequest,
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    extractor: Annotated[BaseEmbeddingExtractor, Depends(get_embedding_extractor)],
    matcher: Annotated[FaceMatcher, Depends(get_face_matcher)],
    evaluator: Annotated[RollMatchEvaluator, Depends(get_roll_evaluator)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> VerificationOutcomeResponse:
    """Register a voter: liveness, face vs. document, roll match. Public endpoint."""
    outcome = await registration_service.register_voter(
        session,
        request,
        extractor=extractor,
        matcher=matcher,
        evaluator=evaluator,
        settings=settings,
        feed=feed,
    )
    return _outcome_response(outcome)


@voters_router.get("", response_model=PaginatedVoterResponse)
async def list_voters(
    _admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    verification_status: str | None = Query(default=None, description="Filter by verification status"),
    manual_verify_requested: bool | None = Query(default=None, description="Filter by pending manual review"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedVoterResponse:
    """List voters for review (admin only)."""
    voters, total = await verification_service.list_voters(
        session,
        verification_status=verification_status,
        manual_verify_requested=manual_verify_requested,
        page=page,
        page_size=page_size,
    )
    return PaginatedVoterResponse(
        items=[VoterResponse.model_validate(v) for v in voters],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)),
        ),
    )


@voters_router.get("/me", response_model=VoterResponse)
async def get_my_voter(
    voter: Annotated[Voter, Depends(get_current_voter)],
) -> Voter:
    return voter


@voters_router.get("/{voter_id}", response_model=VoterResponse)
async def get_voter(
    voter_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Voter:
    return await _owned_voter(session, voter_id, current_user)


@voters_router.get("/{voter_id}/eligibility", response_model=EligibilityResponse)
async def get_eligibility(
    voter_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> EligibilityResponse:
    """Whether the voter may cast a ballot, with the reasons if not."""
    voter = await _owned_voter(session, voter_id, current_user)
    result = verification_service.eligibility_of(voter)
    return EligibilityResponse(eligible=result.eligible, reasons=result.reasons)


@voters_router.post("/{voter_id}/manual-verification", response_model=VoterResponse)
async def request_manual_verification(
    voter_id: uuid.UUID,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    """Ask for a manual review of an unverified roll match."""
    await _owned_voter(session, voter_id, current_user)
    return await verification_service.request_manual_verification(
        session, voter_id, actor=current_user, feed=feed
    )


@voters_router.post("/{voter_id}/reverify", response_model=VerificationOutcomeResponse)
async def reverify(
    voter_id: uuid.UUID,
    request: ReverificationRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    extractor: Annotated[BaseEmbeddingExtractor, Depends(get_embedding_extractor)],
    matcher: Annotated[FaceMatcher, Depends(get_face_matcher)],
    evaluator: Annotated[RollMatchEvaluator, Depends(get_roll_evaluator)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> VerificationOutcomeResponse:
    """Re-run verification with a fresh document and live capture."""
    await _owned_voter(session, voter_id, current_user)
    outcome = await verification_service.reverify(
        session,
        voter_id,
        request.frames,
        request.document,
        request.document_content_type,
        extractor=extractor,
        matcher=matcher,
        evaluator=evaluator,
        settings=settings,
        actor=current_user,
        feed=feed,
    )
    return _outcome_response(outcome)


@voters_router.post("/{voter_id}/face-verification", response_model=FaceMatchResponse)
async def verify_face(
    voter_id: uuid.UUID,
    request: FaceVerificationRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    extractor: Annotated[BaseEmbeddingExtractor, Depends(get_embedding_extractor)],
    matcher: Annotated[FaceMatcher, Depends(get_face_matcher)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> FaceMatchResponse:
    """Compare a live capture with the stored face reference."""
    await _owned_voter(session, voter_id, current_user)
    result = await verification_service.verify_voter_face(
        session,
        voter_id,
        request.frames,
        extractor=extractor,
        matcher=matcher,
        settings=settings,
        election_id=request.election_id,
        session_id=request.session_id,
        feed=feed,
    )
    return _face_response(result)


@voters_router.patch("/{voter_id}/status", response_model=VoterResponse)
async def update_status(
    voter_id: uuid.UUID,
    request: StatusUpdateRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    """Resolve a review by setting VERIFIED or REJECTED (admin only)."""
    return await verification_service.update_status(
        session, voter_id, request.status, actor=admin, note=request.note, feed=feed
    )


@voters_router.post("/{voter_id}/cross-verify", response_model=VoterResponse)
async def cross_verify(
    voter_id: uuid.UUID,
    request: CrossVerifyRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    """Mark the voter's roll match verified against a roll record (admin only)."""
    return await verification_service.cross_verify(
        session, voter_id, request.roll_record_id, actor=admin, feed=feed
    )


@voters_router.post("/{voter_id}/block", response_model=VoterResponse)
async def block_voter(
    voter_id: uuid.UUID,
    request: BlockRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    return await verification_service.set_blocked(
        session, voter_id, blocked=True, reason=request.reason, actor=admin, feed=feed
    )


@voters_router.post("/{voter_id}/unblock", response_model=VoterResponse)
async def unblock_voter(
    voter_id: uuid.UUID,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Voter:
    return await verification_service.set_blocked(session, voter_id, blocked=False, actor=admin, feed=feed)
