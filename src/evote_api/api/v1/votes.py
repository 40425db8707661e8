"""Ballot casting API endpoint.

POST /votes: cast a ballot as the authenticated voter.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings, get_settings
from evote_api.core.dependencies import (
    get_async_session,
    get_current_voter,
    get_embedding_extractor,
    get_face_matcher,
    get_feed,
)
from evote_api.core.events import ChangeFeed
from evote_api.lib.biometrics import BaseEmbeddingExtractor, FaceMatcher
from evote_api.lib.verification import IdentityMismatchError
from evote_api.models.voter import Voter
from evote_api.schemas.vote import CastVoteRequest, VoteReceiptResponse
from evote_api.services import verification_service, vote_service

votes_router = APIRouter(prefix="/votes", tags=["votes"])


@votes_router.post("", response_model=VoteReceiptResponse, status_code=201)
async def cast_vote(
    request: CastVoteRequest,
    voter: Annotated[Voter, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    extractor: Annotated[BaseEmbeddingExtractor, Depends(get_embedding_extractor)],
    matcher: Annotated[FaceMatcher, Depends(get_face_matcher)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> VoteReceiptResponse:
    """Cast a ballot. A second ballot in the same election returns 409.

    The live face is always checked against the stored reference first and
    its risk score is stored on the ballot.
    """
    face = await verification_service.verify_voter_face(
        session,
        voter.id,
        request.frames,
        extractor=extractor,
        matcher=matcher,
        settings=settings,
        election_id=request.election_id,
        session_id=request.session_id,
        feed=feed,
    )
    if not face.match:
        msg = "Face verification failed"
        raise IdentityMismatchError(msg)

    receipt = await vote_service.cast_vote(
        session,
        election_id=request.election_id,
        candidate_id=request.candidate_id,
        voter_id=voter.id,
        session_id=request.session_id,
        risk_score=face.risk_score,
        violation_threshold=settings.fraud_violation_threshold,
        feed=feed,
    )
    return VoteReceiptResponse(
        transaction_id=receipt.transaction_id,
        election_id=receipt.election_id,
        candidate_id=receipt.candidate_id,
        cast_at=receipt.cast_at,
        integrity_token=receipt.integrity_token,
        risk_score=receipt.risk_score,
    )
