"""Ballot casting Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from evote_api.schemas.common import Base64Payload


class CastVoteRequest(BaseModel):
    """A ballot with the live frames checked against the stored face reference."""

    election_id: UUID
    candidate_id: UUID
    session_id: str | None = Field(default=None, max_length=64)
    frames: list[Base64Payload] = Field(min_length=1, description="Live face capture frames")


class VoteReceiptResponse(BaseModel):
    transaction_id: UUID
    election_id: UUID
    candidate_id: UUID
    cast_at: datetime
    integrity_token: str
    risk_score: float | None = None
