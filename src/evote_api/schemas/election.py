"""Election and candidate Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from evote_api.schemas.common import PaginationMeta


class ElectionCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=300)
    description: str | None = None
    region: str | None = Field(default=None, max_length=200)
    start_at: datetime
    end_at: datetime

    @model_validator(mode="after")
    def validate_window(self) -> "ElectionCreateRequest":
        if self.end_at <= self.start_at:
            msg = "end_at must be after start_at"
            raise ValueError(msg)
        return self


class CandidateCreateRequest(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    party: str | None = Field(default=None, max_length=200)
    manifesto: str | None = None


class CandidateResponse(BaseModel):
    id: UUID
    election_id: UUID
    name: str
    party: str | None = None
    manifesto: str | None = None
    vote_count: int

    model_config = {"from_attributes": True}


class ElectionResponse(BaseModel):
    id: UUID
    title: str
    description: str | None = None
    region: str | None = None
    start_at: datetime
    end_at: datetime
    status: str
    stopped_at: datetime | None = None
    candidates: list[CandidateResponse] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedElectionResponse(BaseModel):
    items: list[ElectionResponse]
    pagination: PaginationMeta


class StatusRefreshResponse(BaseModel):
    updated: int
