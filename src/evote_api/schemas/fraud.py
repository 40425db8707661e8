"""Fraud signal Pydantic v2 schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from evote_api.lib.fraud import FraudSignal, RiskLevel
from evote_api.schemas.common import PaginationMeta


class FraudSignalRequest(BaseModel):
    election_id: UUID
    signal: FraudSignal
    score: float | None = Field(default=None, ge=0, le=1, description="Environment risk score")
    session_id: str | None = Field(default=None, max_length=64)
    details: str | None = Field(default=None, max_length=2000)


class FraudSignalResponse(BaseModel):
    alert_id: UUID
    risk_level: RiskLevel
    violation_count: int
    session_blocked: bool


class FraudAlertResponse(BaseModel):
    id: UUID
    voter_id: UUID
    election_id: UUID
    session_id: str
    signal: str
    reason: str
    risk_level: str
    risk_score: float | None = None
    details: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaginatedFraudAlertResponse(BaseModel):
    items: list[FraudAlertResponse]
    pagination: PaginationMeta
