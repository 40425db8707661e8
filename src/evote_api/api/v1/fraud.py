"""Fraud signal API endpoints.

POST /fraud/signals: report a session signal as the authenticated voter
GET /fraud/alerts: list alerts (admin only)
"""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.config import Settings, get_settings
from evote_api.core.dependencies import get_async_session, get_current_voter, get_feed, require_role
from evote_api.core.events import ChangeFeed
from evote_api.core.security import ROLE_ADMIN
from evote_api.models.user import User
from evote_api.models.voter import Voter
from evote_api.schemas.common import PaginationMeta
from evote_api.schemas.fraud import (
    FraudAlertResponse,
    FraudSignalRequest,
    FraudSignalResponse,
    PaginatedFraudAlertResponse,
)
from evote_api.services import fraud_service

fraud_router = APIRouter(prefix="/fraud", tags=["fraud"])


@fraud_router.post("/signals", response_model=FraudSignalResponse, status_code=201)
async def report_signal(
    request: FraudSignalRequest,
    voter: Annotated[Voter, Depends(get_current_voter)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> FraudSignalResponse:
    """Record a tab switch, focus loss or environment risk signal."""
    report = await fraud_service.report_signal(
        session,
        voter_id=voter.id,
        election_id=request.election_id,
        signal=request.signal,
        score=request.score,
        session_id=request.session_id,
        details=request.details,
        threshold=settings.fraud_violation_threshold,
        feed=feed,
    )
    return FraudSignalResponse(
        alert_id=report.alert.id,
        risk_level=report.alert.risk_level,
        violation_count=report.violation_count,
        session_blocked=report.session_blocked,
    )


@fraud_router.get("/alerts", response_model=PaginatedFraudAlertResponse)
async def list_alerts(
    _admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    voter_id: uuid.UUID | None = Query(default=None),
    election_id: uuid.UUID | None = Query(default=None),
    risk_level: str | None = Query(default=None, description="LOW, MEDIUM or HIGH"),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedFraudAlertResponse:
    alerts, total = await fraud_service.list_alerts(
        session,
        voter_id=voter_id,
        election_id=election_id,
        risk_level=risk_level,
        page=page,
        page_size=page_size,
    )
    return PaginatedFraudAlertResponse(
        items=[FraudAlertResponse.model_validate(a) for a in alerts],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)),
        ),
    )
