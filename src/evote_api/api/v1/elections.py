"""Election API endpoints.

GET /elections, GET /elections/{id}: public
POST /elections, POST /elections/{id}/candidates, POST /elections/{id}/stop,
POST /elections/refresh-status: admin only
"""

import math
import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.dependencies import get_async_session, get_feed, require_role
from evote_api.core.events import ChangeFeed
from evote_api.core.security import ROLE_ADMIN
from evote_api.models.election import Candidate, Election
from evote_api.models.user import User
from evote_api.schemas.common import PaginationMeta
from evote_api.schemas.election import (
    CandidateCreateRequest,
    CandidateResponse,
    ElectionCreateRequest,
    ElectionResponse,
    PaginatedElectionResponse,
    StatusRefreshResponse,
)
from evote_api.services import election_service

elections_router = APIRouter(prefix="/elections", tags=["elections"])


@elections_router.get("", response_model=PaginatedElectionResponse)
async def list_elections(
    session: Annotated[AsyncSession, Depends(get_async_session)],
    status: str | None = Query(default=None, description="Filter by status"),
    page: int = Query(default=1, ge=1, description="Page number"),
    page_size: int = Query(default=20, ge=1, le=100, description="Results per page"),
) -> PaginatedElectionResponse:
    """List elections. Public endpoint."""
    items, total = await election_service.list_elections(session, status=status, page=page, page_size=page_size)
    return PaginatedElectionResponse(
        items=[ElectionResponse.model_validate(e) for e in items],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)),
        ),
    )


@elections_router.post("", response_model=ElectionResponse, status_code=201)
async def create_election(
    request: ElectionCreateRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Election:
    return await election_service.create_election(session, request, actor=admin, feed=feed)


@elections_router.post("/refresh-status", response_model=StatusRefreshResponse)
async def refresh_status(
    _admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> StatusRefreshResponse:
    """Recompute clock-derived statuses now instead of waiting for the loop."""
    updated = await election_service.refresh_election_statuses(session, feed=feed)
    return StatusRefreshResponse(updated=updated)


@elections_router.get("/{election_id}", response_model=ElectionResponse)
async def get_election(
    election_id: uuid.UUID,
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Election:
    return await election_service.get_election(session, election_id)


@elections_router.post("/{election_id}/candidates", response_model=CandidateResponse, status_code=201)
async def add_candidate(
    election_id: uuid.UUID,
    request: CandidateCreateRequest,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
) -> Candidate:
    return await election_service.add_candidate(session, election_id, request, actor=admin)


@elections_router.post("/{election_id}/stop", response_model=ElectionResponse)
async def stop_election(
    election_id: uuid.UUID,
    admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    feed: Annotated[ChangeFeed, Depends(get_feed)],
) -> Election:
    """End an election now. The status stays ENDED regardless of its schedule."""
    return await election_service.stop_election(session, election_id, actor=admin, feed=feed)
