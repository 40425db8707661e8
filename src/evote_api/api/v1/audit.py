"""Audit log API endpoint (admin only)."""

import math
from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.dependencies import get_async_session, require_role
from evote_api.core.security import ROLE_ADMIN
from evote_api.models.user import User
from evote_api.schemas.audit import AuditLogResponse, PaginatedAuditLogResponse
from evote_api.schemas.common import PaginationMeta
from evote_api.services import audit_service

audit_router = APIRouter(prefix="/audit", tags=["audit"])


@audit_router.get("/logs", response_model=PaginatedAuditLogResponse)
async def list_audit_logs(
    _admin: Annotated[User, Depends(require_role(ROLE_ADMIN))],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    action: str | None = Query(default=None),
    resource_type: str | None = Query(default=None),
    start_time: datetime | None = Query(default=None),
    end_time: datetime | None = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: int = Query(default=20, ge=1, le=100),
) -> PaginatedAuditLogResponse:
    logs, total = await audit_service.query_audit_logs(
        session,
        action=action,
        resource_type=resource_type,
        start_time=start_time,
        end_time=end_time,
        page=page,
        page_size=page_size,
    )
    return PaginatedAuditLogResponse(
        items=[AuditLogResponse.model_validate(entry) for entry in logs],
        pagination=PaginationMeta(
            total=total,
            page=page,
            page_size=page_size,
            total_pages=max(1, math.ceil(total / page_size)),
        ),
    )
