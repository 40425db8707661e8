"""Audit log Pydantic v2 schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel

from evote_api.schemas.common import PaginationMeta


class AuditLogResponse(BaseModel):
    id: UUID
    timestamp: datetime
    actor_id: UUID | None = None
    actor_username: str
    action: str
    resource_type: str
    resource_id: str | None = None
    details: dict[str, Any] | None = None

    model_config = {"from_attributes": True}


class PaginatedAuditLogResponse(BaseModel):
    items: list[AuditLogResponse]
    pagination: PaginationMeta
