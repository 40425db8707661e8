"""Audit logging service.

Administrative and verification actions are recorded in the same transaction
as the change they describe: ``record_action`` only adds to the session and
the caller commits.
"""

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.models.audit_log import AuditLog
from evote_api.models.user import User

ACTION_REGISTER = "voter.register"
ACTION_REVERIFY = "voter.reverify"
ACTION_STATUS_OVERRIDE = "voter.status_override"
ACTION_MANUAL_REQUEST = "voter.manual_request"
ACTION_CROSS_VERIFY = "voter.cross_verify"
ACTION_BLOCK = "voter.block"
ACTION_UNBLOCK = "voter.unblock"
ACTION_ELECTION_CREATE = "election.create"
ACTION_ELECTION_STOP = "election.stop"
ACTION_CANDIDATE_ADD = "candidate.add"
ACTION_ROLL_IMPORT = "roll.import"
ACTION_ROLL_ADD = "roll.add"

SYSTEM_ACTOR = "system"


def record_action(
    session: AsyncSession,
    *,
    actor: User | None,
    action: str,
    resource_type: str,
    resource_id: uuid.UUID | str | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """Stage an audit log entry on ``session``.

    Args:
        session: The database session; the caller commits.
        actor: The acting user, or None for system actions.
        action: One of the ``ACTION_*`` constants.
        resource_type: The resource type affected.
        resource_id: The affected resource's ID.
        details: Additional JSON-serializable context. Must not carry ID numbers.

    Returns:
        The pending AuditLog record.
    """
    entry = AuditLog(
        actor_id=actor.id if actor else None,
        actor_username=actor.username if actor else SYSTEM_ACTOR,
        action=action,
        resource_type=resource_type,
        resource_id=str(resource_id) if resource_id is not None else None,
        details=details,
    )
    session.add(entry)
    return entry


async def query_audit_logs(
    session: AsyncSession,
    *,
    actor_id: uuid.UUID | None = None,
    action: str | None = None,
    resource_type: str | None = None,
    start_time: datetime | None = None,
    end_time: datetime | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[AuditLog], int]:
    """Query audit logs with optional filters, newest first.

    Returns:
        Tuple of (audit log records, total count).
    """
    filters = []
    if actor_id is not None:
        filters.append(AuditLog.actor_id == actor_id)
    if action is not None:
        filters.append(AuditLog.action == action)
    if resource_type is not None:
        filters.append(AuditLog.resource_type == resource_type)
    if start_time is not None:
        filters.append(AuditLog.timestamp >= start_time)
    if end_time is not None:
        filters.append(AuditLog.timestamp <= end_time)

    total = (await session.execute(select(func.count(AuditLog.id)).where(*filters))).scalar_one()

    offset = (page - 1) * page_size
    query = select(AuditLog).where(*filters).order_by(AuditLog.timestamp.desc()).offset(offset).limit(page_size)
    result = await session.execute(query)
    return list(result.scalars().all()), total
