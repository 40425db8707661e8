"""Election service: scheduling, candidates, manual stop and status recomputation."""

import asyncio
import uuid
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from evote_api.core.events import ELECTION_UPDATED, ChangeEvent, ChangeFeed
from evote_api.lib.elections import ElectionStatus, compute_election_status
from evote_api.models.election import Candidate, Election
from evote_api.models.user import User
from evote_api.schemas.election import CandidateCreateRequest, ElectionCreateRequest
from evote_api.services import audit_service
from evote_api.services.errors import ElectionNotFoundError


class ElectionEndedError(ValueError):
    """The election has ended and can no longer be changed."""


def _publish(feed: ChangeFeed | None, election_id: uuid.UUID, status: str) -> None:
    if feed is not None:
        feed.publish(ChangeEvent(ELECTION_UPDATED, str(election_id), {"status": status}))


async def get_election(session: AsyncSession, election_id: uuid.UUID) -> Election:
    """Load an election with its candidates.

    Raises:
        ElectionNotFoundError: If no such election exists.
    """
    result = await session.execute(
        select(Election)
        .where(Election.id == election_id)
        .options(selectinload(Election.candidates))
        .execution_options(populate_existing=True)
    )
    election = result.scalar_one_or_none()
    if election is None:
        msg = f"Election {election_id} not found"
        raise ElectionNotFoundError(msg)
    return election


async def create_election(
    session: AsyncSession,
    request: ElectionCreateRequest,
    *,
    actor: User | None = None,
    now: datetime | None = None,
    feed: ChangeFeed | None = None,
) -> Election:
    """Create an election whose initial status follows the clock."""
    status = compute_election_status(request.start_at, request.end_at, now)
    election = Election(
        title=request.title,
        description=request.description,
        region=request.region,
        start_at=request.start_at,
        end_at=request.end_at,
        status=status.value,
    )
    session.add(election)
    await session.flush()
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_ELECTION_CREATE,
        resource_type="election",
        resource_id=election.id,
        details={"title": election.title},
    )
    await session.commit()
    logger.info("Created election {} ({})", election.id, status)
    _publish(feed, election.id, election.status)
    return await get_election(session, election.id)


async def list_elections(
    session: AsyncSession,
    *,
    status: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Election], int]:
    """List elections by start time, optionally filtered by status.

    Returns:
        Tuple of (elections, total count).
    """
    filters = [Election.status == status.upper()] if status else []
    total = (await session.execute(select(func.count(Election.id)).where(*filters))).scalar_one()
    offset = (page - 1) * page_size
    result = await session.execute(
        select(Election)
        .where(*filters)
        .options(selectinload(Election.candidates))
        .order_by(Election.start_at.desc())
        .offset(offset)
        .limit(page_size)
    )
    return list(result.scalars().all()), total


async def add_candidate(
    session: AsyncSession,
    election_id: uuid.UUID,
    request: CandidateCreateRequest,
    *,
    actor: User | None = None,
) -> Candidate:
    """Add a candidate to an election that has not ended.

    Raises:
        ElectionNotFoundError: If the election does not exist.
        ElectionEndedError: If the election has ended.
    """
    election = await get_election(session, election_id)
    if election.status == ElectionStatus.ENDED:
        msg = "Cannot add candidates to an election that has ended"
        raise ElectionEndedError(msg)

    candidate = Candidate(
        election_id=election.id,
        name=request.name,
        party=request.party,
        manifesto=request.manifesto,
        vote_count=0,
    )
    session.add(candidate)
    await session.flush()
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_CANDIDATE_ADD,
        resource_type="candidate",
        resource_id=candidate.id,
        details={"election_id": str(election.id)},
    )
    await session.commit()
    return candidate


async def stop_election(
    session: AsyncSession,
    election_id: uuid.UUID,
    *,
    actor: User | None = None,
    now: datetime | None = None,
    feed: ChangeFeed | None = None,
) -> Election:
    """Manually end an election. ENDED is sticky; stopping twice is a no-op.

    Raises:
        ElectionNotFoundError: If the election does not exist.
    """
    election = await get_election(session, election_id)
    if election.status == ElectionStatus.ENDED:
        return election

    election.status = ElectionStatus.ENDED.value
    election.stopped_at = now or datetime.now(UTC)
    audit_service.record_action(
        session,
        actor=actor,
        action=audit_service.ACTION_ELECTION_STOP,
        resource_type="election",
        resource_id=election.id,
    )
    await session.commit()
    logger.info("Election {} stopped manually", election.id)
    _publish(feed, election.id, election.status)
    return election


async def refresh_election_statuses(
    session: AsyncSession,
    *,
    now: datetime | None = None,
    feed: ChangeFeed | None = None,
) -> int:
    """Recompute the clock-derived status of every election not yet ENDED.

    Each write is a compare-and-set guarded by ``status != 'ENDED'`` so a
    concurrent manual stop is never overwritten.

    Returns:
        Number of elections whose status changed.
    """
    now = now or datetime.now(UTC)
    result = await session.execute(
        select(Election.id, Election.start_at, Election.end_at, Election.status).where(
            Election.status != ElectionStatus.ENDED.value
        )
    )

    changed: list[tuple[uuid.UUID, str]] = []
    for election_id, start_at, end_at, current in result.all():
        computed = compute_election_status(start_at, end_at, now, current)
        if computed == current:
            continue
        outcome = await session.execute(
            update(Election)
            .where(Election.id == election_id, Election.status != ElectionStatus.ENDED.value)
            .values(status=computed.value)
            .execution_options(synchronize_session=False)
        )
        if outcome.rowcount:
            changed.append((election_id, computed.value))

    await session.commit()
    for election_id, status in changed:
        logger.info("Election {} is now {}", election_id, status)
        _publish(feed, election_id, status)
    return len(changed)


async def election_status_loop(interval: int, feed: ChangeFeed | None = None) -> None:
    """Background asyncio loop that recomputes election statuses.

    Args:
        interval: Seconds between refresh cycles.
        feed: Change feed to notify of status changes.
    """
    from evote_api.core.database import get_session_factory

    logger.info("Election status loop started (interval={}s)", interval)

    while True:
        try:
            await asyncio.sleep(interval)
            factory = get_session_factory()
            async with factory() as session:
                count = await refresh_election_statuses(session, feed=feed)
                if count > 0:
                    logger.info("Updated status of {} election(s)", count)
        except asyncio.CancelledError:
            logger.info("Election status loop cancelled")
            break
        except Exception:
            logger.exception("Election status loop error")
