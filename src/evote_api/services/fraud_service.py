"""Fraud signal aggregation over the append-only alert trail.

Alerts never touch recorded ballots; they only gate future vote attempts for
the same (voter, election, session).
"""

import uuid
from dataclasses import dataclass

from loguru import logger
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.events import FRAUD_ALERT, ChangeEvent, ChangeFeed
from evote_api.lib.fraud import VIOLATION_LEVELS, FraudSignal, assess_signal, is_session_blocked
from evote_api.models.election import Election
from evote_api.models.fraud_alert import FraudAlert
from evote_api.models.voter import Voter
from evote_api.services.errors import ElectionNotFoundError, VoterNotFoundError


@dataclass(frozen=True)
class FraudReport:
    alert: FraudAlert
    violation_count: int
    session_blocked: bool


def resolve_session_id(election_id: uuid.UUID, session_id: str | None) -> str:
    """Signals without an explicit session share one session per election."""
    return session_id or str(election_id)


async def count_violations(
    session: AsyncSession,
    voter_id: uuid.UUID,
    election_id: uuid.UUID,
    session_id: str | None = None,
) -> int:
    """Count MEDIUM and HIGH alerts for one voting session."""
    query = select(func.count(FraudAlert.id)).where(
        FraudAlert.voter_id == voter_id,
        FraudAlert.election_id == election_id,
        FraudAlert.session_id == resolve_session_id(election_id, session_id),
        FraudAlert.risk_level.in_([level.value for level in VIOLATION_LEVELS]),
    )
    return (await session.execute(query)).scalar_one()


async def session_blocked(
    session: AsyncSession,
    voter_id: uuid.UUID,
    election_id: uuid.UUID,
    session_id: str | None = None,
    *,
    threshold: int = 3,
) -> bool:
    violations = await count_violations(session, voter_id, election_id, session_id)
    return is_session_blocked(violations, threshold)


async def report_signal(
    session: AsyncSession,
    *,
    voter_id: uuid.UUID,
    election_id: uuid.UUID,
    signal: FraudSignal | str,
    score: float | None = None,
    session_id: str | None = None,
    details: str | None = None,
    threshold: int = 3,
    feed: ChangeFeed | None = None,
) -> FraudReport:
    """Record a session signal as a fraud alert.

    Args:
        session: The database session.
        voter_id: The voter whose session raised the signal.
        election_id: The election being voted in.
        signal: The signal kind.
        score: Environment risk score, for ENVIRONMENT_RISK signals.
        session_id: Client voting session; defaults to one per election.
        details: Free-text context.
        threshold: Violations tolerated before the session is blocked.
        feed: Change feed to notify after commit.

    Returns:
        FraudReport with the stored alert and the session's updated standing.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        ElectionNotFoundError: If the election does not exist.
        ValueError: If the signal or score is invalid.
    """
    assessment = assess_signal(signal, score)

    if await session.get(Voter, voter_id) is None:
        msg = f"Voter {voter_id} not found"
        raise VoterNotFoundError(msg)
    if await session.get(Election, election_id) is None:
        msg = f"Election {election_id} not found"
        raise ElectionNotFoundError(msg)

    resolved_session = resolve_session_id(election_id, session_id)
    alert = FraudAlert(
        voter_id=voter_id,
        election_id=election_id,
        session_id=resolved_session,
        signal=assessment.signal.value,
        reason=assessment.reason,
        risk_level=assessment.risk_level.value,
        risk_score=assessment.risk_score,
        details=details,
    )
    session.add(alert)
    await session.commit()

    violations = await count_violations(session, voter_id, election_id, resolved_session)
    blocked = is_session_blocked(violations, threshold)
    if assessment.is_violation:
        logger.warning(
            "Fraud signal {} ({}) for voter {} in election {}: {} violation(s)",
            assessment.signal,
            assessment.risk_level,
            voter_id,
            election_id,
            violations,
        )
    if blocked:
        logger.warning("Voting session blocked for voter {} in election {}", voter_id, election_id)

    if feed is not None:
        feed.publish(
            ChangeEvent(
                FRAUD_ALERT,
                str(alert.id),
                {
                    "voter_id": str(voter_id),
                    "election_id": str(election_id),
                    "risk_level": assessment.risk_level.value,
                    "session_blocked": blocked,
                },
            )
        )
    return FraudReport(alert=alert, violation_count=violations, session_blocked=blocked)


async def list_alerts(
    session: AsyncSession,
    *,
    voter_id: uuid.UUID | None = None,
    election_id: uuid.UUID | None = None,
    risk_level: str | None = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[FraudAlert], int]:
    """List alerts newest first with optional filters.

    Returns:
        Tuple of (alerts, total count).
    """
    filters = []
    if voter_id is not None:
        filters.append(FraudAlert.voter_id == voter_id)
    if election_id is not None:
        filters.append(FraudAlert.election_id == election_id)
    if risk_level is not None:
        filters.append(FraudAlert.risk_level == risk_level.upper())

    total = (await session.execute(select(func.count(FraudAlert.id)).where(*filters))).scalar_one()
    offset = (page - 1) * page_size
    result = await session.execute(
        select(FraudAlert).where(*filters).order_by(FraudAlert.created_at.desc()).offset(offset).limit(page_size)
    )
    return list(result.scalars().all()), total
