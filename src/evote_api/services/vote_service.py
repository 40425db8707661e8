"""Ballot casting guard.

The unique constraint on (election_id, voter_id) is the authority on
at-most-once voting; the pre-insert lookup only gives a clearer error on the
common path. The ballot insert and the candidate counter increment commit or
roll back together.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime

from loguru import logger
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from evote_api.core.events import VOTE_CAST, ChangeEvent, ChangeFeed
from evote_api.lib.ballot import generate_integrity_token
from evote_api.lib.elections import ElectionStatus, compute_election_status
from evote_api.models.election import Candidate, Election
from evote_api.models.vote import VoteTransaction
from evote_api.services import fraud_service
from evote_api.services.errors import CandidateNotFoundError, ElectionNotFoundError
from evote_api.services.verification_service import eligibility_of, get_voter

DUPLICATE_VOTE_MESSAGE = "You have already voted in this election"


class DuplicateVoteError(ValueError):
    """A ballot already exists for this (election, voter)."""

    def __init__(self, message: str = DUPLICATE_VOTE_MESSAGE) -> None:
        super().__init__(message)


class VoterNotEligibleError(ValueError):
    """The voter does not satisfy the eligibility conditions."""

    def __init__(self, reasons: list[str]) -> None:
        self.reasons = reasons
        super().__init__("Voter is not eligible to vote: " + "; ".join(reasons))


class SessionBlockedError(ValueError):
    """Too many fraud violations in this voting session."""


class ElectionNotOpenError(ValueError):
    """The election is not accepting ballots."""


@dataclass(frozen=True)
class VoteReceipt:
    transaction_id: uuid.UUID
    election_id: uuid.UUID
    candidate_id: uuid.UUID
    voter_id: uuid.UUID
    cast_at: datetime
    integrity_token: str
    risk_score: float | None = None


def _is_duplicate_vote(exc: IntegrityError) -> bool:
    message = str(exc.orig)
    return "uq_vote_election_voter" in message or (
        "vote_transactions.election_id" in message and "vote_transactions.voter_id" in message
    )


async def has_voted(session: AsyncSession, election_id: uuid.UUID, voter_id: uuid.UUID) -> bool:
    result = await session.execute(
        select(VoteTransaction.id).where(
            VoteTransaction.election_id == election_id,
            VoteTransaction.voter_id == voter_id,
        )
    )
    return result.scalar_one_or_none() is not None


async def cast_vote(
    session: AsyncSession,
    *,
    election_id: uuid.UUID,
    candidate_id: uuid.UUID,
    voter_id: uuid.UUID,
    session_id: str | None = None,
    risk_score: float | None = None,
    violation_threshold: int = 3,
    now: datetime | None = None,
    feed: ChangeFeed | None = None,
) -> VoteReceipt:
    """Record one ballot for ``voter_id`` in ``election_id``.

    Args:
        session: The database session.
        election_id: The election being voted in.
        candidate_id: The chosen candidate; must belong to the election.
        voter_id: The voter casting the ballot.
        session_id: Client voting session used for fraud gating. The block is
            scoped to this id, which the client chooses; a new session starts
            with no violations. Defaults to the election id.
        risk_score: Optional face-check risk (1 - confidence) stored on the ballot.
        violation_threshold: Violations tolerated before the session is blocked.
        now: Reference time; defaults to the current UTC time.
        feed: Change feed to notify after commit.

    Returns:
        A VoteReceipt for the stored transaction.

    Raises:
        VoterNotFoundError: If the voter does not exist.
        VoterNotEligibleError: If the voter is not eligible.
        ElectionNotFoundError: If the election does not exist.
        ElectionNotOpenError: If the election is not ACTIVE.
        CandidateNotFoundError: If the candidate is not standing in the election.
        SessionBlockedError: If the voting session has been blocked.
        DuplicateVoteError: If the voter has already voted in the election.
    """
    voter = await get_voter(session, voter_id)
    eligibility = eligibility_of(voter)
    if not eligibility.eligible:
        raise VoterNotEligibleError(eligibility.reasons)

    election = await session.get(Election, election_id)
    if election is None:
        msg = f"Election {election_id} not found"
        raise ElectionNotFoundError(msg)

    cast_at = now or datetime.now(UTC)
    status = compute_election_status(election.start_at, election.end_at, cast_at, election.status)
    if status != ElectionStatus.ACTIVE:
        msg = f"Election is {status}, not accepting votes"
        raise ElectionNotOpenError(msg)

    candidate = await session.get(Candidate, candidate_id)
    if candidate is None or candidate.election_id != election_id:
        msg = f"Candidate {candidate_id} is not standing in election {election_id}"
        raise CandidateNotFoundError(msg)

    if await fraud_service.session_blocked(
        session, voter_id, election_id, session_id, threshold=violation_threshold
    ):
        msg = "Too many security violations. You cannot vote in this session."
        raise SessionBlockedError(msg)

    if await has_voted(session, election_id, voter_id):
        raise DuplicateVoteError

    transaction = VoteTransaction(
        id=uuid.uuid4(),
        election_id=election_id,
        candidate_id=candidate_id,
        voter_id=voter_id,
        cast_at=cast_at,
        integrity_token=generate_integrity_token(election_id, candidate_id, voter_id, cast_at),
        risk_score=risk_score,
    )
    try:
        session.add(transaction)
        await session.flush()
        await session.execute(
            update(Candidate)
            .where(Candidate.id == candidate_id)
            .values(vote_count=Candidate.vote_count + 1)
            .execution_options(synchronize_session=False)
        )
        await session.commit()
    except IntegrityError as e:
        await session.rollback()
        if _is_duplicate_vote(e):
            logger.info("Concurrent duplicate ballot rejected for voter {} in election {}", voter_id, election_id)
            raise DuplicateVoteError from e
        raise
    except Exception:
        await session.rollback()
        raise

    logger.info("Ballot {} recorded in election {}", transaction.id, election_id)
    if feed is not None:
        feed.publish(
            ChangeEvent(VOTE_CAST, str(transaction.id), {"election_id": str(election_id)})
        )

    return VoteReceipt(
        transaction_id=transaction.id,
        election_id=election_id,
        candidate_id=candidate_id,
        voter_id=voter_id,
        cast_at=cast_at,
        integrity_token=transaction.integrity_token,
        risk_score=risk_score,
    )
