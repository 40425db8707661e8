"""Vote transaction model."""

import uuid
from datetime import datetime

from sqlalchemy import DateTime, Float, ForeignKey, Index, String, UniqueConstraint, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from evote_api.models.base import Base, UUIDMixin, utcnow


class VoteTransaction(Base, UUIDMixin):
    """A recorded ballot. At most one per (election, voter), enforced by the store."""

    __tablename__ = "vote_transactions"

    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="RESTRICT"),
        nullable=False,
    )
    candidate_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("candidates.id", ondelete="RESTRICT"),
        nullable=False,
    )
    voter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("voters.id", ondelete="RESTRICT"),
        nullable=False,
    )
    cast_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
    )
    integrity_token: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    risk_score: Mapped[float | None] = mapped_column(Float, nullable=True)

    __table_args__ = (
        UniqueConstraint("election_id", "voter_id", name="uq_vote_election_voter"),
        Index("idx_vote_transactions_candidate_id", "candidate_id"),
    )
