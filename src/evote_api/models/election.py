"""Election and candidate ORM models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from evote_api.models.base import Base, TimestampMixin, UUIDMixin


class Election(Base, UUIDMixin, TimestampMixin):
    """A scheduled election. ``status`` is derived from the clock until manually stopped."""

    __tablename__ = "elections"

    title: Mapped[str] = mapped_column(String(300), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    region: Mapped[str | None] = mapped_column(String(200), nullable=True)
    start_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="UPCOMING", server_default="UPCOMING")
    stopped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    candidates: Mapped[list["Candidate"]] = relationship(
        back_populates="election",
        cascade="all, delete-orphan",
        order_by="Candidate.name",
    )

    __table_args__ = (
        CheckConstraint("status IN ('UPCOMING', 'ACTIVE', 'ENDED')", name="ck_elections_status"),
        CheckConstraint("end_at > start_at", name="ck_elections_window"),
        Index("idx_elections_status", "status"),
    )


class Candidate(Base, UUIDMixin):
    """A candidate standing in one election, with a running vote counter."""

    __tablename__ = "candidates"

    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    party: Mapped[str | None] = mapped_column(String(200), nullable=True)
    manifesto: Mapped[str | None] = mapped_column(Text, nullable=True)
    vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0, server_default="0")

    election: Mapped[Election] = relationship(back_populates="candidates")

    __table_args__ = (
        CheckConstraint("vote_count >= 0", name="ck_candidates_vote_count"),
        Index("idx_candidates_election_id", "election_id"),
    )
