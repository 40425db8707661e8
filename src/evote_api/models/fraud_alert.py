"""FraudAlert model: append-only audit trail of session signals."""

import uuid
from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, Float, ForeignKey, Index, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from evote_api.models.base import Base, UUIDMixin, utcnow


class FraudAlert(Base, UUIDMixin):
    """An advisory alert raised during a voting session. Never updated or deleted."""

    __tablename__ = "fraud_alerts"

    voter_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("voters.id", ondelete="CASCADE"),
        nullable=False,
    )
    election_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("elections.id", ondelete="CASCADE"),
        nullable=False,
    )
    session_id: Mapped[str] = mapped_column(String(64), nullable=False)
    signal: Mapped[str] = mapped_column(String(30), nullable=False)
    reason: Mapped[str] = mapped_column(String(200), nullable=False)
    risk_level: Mapped[str] = mapped_column(String(10), nullable=False)
    risk_score: Mapped[float | None] = mapped_column(Float, nullable=True)
    details: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("risk_level IN ('LOW', 'MEDIUM', 'HIGH')", name="ck_fraud_alerts_risk_level"),
        Index("idx_fraud_alerts_session", "voter_id", "election_id", "session_id"),
        Index("idx_fraud_alerts_created_at", "created_at"),
    )
