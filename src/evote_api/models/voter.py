"""Voter identity record with verification state."""

import uuid
from datetime import date, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    ForeignKey,
    Index,
    String,
    Text,
    Uuid,
    false,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from evote_api.models.base import Base, TimestampMixin, UUIDMixin
from evote_api.models.user import User


class Voter(Base, UUIDMixin, TimestampMixin):
    """A registrant's claimed identity, biometric reference and verification flags.

    ``aadhaar_number`` and ``epic_number`` carry unique constraints: the
    database, not a pre-insert query, is the authority on ID-number uniqueness.
    """

    __tablename__ = "voters"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )

    # Claimed identity
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    father_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    dob: Mapped[date] = mapped_column(Date, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    aadhaar_number: Mapped[str | None] = mapped_column(String(12), nullable=True, unique=True)
    epic_number: Mapped[str | None] = mapped_column(String(20), nullable=True, unique=True)

    # Uploaded document reference
    document_type: Mapped[str] = mapped_column(String(10), nullable=False)
    document_ref: Mapped[str] = mapped_column(String(64), nullable=False)
    document_content_type: Mapped[str] = mapped_column(String(50), nullable=False)

    # Biometrics
    face_embedding: Mapped[list[float] | None] = mapped_column(JSON, nullable=True)
    liveness_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    # Verification state
    verification_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="NOT_STARTED", server_default="NOT_STARTED"
    )
    electoral_roll_verified: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    electoral_roll_record_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("roll_records.id", ondelete="SET NULL"),
        nullable=True,
    )
    roll_match_details: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    manual_verify_requested: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=false()
    )
    manual_verify_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    verification_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Administrative block
    is_blocked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    block_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    user: Mapped[User] = relationship(lazy="joined")

    __table_args__ = (
        CheckConstraint(
            "verification_status IN ('NOT_STARTED', 'PENDING', 'VERIFIED', 'REJECTED')",
            name="ck_voters_verification_status",
        ),
        CheckConstraint("document_type IN ('AADHAAR', 'EPIC')", name="ck_voters_document_type"),
        Index("idx_voters_verification_status", "verification_status"),
        Index("idx_voters_manual_verify_requested", "manual_verify_requested"),
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
