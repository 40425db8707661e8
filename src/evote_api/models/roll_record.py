"""Official electoral roll record (authoritative reference data)."""

from datetime import date, datetime

from sqlalchemy import Date, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from evote_api.models.base import Base, UUIDMixin, utcnow


class RollRecord(Base, UUIDMixin):
    """One row of an uploaded official voter list. Read-mostly."""

    __tablename__ = "roll_records"

    full_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    father_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    dob: Mapped[date | None] = mapped_column(Date, nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address_state: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_district: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    full_address: Mapped[str | None] = mapped_column(Text, nullable=True)
    aadhaar_number: Mapped[str | None] = mapped_column(String(12), nullable=True)
    epic_number: Mapped[str | None] = mapped_column(String(20), nullable=True)
    polling_booth: Mapped[str | None] = mapped_column(String(200), nullable=True)
    source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        Index("idx_roll_records_aadhaar_number", "aadhaar_number"),
        Index("idx_roll_records_epic_number", "epic_number"),
        Index("idx_roll_records_state_district", "address_state", "address_district"),
    )
