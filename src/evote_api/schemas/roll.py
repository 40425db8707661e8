"""Electoral roll Pydantic v2 schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class RollRecordCreateRequest(BaseModel):
    """A single official roll entry added by an administrator."""

    full_name: str | None = Field(default=None, max_length=200)
    father_name: str | None = Field(default=None, max_length=200)
    dob: date | None = None
    age: int | None = Field(default=None, ge=0, le=150)
    gender: str | None = Field(default=None, max_length=20)
    address_state: str | None = Field(default=None, max_length=100)
    address_district: str | None = Field(default=None, max_length=100)
    address_city: str | None = Field(default=None, max_length=100)
    full_address: str | None = None
    aadhaar_number: str | None = Field(default=None, max_length=12)
    epic_number: str | None = Field(default=None, max_length=20)
    polling_booth: str | None = Field(default=None, max_length=200)

    @model_validator(mode="after")
    def require_identifier(self) -> "RollRecordCreateRequest":
        if not self.full_name and not self.epic_number:
            msg = "A roll record needs a name or an EPIC number"
            raise ValueError(msg)
        return self


class RollRecordResponse(BaseModel):
    id: UUID
    full_name: str | None = None
    father_name: str | None = None
    dob: date | None = None
    age: int | None = None
    gender: str | None = None
    address_state: str | None = None
    address_district: str | None = None
    address_city: str | None = None
    full_address: str | None = None
    aadhaar_number: str | None = None
    epic_number: str | None = None
    polling_booth: str | None = None
    source: str | None = None
    created_at: datetime

    model_config = {"from_attributes": True}


class RollImportResponse(BaseModel):
    imported: int
    source: str


class RollComparisonResponse(BaseModel):
    """Per-field comparison of claimed identity against the roll."""

    found: bool
    verified: bool
    outcome: str
    match_score: float
    message: str
    name_match: bool
    dob_match: bool
    father_name_match: bool
    address_match: bool
    mismatched_fields: list[str]
    record_id: UUID | None = None
