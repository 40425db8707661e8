"""Voter registration and verification Pydantic v2 schemas."""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

from evote_api.lib.documents import DocumentType
from evote_api.lib.verification import VerificationStatus
from evote_api.schemas.common import Base64Payload, PaginationMeta
from evote_api.schemas.roll import RollComparisonResponse


def _compact(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    compact = "".join(value.split())
    return compact or None


class RegistrationRequest(BaseModel):
    """Claimed identity, account credentials, ID document and live face frames.

    Binary payloads are base64 strings (data-URI prefixes accepted).
    """

    username: str = Field(min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(min_length=8)

    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    father_name: str | None = Field(default=None, max_length=200)
    dob: date
    phone: str | None = Field(default=None, max_length=20)
    state: str | None = Field(default=None, max_length=100)
    district: str | None = Field(default=None, max_length=100)
    city: str | None = Field(default=None, max_length=100)
    aadhaar_number: str | None = Field(default=None, description="12-digit Aadhaar number")
    epic_number: str | None = Field(default=None, description="EPIC (voter ID card) number")

    document_type: DocumentType
    document: Base64Payload = Field(description="Uploaded ID document (image or PDF)")
    document_content_type: str | None = None
    frames: list[Base64Payload] = Field(default_factory=list, description="Live face capture frames")

    @field_validator("aadhaar_number", mode="before")
    @classmethod
    def validate_aadhaar(cls, v: str | None) -> str | None:
        v = _compact(v)
        if isinstance(v, str) and (len(v) != 12 or not v.isdigit()):
            msg = "Aadhaar number must be 12 digits"
            raise ValueError(msg)
        return v

    @field_validator("epic_number", mode="before")
    @classmethod
    def validate_epic(cls, v: str | None) -> str | None:
        v = _compact(v)
        if not isinstance(v, str):
            return v
        v = v.upper()
        if not v.isalnum() or not 6 <= len(v) <= 20:
            msg = "EPIC number must be 6-20 alphanumeric characters"
            raise ValueError(msg)
        return v

    @model_validator(mode="after")
    def require_document_id(self) -> "RegistrationRequest":
        if self.document_type == DocumentType.AADHAAR and not self.aadhaar_number:
            msg = "Aadhaar number is required for an Aadhaar document"
            raise ValueError(msg)
        if self.document_type == DocumentType.EPIC and not self.epic_number:
            msg = "EPIC number is required for an EPIC document"
            raise ValueError(msg)
        return self


class ReverificationRequest(BaseModel):
    """Fresh document and live frames for re-running the verification pipeline."""

    document: Base64Payload
    document_content_type: str | None = None
    frames: list[Base64Payload] = Field(default_factory=list)


class FaceMatchResponse(BaseModel):
    match: bool
    distance: float
    confidence: float
    threshold: float
    risk_score: float


class VerificationOutcomeResponse(BaseModel):
    """Result of a registration or re-verification."""

    voter_id: UUID
    user_id: UUID
    verification_status: VerificationStatus
    electoral_roll_verified: bool
    manual_verify_requested: bool
    liveness_verified: bool
    reason: str
    roll_match: RollComparisonResponse
    face_match: FaceMatchResponse | None = None


class VoterResponse(BaseModel):
    """Voter record as returned to the owner or an administrator.

    ID numbers and the face embedding are never returned.
    """

    id: UUID
    user_id: UUID
    first_name: str
    last_name: str
    father_name: str | None = None
    dob: date
    phone: str | None = None
    address_state: str | None = None
    address_district: str | None = None
    address_city: str | None = None
    document_type: str
    verification_status: str
    electoral_roll_verified: bool
    electoral_roll_record_id: UUID | None = None
    roll_match_details: dict[str, Any] | None = None
    manual_verify_requested: bool
    manual_verify_requested_at: datetime | None = None
    liveness_verified: bool
    verification_note: str | None = None
    is_blocked: bool
    block_reason: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PaginatedVoterResponse(BaseModel):
    items: list[VoterResponse]
    pagination: PaginationMeta


class EligibilityResponse(BaseModel):
    eligible: bool
    reasons: list[str]


class StatusUpdateRequest(BaseModel):
    """Admin resolution of a review."""

    status: VerificationStatus
    note: str | None = Field(default=None, max_length=1000)


class CrossVerifyRequest(BaseModel):
    roll_record_id: UUID


class BlockRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class FaceVerificationRequest(BaseModel):
    """Live frames checked against the stored face reference before voting."""

    frames: list[Base64Payload] = Field(default_factory=list)
    election_id: UUID | None = None
    session_id: str | None = Field(default=None, max_length=64)
