"""Document extraction Pydantic v2 schemas."""

from pydantic import BaseModel

from evote_api.lib.documents import DocumentType
from evote_api.schemas.common import Base64Payload


class DocumentExtractRequest(BaseModel):
    document: Base64Payload
    document_type: DocumentType
    document_content_type: str | None = None


class ExtractedFieldsResponse(BaseModel):
    """Best-effort OCR output for form prefill. Any field may be missing."""

    name: str | None = None
    dob: str | None = None
    id_number: str | None = None
    state: str | None = None
    district: str | None = None
    city: str | None = None
    email: str | None = None
    phone: str | None = None
