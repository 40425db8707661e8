"""Document extraction API endpoint.

POST /documents/extract: best-effort OCR for registration form prefill.
"""

from typing import Annotated

from fastapi import APIRouter, Depends

from evote_api.core.config import Settings, get_settings
from evote_api.core.dependencies import get_document_extractor
from evote_api.lib.documents import BaseDocumentExtractor
from evote_api.schemas.document import DocumentExtractRequest, ExtractedFieldsResponse
from evote_api.services import document_service

documents_router = APIRouter(prefix="/documents", tags=["documents"])


@documents_router.post("/extract", response_model=ExtractedFieldsResponse)
async def extract_document(
    request: DocumentExtractRequest,
    settings: Annotated[Settings, Depends(get_settings)],
    extractor: Annotated[BaseDocumentExtractor, Depends(get_document_extractor)],
) -> ExtractedFieldsResponse:
    """Read identity fields from an ID document image. Public endpoint."""
    fields = await document_service.extract_document_fields(
        extractor,
        request.document,
        request.document_type,
        declared_content_type=request.document_content_type,
        timeout=settings.gemini_timeout,
    )
    return ExtractedFieldsResponse(**fields.to_dict())
