"""ID document OCR for registration form prefill."""

import asyncio

from evote_api.lib.documents import (
    BaseDocumentExtractor,
    DocumentServiceError,
    DocumentType,
    ExtractedFields,
    detect_media_type,
    is_comparable_image,
)


class UnsupportedDocumentError(ValueError):
    """The upload is not an image the extractor can read."""


async def extract_document_fields(
    extractor: BaseDocumentExtractor,
    content: bytes,
    document_type: DocumentType,
    *,
    declared_content_type: str | None = None,
    timeout: float = 30.0,
) -> ExtractedFields:
    """Read identity fields from an uploaded document image.

    The result is advisory; verification decisions never use it.

    Raises:
        UnsupportedDocumentError: If the upload is empty or not an image.
        DocumentServiceError: If the extraction service is unavailable.
    """
    if not content:
        msg = "Document is empty"
        raise UnsupportedDocumentError(msg)
    media_type = detect_media_type(content, declared_content_type)
    if not is_comparable_image(media_type):
        msg = f"Cannot extract fields from {media_type}; upload an image of the document"
        raise UnsupportedDocumentError(msg)

    try:
        return await asyncio.wait_for(extractor.extract_fields(content, document_type), timeout=timeout)
    except TimeoutError as e:
        msg = f"Document service did not respond within {timeout:.0f}s"
        raise DocumentServiceError(msg) from e
