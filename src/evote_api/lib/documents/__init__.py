"""Documents library: media sniffing and best-effort OCR field extraction.

Public API:
    - DocumentType: AADHAAR / EPIC
    - detect_media_type / is_comparable_image: Upload classification
    - ExtractedFields: OCR result dataclass
    - BaseDocumentExtractor / GeminiDocumentExtractor: OCR providers
    - DocumentServiceError: OCR service unavailable
"""

from evote_api.lib.documents.media import DocumentType, detect_media_type, is_comparable_image
from evote_api.lib.documents.ocr import (
    BaseDocumentExtractor,
    DocumentServiceError,
    ExtractedFields,
    GeminiDocumentExtractor,
)

__all__ = [
    "BaseDocumentExtractor",
    "DocumentServiceError",
    "DocumentType",
    "ExtractedFields",
    "GeminiDocumentExtractor",
    "detect_media_type",
    "is_comparable_image",
]
