"""Uploaded document media-type sniffing."""

from enum import StrEnum

_SIGNATURES: list[tuple[bytes, str]] = [
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"%PDF-", "application/pdf"),
]


class DocumentType(StrEnum):
    """Supported identity document kinds."""

    AADHAAR = "AADHAAR"
    EPIC = "EPIC"


def detect_media_type(content: bytes, declared: str | None = None) -> str:
    """Determine the media type of an upload from its magic bytes.

    Falls back to the declared content type when the signature is unknown.

    Args:
        content: Raw uploaded bytes.
        declared: Client-declared content type, if any.

    Returns:
        A media type string such as ``image/jpeg`` or ``application/pdf``.
    """
    for signature, media_type in _SIGNATURES:
        if content.startswith(signature):
            return media_type
    if len(content) >= 12 and content[:4] == b"RIFF" and content[8:12] == b"WEBP":
        return "image/webp"
    return (declared or "application/octet-stream").lower()


def is_comparable_image(media_type: str) -> bool:
    """Whether a face can be extracted from this media type for biometric comparison."""
    return media_type in {"image/jpeg", "image/png", "image/webp", "image/gif"}
