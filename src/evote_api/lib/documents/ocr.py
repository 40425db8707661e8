"""Best-effort ID document field extraction through Google Gemini.

Extraction output is only used to prefill registration forms; it never feeds
a verification decision.
"""

import base64
import json
from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass
from typing import Any

import httpx
from loguru import logger

from evote_api.lib.documents.media import DocumentType

DEFAULT_TIMEOUT = 30.0

_PROMPTS: dict[DocumentType, str] = {
    DocumentType.AADHAAR: (
        "Analyze this image of an Aadhaar Card. Extract the Name, Date of Birth (dob in YYYY-MM-DD format), "
        "Address (State, District, City), 12-digit Aadhaar Number, and contact details if available "
        "(Email, Phone/Mobile). Return JSON: { name, dob, state, district, city, idNumber, email, phone }."
    ),
    DocumentType.EPIC: (
        "Analyze this image of a Voter ID (EPIC) Card. Extract the Name and the EPIC Number "
        "(alphanumeric ID). Return JSON: { name, idNumber }."
    ),
}

_FIELD_ALIASES: dict[str, str] = {
    "name": "name",
    "dob": "dob",
    "idNumber": "id_number",
    "id_number": "id_number",
    "state": "state",
    "district": "district",
    "city": "city",
    "email": "email",
    "phone": "phone",
    "mobile": "phone",
}


class DocumentServiceError(Exception):
    """Raised when the document extraction service is unavailable or misconfigured."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


@dataclass
class ExtractedFields:
    """Fields read from an ID document. Any field may be missing."""

    name: str | None = None
    dob: str | None = None
    id_number: str | None = None
    state: str | None = None
    district: str | None = None
    city: str | None = None
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> "ExtractedFields":
        values: dict[str, str] = {}
        for key, raw in data.items():
            field_name = _FIELD_ALIASES.get(key)
            if field_name is None or raw is None:
                continue
            text = str(raw).strip()
            if text:
                values.setdefault(field_name, text)
        return cls(**values)

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    @property
    def is_empty(self) -> bool:
        return not any(self.to_dict().values())


class BaseDocumentExtractor(ABC):
    """Abstract document field extractor."""

    @abstractmethod
    async def extract_fields(self, image_bytes: bytes, doc_type: DocumentType) -> ExtractedFields:
        """Extract identity fields from a document image.

        Raises:
            DocumentServiceError: If the service cannot be reached or is not configured.
        """


class GeminiDocumentExtractor(BaseDocumentExtractor):
    """Gemini ``generateContent`` client with JSON response mode."""

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    async def extract_fields(self, image_bytes: bytes, doc_type: DocumentType) -> ExtractedFields:
        if not self.is_configured:
            msg = "Document extraction service is not configured"
            raise DocumentServiceError(msg)

        body = {
            "contents": [
                {
                    "parts": [
                        {
                            "inline_data": {
                                "mime_type": "image/jpeg",
                                "data": base64.b64encode(image_bytes).decode("ascii"),
                            }
                        },
                        {"text": _PROMPTS[doc_type]},
                    ]
                }
            ],
            "generationConfig": {"responseMimeType": "application/json"},
        }
        url = f"{self._base_url}/models/{self._model}:generateContent"

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(url, params={"key": self._api_key}, json=body)
                response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("Gemini extraction timed out")
            raise DocumentServiceError("Document extraction timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning("Gemini extraction returned HTTP {}", e.response.status_code)
            raise DocumentServiceError(
                f"Document service returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise DocumentServiceError("Connection to document service failed") from e
        except ValueError as e:
            raise DocumentServiceError("Document service returned invalid JSON") from e

        return self._parse_response(data)

    def _parse_response(self, data: dict[str, Any]) -> ExtractedFields:
        """Pull the JSON text part out of a generateContent response.

        Malformed model output yields empty fields rather than an error.
        """
        try:
            text = data["candidates"][0]["content"]["parts"][0]["text"]
            parsed = json.loads(text)
        except (KeyError, IndexError, TypeError, ValueError):
            logger.info("Gemini response had no parseable JSON payload")
            return ExtractedFields()
        if isinstance(parsed, list) and parsed and isinstance(parsed[0], dict):
            parsed = parsed[0]
        if not isinstance(parsed, dict):
            return ExtractedFields()
        return ExtractedFields.from_mapping(parsed)
