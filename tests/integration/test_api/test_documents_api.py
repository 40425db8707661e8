"""Integration tests for the document extraction endpoint."""

import base64
from types import SimpleNamespace
from typing import Any

from httpx import AsyncClient

from evote_api.lib.documents import DocumentServiceError


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


async def test_extract_fields(client: AsyncClient, samples: SimpleNamespace) -> None:
    response = await client.post(
        "/api/v1/documents/extract",
        json={"document": _b64(samples.document_image), "document_type": "AADHAAR"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["name"] == "Asha Kumar"
    assert body["id_number"] == samples.aadhaar
    assert body["email"] is None


async def test_pdf_rejected(client: AsyncClient, samples: SimpleNamespace) -> None:
    response = await client.post(
        "/api/v1/documents/extract",
        json={"document": _b64(samples.pdf_document), "document_type": "EPIC"},
    )
    assert response.status_code == 400
    assert response.json()["code"] == "unsupported_document"


async def test_service_unavailable(client: AsyncClient, document_extractor: Any, samples: SimpleNamespace) -> None:
    async def _failing(image_bytes: bytes, doc_type: Any) -> Any:
        raise DocumentServiceError("Document extraction is not configured")

    document_extractor.extract_fields = _failing
    response = await client.post(
        "/api/v1/documents/extract",
        json={"document": _b64(samples.document_image), "document_type": "AADHAAR"},
    )
    assert response.status_code == 503
    assert response.json()["code"] == "document_service_unavailable"
