"""Common Pydantic v2 schemas shared across the API.

Provides pagination metadata and the base64 payload type.
"""

import base64
import binascii
from typing import Annotated, Any

from pydantic import BaseModel, BeforeValidator, Field


def decode_base64_payload(value: Any) -> Any:
    """Decode a base64 string, accepting an optional ``data:...;base64,`` prefix."""
    if isinstance(value, bytes):
        return value
    if not isinstance(value, str):
        return value
    _, sep, encoded = value.partition(";base64,")
    payload = encoded if sep else value
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        msg = "Invalid base64 payload"
        raise ValueError(msg) from e


Base64Payload = Annotated[bytes, BeforeValidator(decode_base64_payload), Field(min_length=1)]


class PaginationMeta(BaseModel):
    """Pagination metadata included in paginated responses."""

    total: int = Field(description="Total number of items")
    page: int = Field(description="Current page number")
    page_size: int = Field(description="Items per page")
    total_pages: int = Field(description="Total number of pages")
