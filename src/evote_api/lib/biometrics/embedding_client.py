"""Face embedding extraction through the DeepFace HTTP microservice."""

import base64
from abc import ABC, abstractmethod
from typing import Any

import httpx
from loguru import logger

DEFAULT_TIMEOUT = 15.0


class EmbeddingServiceError(Exception):
    """Raised when the embedding service cannot produce an embedding.

    Covers transport errors, HTTP errors and unusable responses. Callers must
    report this as "could not verify", never as a failed match.

    Args:
        message: Human-readable error description.
        status_code: Optional HTTP status code from the service.
    """

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class BaseEmbeddingExtractor(ABC):
    """Abstract face embedding extractor."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Unique name identifying this provider."""

    @abstractmethod
    async def extract(self, image_bytes: bytes) -> list[float]:
        """Return the embedding of the most prominent face in ``image_bytes``.

        Raises:
            EmbeddingServiceError: If no embedding could be produced.
        """

    async def health(self) -> bool:
        """Whether the provider is reachable."""
        return True


class DeepFaceEmbeddingExtractor(BaseEmbeddingExtractor):
    """Client for DeepFace's ``/represent`` endpoint."""

    def __init__(
        self,
        base_url: str,
        *,
        model_name: str = "Facenet",
        detector_backend: str = "opencv",
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model_name = model_name
        self._detector_backend = detector_backend
        self._timeout = timeout

    @property
    def provider_name(self) -> str:
        return "deepface"

    async def extract(self, image_bytes: bytes) -> list[float]:
        if not image_bytes:
            msg = "Empty image"
            raise EmbeddingServiceError(msg)

        payload = {
            "img_path": "data:image/jpeg;base64," + base64.b64encode(image_bytes).decode("ascii"),
            "model_name": self._model_name,
            "detector_backend": self._detector_backend,
            "enforce_detection": False,
        }

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.post(f"{self._base_url}/represent", json=payload)
                response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.warning("DeepFace represent request timed out")
            raise EmbeddingServiceError("Embedding request timed out") from e
        except httpx.HTTPStatusError as e:
            logger.warning("DeepFace represent returned HTTP {}", e.response.status_code)
            raise EmbeddingServiceError(
                f"Embedding service returned HTTP {e.response.status_code}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            logger.warning("DeepFace connection error: {}", type(e).__name__)
            raise EmbeddingServiceError("Connection to embedding service failed") from e
        except ValueError as e:
            raise EmbeddingServiceError("Embedding service returned invalid JSON") from e

        embedding = self._parse_response(data)
        if embedding is None:
            shape = sorted(data.keys()) if isinstance(data, dict) else type(data).__name__
            msg = f"Could not extract face embedding from response (shape: {shape})"
            raise EmbeddingServiceError(msg)
        return embedding

    def _parse_response(self, data: Any) -> list[float] | None:
        """Accept ``{results: [{embedding}]}``, ``[{embedding}]`` or ``{embedding}``."""
        candidate: Any = None
        if isinstance(data, dict) and isinstance(data.get("results"), list) and data["results"]:
            first = data["results"][0]
            if isinstance(first, dict):
                candidate = first.get("embedding")
        elif isinstance(data, list) and data:
            first = data[0]
            if isinstance(first, dict):
                candidate = first.get("embedding")
        elif isinstance(data, dict):
            candidate = data.get("embedding")

        if not isinstance(candidate, list) or not candidate:
            return None
        try:
            return [float(v) for v in candidate]
        except (TypeError, ValueError):
            return None

    async def health(self) -> bool:
        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                response = await client.get(f"{self._base_url}/")
            return response.is_success
        except httpx.HTTPError:
            logger.warning("DeepFace health check failed")
            return False
