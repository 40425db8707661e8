"""Biometrics library: liveness gating, embedding extraction and distance matching.

Public API:
    - check_liveness / LivenessResult: Anti-replay frame check
    - select_reference_frame: Middle-frame selection for embedding
    - euclidean_distance / distance_to_confidence: Distance primitives
    - FaceMatcher / FaceMatchResult: Threshold matcher
    - InvalidEmbeddingError: Malformed embedding (verification not performed)
    - BaseEmbeddingExtractor / DeepFaceEmbeddingExtractor: Extraction providers
    - EmbeddingServiceError: Extraction service unavailable
"""

from evote_api.lib.biometrics.distance import (
    DEFAULT_CONFIDENCE_SCALE,
    DEFAULT_MATCH_THRESHOLD,
    FaceMatcher,
    FaceMatchResult,
    InvalidEmbeddingError,
    distance_to_confidence,
    euclidean_distance,
)
from evote_api.lib.biometrics.embedding_client import (
    BaseEmbeddingExtractor,
    DeepFaceEmbeddingExtractor,
    EmbeddingServiceError,
)
from evote_api.lib.biometrics.liveness import LivenessResult, check_liveness, select_reference_frame

__all__ = [
    "DEFAULT_CONFIDENCE_SCALE",
    "DEFAULT_MATCH_THRESHOLD",
    "BaseEmbeddingExtractor",
    "DeepFaceEmbeddingExtractor",
    "EmbeddingServiceError",
    "FaceMatchResult",
    "FaceMatcher",
    "InvalidEmbeddingError",
    "LivenessResult",
    "check_liveness",
    "distance_to_confidence",
    "euclidean_distance",
    "select_reference_frame",
]
