"""Face embedding distance and threshold-based match decisions.

Embeddings are compared by Euclidean distance. The confidence value is a
linear decay of that distance, ``clamp(1 - distance / scale, 0, 1)``: a
display heuristic, not a calibrated probability. Both the match threshold and
the confidence scale are tuning parameters supplied by configuration.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass

import numpy as np

DEFAULT_MATCH_THRESHOLD = 10.0
DEFAULT_CONFIDENCE_SCALE = 20.0


class InvalidEmbeddingError(ValueError):
    """Raised when an embedding is missing, empty, non-numeric or mismatched in length.

    Signals that verification could not be performed, as opposed to a
    completed comparison that did not match.
    """


def _as_vector(embedding: Sequence[float] | None, label: str) -> np.ndarray:
    if embedding is None:
        msg = f"{label} embedding is missing"
        raise InvalidEmbeddingError(msg)
    try:
        vector = np.asarray(embedding, dtype=np.float64)
    except (TypeError, ValueError) as e:
        msg = f"{label} embedding is not numeric"
        raise InvalidEmbeddingError(msg) from e
    if vector.ndim != 1 or vector.size == 0:
        msg = f"{label} embedding must be a non-empty flat vector"
        raise InvalidEmbeddingError(msg)
    if not np.all(np.isfinite(vector)):
        msg = f"{label} embedding contains non-finite values"
        raise InvalidEmbeddingError(msg)
    return vector


def euclidean_distance(a: Sequence[float] | None, b: Sequence[float] | None) -> float:
    """Euclidean distance between two equal-length embeddings.

    Raises:
        InvalidEmbeddingError: If either vector is invalid or the lengths differ.
    """
    va = _as_vector(a, "first")
    vb = _as_vector(b, "second")
    if va.shape != vb.shape:
        msg = f"Embedding lengths differ ({va.size} != {vb.size})"
        raise InvalidEmbeddingError(msg)
    return float(np.linalg.norm(va - vb))


def distance_to_confidence(distance: float, scale: float = DEFAULT_CONFIDENCE_SCALE) -> float:
    """Map a distance onto [0, 1] by linear decay over ``scale``."""
    if scale <= 0:
        msg = "scale must be positive"
        raise ValueError(msg)
    if math.isnan(distance):
        return 0.0
    return max(0.0, min(1.0, 1.0 - distance / scale))


@dataclass(frozen=True)
class FaceMatchResult:
    """Outcome of comparing two embeddings."""

    match: bool
    distance: float
    confidence: float
    threshold: float

    @property
    def risk_score(self) -> float:
        return round(1.0 - self.confidence, 4)


class FaceMatcher:
    """Threshold matcher over Euclidean embedding distance."""

    def __init__(
        self,
        threshold: float = DEFAULT_MATCH_THRESHOLD,
        confidence_scale: float = DEFAULT_CONFIDENCE_SCALE,
    ) -> None:
        if threshold <= 0 or confidence_scale <= 0:
            msg = "threshold and confidence_scale must be positive"
            raise ValueError(msg)
        self.threshold = threshold
        self.confidence_scale = confidence_scale

    def compare(self, a: Sequence[float] | None, b: Sequence[float] | None) -> FaceMatchResult:
        """Compare two embeddings; ``match`` is ``distance < threshold``.

        Raises:
            InvalidEmbeddingError: If either embedding is malformed.
        """
        distance = euclidean_distance(a, b)
        return FaceMatchResult(
            match=distance < self.threshold,
            distance=round(distance, 3),
            confidence=distance_to_confidence(distance, self.confidence_scale),
            threshold=self.threshold,
        )
