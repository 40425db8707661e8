"""Fraud signal classification and session blocking policy.

Signals are detective: each one is recorded, and only once a session has
accumulated more violations than the threshold are further ballots refused.
"""

from dataclasses import dataclass
from enum import StrEnum


class FraudSignal(StrEnum):
    VISIBILITY_HIDDEN = "VISIBILITY_HIDDEN"
    WINDOW_BLUR = "WINDOW_BLUR"
    ENVIRONMENT_RISK = "ENVIRONMENT_RISK"
    FACE_MISMATCH = "FACE_MISMATCH"


class RiskLevel(StrEnum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


VIOLATION_LEVELS = frozenset({RiskLevel.MEDIUM, RiskLevel.HIGH})

HIGH_RISK_SCORE = 0.7
MEDIUM_RISK_SCORE = 0.4

_SIGNAL_REASONS: dict[FraudSignal, str] = {
    FraudSignal.VISIBILITY_HIDDEN: "Tab switch detected",
    FraudSignal.WINDOW_BLUR: "Window lost focus",
    FraudSignal.ENVIRONMENT_RISK: "Environment risk assessment",
    FraudSignal.FACE_MISMATCH: "Face verification failed",
}

_FIXED_LEVELS: dict[FraudSignal, tuple[RiskLevel, float]] = {
    FraudSignal.VISIBILITY_HIDDEN: (RiskLevel.MEDIUM, 0.5),
    FraudSignal.WINDOW_BLUR: (RiskLevel.MEDIUM, 0.5),
    FraudSignal.FACE_MISMATCH: (RiskLevel.HIGH, 1.0),
}


@dataclass(frozen=True)
class SignalAssessment:
    signal: FraudSignal
    risk_level: RiskLevel
    risk_score: float
    reason: str

    @property
    def is_violation(self) -> bool:
        return self.risk_level in VIOLATION_LEVELS


def classify_risk_score(score: float) -> RiskLevel:
    if score >= HIGH_RISK_SCORE:
        return RiskLevel.HIGH
    if score >= MEDIUM_RISK_SCORE:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


def assess_signal(signal: FraudSignal | str, score: float | None = None) -> SignalAssessment:
    """Assign a risk level to a raw session signal.

    Args:
        signal: The signal kind.
        score: Environment risk score in [0, 1]; required for ENVIRONMENT_RISK
            and ignored otherwise.

    Returns:
        The SignalAssessment.

    Raises:
        ValueError: If the signal is unknown or the score is missing or out of range.
    """
    kind = FraudSignal(signal)
    reason = _SIGNAL_REASONS[kind]

    if kind is FraudSignal.ENVIRONMENT_RISK:
        if score is None:
            msg = "ENVIRONMENT_RISK signals require a score"
            raise ValueError(msg)
        if not 0.0 <= score <= 1.0:
            msg = f"Risk score must be between 0 and 1, got {score}"
            raise ValueError(msg)
        return SignalAssessment(kind, classify_risk_score(score), float(score), reason)

    level, fixed_score = _FIXED_LEVELS[kind]
    return SignalAssessment(kind, level, fixed_score, reason)


def is_session_blocked(violation_count: int, threshold: int = 3) -> bool:
    """A session is blocked once its violations exceed ``threshold``."""
    return violation_count > threshold
