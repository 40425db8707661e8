"""Fraud signal policy."""

from evote_api.lib.fraud.policy import (
    VIOLATION_LEVELS,
    FraudSignal,
    RiskLevel,
    SignalAssessment,
    assess_signal,
    classify_risk_score,
    is_session_blocked,
)

__all__ = [
    "VIOLATION_LEVELS",
    "FraudSignal",
    "RiskLevel",
    "SignalAssessment",
    "assess_signal",
    "classify_risk_score",
    "is_session_blocked",
]
