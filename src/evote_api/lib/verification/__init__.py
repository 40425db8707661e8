"""Verification state machine: registration decision, transitions and eligibility."""

from evote_api.lib.verification.state_machine import (
    ADMIN_OVERRIDE_TARGETS,
    BiometricOutcome,
    EligibilityResult,
    IdentityMismatchError,
    IllegalTransitionError,
    RegistrationDecision,
    VerificationState,
    VerificationStatus,
    apply_admin_override,
    apply_cross_verification,
    begin_reverification,
    check_eligibility,
    decide_registration,
    request_manual_review,
)

__all__ = [
    "ADMIN_OVERRIDE_TARGETS",
    "BiometricOutcome",
    "EligibilityResult",
    "IdentityMismatchError",
    "IllegalTransitionError",
    "RegistrationDecision",
    "VerificationState",
    "VerificationStatus",
    "apply_admin_override",
    "apply_cross_verification",
    "begin_reverification",
    "check_eligibility",
    "decide_registration",
    "request_manual_review",
]
