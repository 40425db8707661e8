"""Voter verification state machine.

Status moves ``NOT_STARTED -> PENDING -> {VERIFIED, REJECTED}``. Two flags
travel alongside it and are changed independently:

* ``electoral_roll_verified``: the claimed identity agrees with an official
  roll record.
* ``manual_verify_requested``: a human reviewer has been asked to look.

Every function here is pure. Callers load the current state from the store,
apply a transition and persist the returned state.
"""

from dataclasses import dataclass, field, replace
from enum import StrEnum

from evote_api.lib.roll_matcher.evaluator import RollMatchOutcome


class VerificationStatus(StrEnum):
    NOT_STARTED = "NOT_STARTED"
    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class BiometricOutcome(StrEnum):
    """Result of the live face vs. document photo comparison."""

    MATCH = "MATCH"
    NO_MATCH = "NO_MATCH"
    DOCUMENT_UNAVAILABLE = "DOCUMENT_UNAVAILABLE"


ADMIN_OVERRIDE_TARGETS = frozenset({VerificationStatus.VERIFIED, VerificationStatus.REJECTED})


class IdentityMismatchError(Exception):
    """The live face does not match the photo on the registrant's own document.

    Registration is refused outright; nothing is persisted.
    """

    def __init__(self, message: str = "Face does not match the uploaded identity document.") -> None:
        self.message = message
        super().__init__(message)


class IllegalTransitionError(ValueError):
    """The requested transition is not permitted from the current state."""


@dataclass(frozen=True)
class VerificationState:
    status: VerificationStatus = VerificationStatus.NOT_STARTED
    electoral_roll_verified: bool = False
    manual_verify_requested: bool = False


@dataclass(frozen=True)
class RegistrationDecision:
    """State to persist for a new registration, plus the reason shown to the user."""

    state: VerificationState
    reason: str


def decide_registration(roll: RollMatchOutcome, biometric: BiometricOutcome) -> RegistrationDecision:
    """Combine roll and biometric outcomes into the initial verification state.

    Args:
        roll: Outcome of the roll match evaluation.
        biometric: Outcome of the face vs. document comparison.

    Returns:
        The RegistrationDecision to persist.

    Raises:
        IdentityMismatchError: If the biometric comparison failed, whatever
            the roll outcome.
    """
    if biometric == BiometricOutcome.NO_MATCH:
        raise IdentityMismatchError

    roll_verified = roll == RollMatchOutcome.VERIFIED

    if biometric == BiometricOutcome.DOCUMENT_UNAVAILABLE:
        return RegistrationDecision(
            state=VerificationState(
                status=VerificationStatus.PENDING,
                electoral_roll_verified=roll_verified,
                manual_verify_requested=True,
            ),
            reason="Document photo could not be compared. Manual review required.",
        )

    if roll == RollMatchOutcome.VERIFIED:
        return RegistrationDecision(
            state=VerificationState(VerificationStatus.VERIFIED, electoral_roll_verified=True),
            reason="Identity and electoral roll verified.",
        )
    if roll == RollMatchOutcome.MISMATCH:
        return RegistrationDecision(
            state=VerificationState(VerificationStatus.PENDING, manual_verify_requested=True),
            reason="Electoral roll details differ. Manual review required.",
        )
    return RegistrationDecision(
        state=VerificationState(VerificationStatus.PENDING),
        reason="Not found in the electoral roll. Verification pending.",
    )


def begin_reverification(state: VerificationState) -> VerificationState:
    """Re-enter PENDING for a fresh biometric attempt.

    Allowed from any status. A pending manual request is withdrawn because the
    new attempt supersedes it; roll verification is independent and kept.
    """
    return replace(state, status=VerificationStatus.PENDING, manual_verify_requested=False)


def apply_admin_override(state: VerificationState, target: VerificationStatus | str) -> VerificationState:
    """Resolve review by setting VERIFIED or REJECTED directly.

    Always permitted and idempotent. Resolving the review clears any pending
    manual request.

    Raises:
        IllegalTransitionError: If ``target`` is not VERIFIED or REJECTED.
    """
    try:
        target_status = VerificationStatus(target)
    except ValueError as e:
        msg = f"Unknown verification status '{target}'"
        raise IllegalTransitionError(msg) from e
    if target_status not in ADMIN_OVERRIDE_TARGETS:
        msg = f"Admin override may only set VERIFIED or REJECTED, not {target_status}"
        raise IllegalTransitionError(msg)
    return replace(state, status=target_status, manual_verify_requested=False)


def request_manual_review(state: VerificationState) -> VerificationState:
    """Flag the record for manual review without touching its status.

    Returns the state unchanged when a request is already pending.

    Raises:
        IllegalTransitionError: If the roll is already verified.
    """
    if state.electoral_roll_verified:
        msg = "Electoral roll is already verified; manual verification is not needed"
        raise IllegalTransitionError(msg)
    if state.manual_verify_requested:
        return state
    return replace(state, manual_verify_requested=True)


def apply_cross_verification(state: VerificationState) -> VerificationState:
    """Mark the roll as verified after an admin cross-check. Status is untouched."""
    return replace(state, electoral_roll_verified=True, manual_verify_requested=False)


@dataclass(frozen=True)
class EligibilityResult:
    eligible: bool
    reasons: list[str] = field(default_factory=list)


def check_eligibility(
    state: VerificationState,
    *,
    has_face_embedding: bool,
    is_blocked: bool = False,
) -> EligibilityResult:
    """Decide whether a voter may cast a ballot.

    Both verification axes are required: status VERIFIED and a verified roll
    match, together with a stored face reference. Blocked voters are never
    eligible.
    """
    reasons: list[str] = []
    if state.status != VerificationStatus.VERIFIED:
        reasons.append(f"Verification status is {state.status}")
    if not state.electoral_roll_verified:
        reasons.append("Electoral roll not verified")
    if not has_face_embedding:
        reasons.append("No face reference on file")
    if is_blocked:
        reasons.append("Voter is blocked")
    return EligibilityResult(eligible=not reasons, reasons=reasons)
