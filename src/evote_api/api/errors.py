"""Domain error to HTTP response mapping.

Every error kind gets its own machine-readable ``code`` so clients can tell
"could not check" (503) from "check failed" (422) from "conflict" (409).
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from loguru import logger

from evote_api.lib.biometrics import EmbeddingServiceError, InvalidEmbeddingError
from evote_api.lib.documents import DocumentServiceError
from evote_api.lib.verification import IdentityMismatchError, IllegalTransitionError
from evote_api.services.auth_service import DuplicateUserError
from evote_api.services.document_service import UnsupportedDocumentError
from evote_api.services.election_service import ElectionEndedError
from evote_api.services.errors import NotFoundError
from evote_api.services.registration_service import (
    DuplicateIdNumberError,
    LivenessFailedError,
    RegistrationValidationError,
)
from evote_api.services.verification_service import NoFaceReferenceError
from evote_api.services.vote_service import (
    DuplicateVoteError,
    ElectionNotOpenError,
    SessionBlockedError,
    VoterNotEligibleError,
)

ERROR_MAP: dict[type[Exception], tuple[int, str]] = {
    RegistrationValidationError: (status.HTTP_400_BAD_REQUEST, "registration_invalid"),
    UnsupportedDocumentError: (status.HTTP_400_BAD_REQUEST, "unsupported_document"),
    InvalidEmbeddingError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "invalid_embedding"),
    LivenessFailedError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "liveness_failed"),
    IdentityMismatchError: (status.HTTP_422_UNPROCESSABLE_ENTITY, "identity_mismatch"),
    EmbeddingServiceError: (status.HTTP_503_SERVICE_UNAVAILABLE, "embedding_service_unavailable"),
    DocumentServiceError: (status.HTTP_503_SERVICE_UNAVAILABLE, "document_service_unavailable"),
    DuplicateIdNumberError: (status.HTTP_409_CONFLICT, "duplicate_id_number"),
    DuplicateUserError: (status.HTTP_409_CONFLICT, "duplicate_user"),
    DuplicateVoteError: (status.HTTP_409_CONFLICT, "duplicate_vote"),
    ElectionNotOpenError: (status.HTTP_409_CONFLICT, "election_not_open"),
    ElectionEndedError: (status.HTTP_409_CONFLICT, "election_ended"),
    IllegalTransitionError: (status.HTTP_409_CONFLICT, "illegal_transition"),
    NoFaceReferenceError: (status.HTTP_409_CONFLICT, "no_face_reference"),
    VoterNotEligibleError: (status.HTTP_403_FORBIDDEN, "voter_not_eligible"),
    SessionBlockedError: (status.HTTP_403_FORBIDDEN, "session_blocked"),
    NotFoundError: (status.HTTP_404_NOT_FOUND, "not_found"),
}


def error_response(exc: Exception) -> JSONResponse:
    """Build the JSON error body for a mapped exception."""
    for exc_type in type(exc).__mro__:
        if exc_type in ERROR_MAP:
            status_code, code = ERROR_MAP[exc_type]
            break
    else:
        status_code, code = status.HTTP_400_BAD_REQUEST, "bad_request"

    content: dict = {"detail": str(exc), "code": code}
    if isinstance(exc, VoterNotEligibleError):
        content["errors"] = [{"reason": reason} for reason in exc.reasons]
    return JSONResponse(status_code=status_code, content=content)


def register_exception_handlers(app: FastAPI) -> None:
    """Install handlers for every mapped error and a ValueError fallback."""

    async def handle(request: Request, exc: Exception) -> JSONResponse:
        response = error_response(exc)
        if response.status_code >= 500:
            logger.warning("{} {} failed: {}", request.method, request.url.path, exc)
        return response

    for exc_type in ERROR_MAP:
        app.add_exception_handler(exc_type, handle)
    app.add_exception_handler(ValueError, handle)
