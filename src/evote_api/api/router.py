"""Root API router with /api/v1 prefix and middleware registration."""

from fastapi import APIRouter, FastAPI

from evote_api.api.middleware import SecurityHeadersMiddleware, setup_cors
from evote_api.core.config import Settings


def create_router(settings: Settings) -> APIRouter:
    """Create the root API router with all sub-routers included."""
    from evote_api.api.v1.audit import audit_router
    from evote_api.api.v1.auth import router as auth_router
    from evote_api.api.v1.changes import changes_router
    from evote_api.api.v1.documents import documents_router
    from evote_api.api.v1.elections import elections_router
    from evote_api.api.v1.fraud import fraud_router
    from evote_api.api.v1.roll import roll_router
    from evote_api.api.v1.voters import voters_router
    from evote_api.api.v1.votes import votes_router

    root_router = APIRouter(prefix=settings.api_v1_prefix)
    root_router.include_router(auth_router)
    root_router.include_router(voters_router)
    root_router.include_router(documents_router)
    root_router.include_router(roll_router)
    root_router.include_router(elections_router)
    root_router.include_router(votes_router)
    root_router.include_router(fraud_router)
    root_router.include_router(audit_router)
    root_router.include_router(changes_router)
    return root_router


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware on the FastAPI app."""
    setup_cors(app, settings)
    app.add_middleware(SecurityHeadersMiddleware)
