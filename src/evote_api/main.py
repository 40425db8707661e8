"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata.
"""

import asyncio
import contextlib
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from evote_api import __version__
from evote_api.core.config import get_settings
from evote_api.core.database import dispose_engine, init_engine
from evote_api.core.events import get_change_feed
from evote_api.core.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifecycle: init engine on startup, dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_dir)
    init_engine(settings.database_url, echo=False)

    status_task = None
    if settings.election_status_refresh_enabled:
        from evote_api.services.election_service import election_status_loop

        status_task = asyncio.create_task(
            election_status_loop(settings.election_status_interval, feed=get_change_feed())
        )

    yield

    if status_task is not None:
        status_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await status_task

    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="eVote API",
        description="Voter identity verification, eligibility and ballot casting",
        version=__version__,
        lifespan=lifespan,
    )

    from evote_api.api.errors import register_exception_handlers
    from evote_api.api.router import create_router, setup_middleware

    register_exception_handlers(app)
    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
