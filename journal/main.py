"""
Journal Retrieval Service — Application Entry Point

FastAPI application exposing question answering over journal notes,
minimal note CRUD, and the embedding sync scheduler controls.

Start locally:
    uvicorn journal.main:app --host 0.0.0.0 --port 8000 --reload
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from journal.api.v1.chat import router as chat_router
from journal.api.v1.config import router as config_router
from journal.api.v1.notes import router as notes_router
from journal.api.v1.sync import router as sync_router
from journal.core.config import load_settings
from journal.core.errors import JournalError
from journal.core.logging import setup_logging
from journal.core.resources import ResourceHolder

logger = logging.getLogger(__name__)


def create_app(holder: ResourceHolder | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        holder: Pre-built resource holder (tests inject one backed by the
            in-memory store). Built from the environment when omitted.
    """
    if holder is None:
        holder = ResourceHolder(load_settings())
    settings = holder.settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Application lifespan handler.

        Startup:
            1. Configure logging.
            2. Validate settings and build the resource bundle.
            3. Verify database connectivity (and, optionally, the
               embedding dimension). Any failure blocks startup.
            4. Start the embedding sync scheduler.

        Shutdown:
            1. Stop the scheduler (an in-flight cycle is allowed to finish).
            2. Dispose the database engine.
        """
        setup_logging(settings.LOG_LEVEL)
        logger.info("Starting %s...", settings.PROJECT_NAME)
        logger.info("Log Level: %s", settings.LOG_LEVEL)

        try:
            await holder.start()
        except JournalError:
            logger.critical("Startup checks failed. Shutting down.", exc_info=True)
            raise

        app.state.holder = holder

        yield  # Application runs here

        await holder.close()
        logger.info("%s shutdown complete", settings.PROJECT_NAME)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Semantic retrieval and cited answers over journal notes.",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.holder = holder

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGIN_LIST,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router, prefix="/api/v1/chat", tags=["Chat"])
    app.include_router(notes_router, prefix="/api/v1/notes", tags=["Notes"])
    app.include_router(sync_router, prefix="/api/v1/sync", tags=["Sync"])
    app.include_router(config_router, prefix="/api/v1/config", tags=["Config"])

    @app.get("/health")
    async def health_check() -> dict[str, str | bool]:
        """Health check for load balancers and orchestrators."""
        current = holder.settings
        return {
            "status": "ok",
            "service": "journal",
            "environment": current.APP_ENV,
            "store": current.STORE_BACKEND,
            "sync_running": holder.started and holder.current.scheduler.is_running,
        }

    return app


app = create_app()
