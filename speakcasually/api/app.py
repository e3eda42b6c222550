"""
FastAPI application factory.

``create_app()`` assembles the backend with CORS, error handlers,
routers, the change-feed WebSocket and the health endpoint. The
module-level ``app`` instance allows
``uvicorn speakcasually.api.app:app --reload``.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from speakcasually.api import websocket
from speakcasually.api.middleware.error_handler import register_error_handlers
from speakcasually.api.routes import storage, tasks
from speakcasually.core.config import get_settings
from speakcasually.core.logging_setup import configure_logging
from speakcasually.core.models import HealthResponse
from speakcasually.services.change_feed import reset_change_feed
from speakcasually.services.storage.database import close_db, init_db

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Create tables on start-up; detach feed subscribers and dispose on shutdown."""
    configure_logging()
    await init_db()
    logger.info("Speak Casually backend started")
    yield
    reset_change_feed()
    await close_db()


def create_app() -> FastAPI:
    """Build and return a fully configured FastAPI application."""

    app = FastAPI(
        title="Speak Casually",
        description="Transcript recording tasks with object storage and a realtime change feed.",
        version="0.1.0",
        lifespan=lifespan,
    )

    # -- CORS --
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_settings().cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # -- Error handlers --
    register_error_handlers(app)

    # -- Health check (root-level, not under /api/v1) --
    @app.get("/health", response_model=HealthResponse, tags=["system"])
    async def health() -> HealthResponse:
        return HealthResponse(timestamp=datetime.now(UTC))

    # -- REST routes --
    app.include_router(tasks.router, prefix="/api/v1")
    app.include_router(storage.router, prefix="/api/v1")
    app.include_router(storage.public_router)

    # -- WebSocket --
    app.include_router(websocket.router)

    return app


app = create_app()


def main() -> None:
    """Run the backend with uvicorn using configured host / port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "speakcasually.api.app:app",
        host=settings.app_host,
        port=settings.app_port,
        log_level=settings.log_level.lower(),
    )
