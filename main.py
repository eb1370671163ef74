"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import AsyncIterator

import uvicorn
from fastapi import Depends, FastAPI
from fastapi.responses import JSONResponse

from comics_api import schemas
from comics_api.config import Settings, configure_logging, load_settings
from comics_api.db import get_store
from comics_api.errors import StoreError
from comics_api.handlers import register_exception_handlers
from comics_api.routers import comics
from comics_api.store import ComicStore, build_store

logger = logging.getLogger(__name__)

SERVICE_NAME = "Comics Library API"
SERVICE_VERSION = "1.0.0"

STORE_LABELS = {"sqlite": "SQLite", "memory": "In-memory"}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the store, seed it when empty, and close it on shutdown."""
    settings: Settings = app.state.settings
    store: ComicStore = app.state.store
    await store.open()
    if settings.seed:
        await store.seed_if_empty()
    logger.info(
        "%s ready (environment=%s, store=%s)",
        SERVICE_NAME,
        settings.environment,
        store.kind,
    )
    try:
        yield
    finally:
        logger.info("shutting down, closing %s store", store.kind)
        await store.close()


def create_app(
    settings: Settings | None = None, store: ComicStore | None = None
) -> FastAPI:
    """Build the application around ``store`` (or the one ``settings`` selects)."""
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    store = store or build_store(settings)

    app = FastAPI(title=SERVICE_NAME, version=SERVICE_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    register_exception_handlers(app)
    app.include_router(comics.router)

    @app.get("/")
    def read_root():
        """Describe the API so uptime checks have a target."""
        return {
            "message": "Welcome to the Comics API",
            "environment": settings.environment,
            "database": STORE_LABELS.get(store.kind, store.kind),
            "documentation": "See /docs for the OpenAPI schema.",
            "endpoints": {
                "health": "/health",
                "comics": {
                    "getAll": "GET /comics",
                    "create": "POST /comics",
                    "getById": "GET /comics/:id",
                    "update": "PUT /comics/:id",
                    "delete": "DELETE /comics/:id",
                },
            },
        }

    @app.get("/health", response_model=schemas.HealthResponse)
    async def health(store: ComicStore = Depends(get_store)):
        """Report liveness, store connectivity and the number of comics."""
        try:
            await store.ping()
            total = await store.count()
        except StoreError as exc:
            logger.error("health check failed: %s", exc.message)
            return JSONResponse(
                status_code=500,
                content={"status": "unhealthy", "error": exc.message},
            )
        return schemas.HealthResponse(
            status="healthy",
            timestamp=datetime.now(UTC),
            service=SERVICE_NAME,
            version=SERVICE_VERSION,
            environment=settings.environment,
            database="connected" if store.connected else "disconnected",
            total_comics=total,
        )

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run(app, host="0.0.0.0", port=app.state.settings.port)
