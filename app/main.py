"""ASGI entry point: ``uvicorn app.main:app``.

The API is mounted under ``/api``; the root app only owns the lifespan.
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.app import create_api_app
from app.cache.client import close_valkey_client, valkey_healthcheck
from app.core.config import settings
from app.core.logging import get_logger, setup_logging
from app.database.connection import close_sqlalchemy_engine, init_sqlalchemy_engine
from app.jobs import start_scheduler, stop_scheduler


logger = get_logger("main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger.info(f"Starting {settings.app_name} {settings.app_version} ({settings.environment})")

    await init_sqlalchemy_engine()
    if not await valkey_healthcheck():
        logger.warning("Valkey unreachable: rate limits are not enforced and job claims are skipped")
    await start_scheduler()

    yield

    await stop_scheduler()
    await close_valkey_client()
    await close_sqlalchemy_engine()
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    app.mount("/api", create_api_app())

    @app.get("/", include_in_schema=False)
    async def index():
        return {"name": settings.app_name, "version": settings.app_version, "health": "/api/health"}

    return app


app = create_app()
