"""ASGI application for the off-day tracker.

Run with:  uvicorn offday.main:app
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from offday.api.health import router as health_router
from offday.api.router import api_router
from offday.config import get_settings
from offday.db import dispose_engine
from offday.exceptions import setup_exception_handlers
from offday.middleware import setup_middleware

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from offday.config import Settings

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Configure logging on startup and release the connection pool on shutdown."""
    settings = get_settings()
    configure_logging(settings)
    logger.info(
        "Starting %s v%s [%s], creation audit %s",
        settings.app_name,
        settings.app_version,
        settings.environment,
        "on" if settings.audit_creations else "off",
    )
    yield
    await dispose_engine()
    logger.info("Shut down %s", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    setup_middleware(application, settings)
    setup_exception_handlers(application)

    application.include_router(health_router)
    application.include_router(api_router)

    return application


app = create_app()
