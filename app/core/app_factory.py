"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from app.api.routes import admin_router, attempts_router, health_router
from app.core.config import settings
from app.core.exception_handlers import setup_exception_handlers
from app.core.logging import configure_logging
from app.core.middleware import request_id_middleware
from app.core.openapi import apply_openapi_customizations
from app.core.rate_limit import build_cleanup_scheduler

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Own the cleanup scheduler for the lifetime of the app."""
    scheduler = None
    if settings.rate_limit.cleanup_enabled:
        scheduler = build_cleanup_scheduler()
        scheduler.start()
    app.state.cleanup_scheduler = scheduler
    try:
        yield
    finally:
        if scheduler is not None:
            scheduler.stop()
        app.state.cleanup_scheduler = None


def create_app() -> FastAPI:
    """Create and configure the FastAPI application instance.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Attempt Limiter API",
        description=(
            "Throttles repeated login, registration and password reset attempts "
            "per identifier. Each key gets a counting window anchored at its first "
            "attempt; exceeding the limit blocks the key for a cooldown period. "
            "Requires X-API-Key."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.cleanup_scheduler = None

    app.middleware("http")(request_id_middleware)

    setup_exception_handlers(app)

    app.include_router(attempts_router, prefix="/v1")
    app.include_router(admin_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    logger.info("app.created", extra={"app_env": settings.app_env})
    return app
