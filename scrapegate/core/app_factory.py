"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers and the
admission controller) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from scrapegate.adapters.rate_limit.base import AbstractAdmissionController
from scrapegate.api.routes import health_router, scraping_router
from scrapegate.core.config import Settings, settings as default_settings
from scrapegate.core.exception_handlers import setup_exception_handlers
from scrapegate.core.logging import configure_logging
from scrapegate.core.middleware import request_id_middleware
from scrapegate.core.openapi import apply_openapi_customizations
from scrapegate.core.rate_limit import build_admission_controller

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    controller: AbstractAdmissionController = app.state.admission_controller
    logger.info("app.startup", extra={"rate_limiter": controller.stats()})
    try:
        yield
    finally:
        logger.info("app.shutdown", extra={"rate_limiter": controller.stats()})
        controller.reset()


def create_app(
    app_settings: Settings | None = None,
    *,
    admission_controller: AbstractAdmissionController | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        app_settings: Settings to build from; defaults to the global settings.
        admission_controller: Controller to own; built from settings if omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    cfg = app_settings or default_settings

    # Logging first so subsequent init logs are formatted as desired
    configure_logging(cfg.log)

    app = FastAPI(
        title="Scrapegate API",
        description=(
            "Data-scraping control panel backend for the deal-intelligence "
            "dashboard: scraping source status, job start and data export, each "
            "protected by per-client sliding-window admission control."
        ),
        version="0.1.0",
        lifespan=lifespan,
    )

    if admission_controller is None:
        admission_controller = build_admission_controller(cfg.app)
    app.state.admission_controller = admission_controller

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(scraping_router, prefix="/v1")
    app.include_router(health_router)

    apply_openapi_customizations(app)

    return app
