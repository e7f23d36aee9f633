from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI

from attendance_workflow.api.health import router as health_router
from attendance_workflow.api.router import api_router
from attendance_workflow.config import get_grace_settings, get_settings
from attendance_workflow.db import dispose_engine, get_engine
from attendance_workflow.exceptions import ConfigurationError, setup_exception_handlers
from attendance_workflow.middleware import setup_middleware
from attendance_workflow.uow import build_unit_of_work, set_unit_of_work

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager for startup and shutdown."""
    settings = get_settings()
    logger.info("Starting %s v%s [%s]", settings.app_name, settings.app_version, settings.environment)

    set_unit_of_work(await build_unit_of_work(settings.transaction_mode, get_engine()))
    try:
        get_grace_settings()
    except ConfigurationError:
        # Keep serving: requests that need the thresholds are refused with 503.
        logger.warning("Grace configuration invalid at startup")

    yield

    await dispose_engine()
    logger.info("Shutting down %s", settings.app_name)


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

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
