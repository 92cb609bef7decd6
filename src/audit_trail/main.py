"""FastAPI application factory.

Creates the FastAPI app with lifespan management that wires the audit
pipeline and its bounded dispatcher onto ``app.state``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from loguru import logger

from audit_trail.core.background import BoundedTaskDispatcher
from audit_trail.core.config import get_settings
from audit_trail.core.database import dispose_engine, get_session_factory, init_engine
from audit_trail.core.logging import setup_logging
from audit_trail.lib.enrichment import validate_taxonomy
from audit_trail.services.audit_service import build_pipeline


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Init engine and pipeline on startup; drain background work and dispose on shutdown."""
    settings = get_settings()
    setup_logging(settings.log_level, log_dir=settings.log_dir)
    validate_taxonomy()
    init_engine(settings.database_url, echo=False, schema=settings.database_schema)

    dispatcher = BoundedTaskDispatcher(
        settings.dispatcher_max_concurrency,
        max_finished=settings.dispatcher_max_finished_jobs,
    )
    app.state.dispatcher = dispatcher
    app.state.audit_pipeline = build_pipeline(settings, get_session_factory(), dispatcher)
    logger.info(f"Audit pipeline ready ({settings.environment})")

    yield

    await dispatcher.drain()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Audit Trail",
        description="Sanitized audit trail with behavioral security alerting",
        version="0.1.0",
        lifespan=lifespan,
    )

    from audit_trail.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router())

    return app
