"""
FastAPI application entry point.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from jobqueue import __version__
from jobqueue.api.routes import health_router, jobs_router, workers_router
from jobqueue.config import get_settings
from jobqueue.db import close_db, get_engine, init_db
from jobqueue.observability.logging import setup_logging
from jobqueue.observability.metrics import setup_metrics
from jobqueue.observability.tracing import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_tracing,
)
from jobqueue.queue import JobQueue
from jobqueue.store import create_store

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Builds the store and queue on startup unless one was injected, and
    releases them on shutdown.
    """
    settings = get_settings()

    setup_logging()
    setup_metrics()
    setup_tracing()

    owns_queue = getattr(app.state, "queue", None) is None
    if owns_queue:
        if settings.store_backend == "sql":
            await init_db()
            instrument_sqlalchemy(get_engine())
        app.state.queue = JobQueue(
            create_store(settings),
            default_priority=settings.default_priority,
        )

    logger.info("Application started", extra={"store": app.state.queue.store.name})

    yield

    if owns_queue:
        await app.state.queue.store.close()
        await close_db()
    logger.info("Application shutdown")


def create_app(queue: JobQueue | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        queue: Queue to serve; built from settings at startup when omitted.

    Returns:
        FastAPI: The configured application instance.
    """
    app = FastAPI(
        title="Job Queue Admin API",
        description="Enqueue, inspect and maintain a persistent background job queue",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.queue = queue

    app.include_router(health_router)
    app.include_router(jobs_router)
    app.include_router(workers_router)

    instrument_fastapi(app)

    return app


def run() -> None:
    """Run the API server."""
    settings = get_settings()
    app = create_app()

    uvicorn.run(
        app,
        host=settings.api_host,
        port=settings.api_port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
