# formiq/api/app.py
"""FastAPI application factory."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formiq import __version__
from formiq.background.lifecycle import ServerLifecycle
from formiq.config.loader import load_config
from formiq.config.schema import FormIQConfig

from .errors import register_exception_handlers
from .routes import health_router, intake_router, projects_router

logger = logging.getLogger(__name__)


def create_app(
    config: FormIQConfig | None = None, lifecycle: ServerLifecycle | None = None
) -> FastAPI:
    """
    Build the API application.

    The lifecycle is started and shut down with the application; by default
    it also runs the workflow worker in-process.

    Args:
        config: Root configuration (default: load_config())
        lifecycle: Pre-built lifecycle, e.g. with an injected AI service

    Returns:
        FastAPI application
    """
    if lifecycle is None:
        lifecycle = ServerLifecycle(config or load_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await lifecycle.startup()
        try:
            yield
        finally:
            await lifecycle.shutdown()

    app = FastAPI(
        title="FormIQ API",
        description="Goal intake, focus questions and generated project roadmaps",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.lifecycle = lifecycle

    app.add_middleware(
        CORSMiddleware,
        allow_origins=lifecycle.config.server.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(intake_router)
    app.include_router(projects_router)

    logger.info("API routers loaded")
    return app
