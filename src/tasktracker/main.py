"""Entry point for the task tracker FastAPI application."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routers import api_router, health_router
from .core.config import Settings, get_settings
from .core.logging import configure_logging
from .core.middleware import CorrelationIdMiddleware
from .db.base import ConnectionPool
from .db.pool import EnginePool
from .deps import SettingsDependency
from .errors import register_exception_handlers
from .schemas.system import RootResponse

logger = logging.getLogger(__name__)


def _normalise_prefix(raw_prefix: str) -> str:
    router_prefix = raw_prefix.strip()
    if router_prefix and not router_prefix.startswith("/"):
        router_prefix = f"/{router_prefix}"
    router_prefix = router_prefix.rstrip("/")
    if router_prefix == "/":
        router_prefix = ""
    return router_prefix


def create_app(settings: Settings | None = None, pool: ConnectionPool | None = None) -> FastAPI:
    """Instantiate and configure the FastAPI application.

    When ``pool`` is omitted an :class:`EnginePool` is built from ``settings``
    on startup and disposed on shutdown. An injected pool is left to its owner.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    router_prefix = _normalise_prefix(settings.api_prefix)
    openapi_url = "/openapi.json" if not router_prefix else f"{router_prefix}/openapi.json"

    @asynccontextmanager
    async def lifespan(application: FastAPI) -> AsyncIterator[None]:
        if pool is not None:
            application.state.pool = pool
            yield
            return
        engine_pool = EnginePool.from_settings(settings)
        application.state.pool = engine_pool
        logger.info("Database connection pool created")
        try:
            yield
        finally:
            await engine_pool.dispose()

    application = FastAPI(
        title=settings.project_name,
        version=settings.version,
        summary="Task tracking API over stored routines.",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url=openapi_url,
        lifespan=lifespan,
    )

    application.state.settings = settings
    if pool is not None:
        application.state.pool = pool

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    application.add_middleware(CorrelationIdMiddleware)

    if router_prefix:
        application.include_router(api_router, prefix=router_prefix)
    else:
        application.include_router(api_router)
    application.include_router(health_router)

    @application.get("/", response_model=RootResponse, summary="Service metadata")
    async def read_root(app_settings: SettingsDependency) -> RootResponse:
        """Expose minimal service metadata at the root endpoint."""
        return RootResponse(
            name=app_settings.project_name,
            environment=app_settings.environment,
            version=app_settings.version,
            api_prefix=app_settings.api_prefix,
        )

    register_exception_handlers(application)

    return application


def run() -> None:
    """Console entry point for ``tasktracker``."""
    settings: Settings = get_settings()
    uvicorn.run(
        "tasktracker.main:create_app",
        factory=True,
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.reload,
        log_config=None,
    )
