"""
Application builder.
Wires settings, the shared connection pool, routes, lifespan and error
handlers into one FastAPI instance.
"""

from __future__ import annotations

import asyncio
import time
from contextlib import asynccontextmanager
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from hlf_lab.core.config import PoolConfig, Settings, get_settings, resolve_pool_config
from hlf_lab.core.logging import api_logger, app_logger, init_app_logging
from hlf_lab.infra.db import ConnectionPool, open_pool
from hlf_lab.routers import db, health
from hlf_lab.services.diagnostics_service import DiagnosticsService

PoolFactory = Callable[[PoolConfig], Optional[ConnectionPool]]


async def verify_pool_on_startup(pool: ConnectionPool, config: PoolConfig) -> None:
    """Background check whose outcome only reaches the logs."""
    try:
        await asyncio.to_thread(DiagnosticsService.for_pool(pool).verify_startup, config)
    except Exception as exc:
        app_logger.error("Startup database verification crashed", exc=exc)


class ApplicationBuilder:
    """Builder for the FastAPI application with separated concerns."""

    def __init__(self, settings: Settings, pool_factory: PoolFactory = open_pool):
        self.settings = settings
        self.pool_config = resolve_pool_config(settings)
        self.pool = self._open_pool(pool_factory)

        self.app = FastAPI(
            title=settings.APP_TITLE,
            version=settings.APP_VERSION,
            description="Liveness, readiness and database diagnostics",
            docs_url="/docs",
            redoc_url="/redoc",
        )
        self.app.state.settings = settings
        self.app.state.pool_config = self.pool_config
        self.app.state.pool = self.pool
        self.app.state.startup_probe = None

        self._middlewares_added = False
        self._routes_added = False
        self._lifespan_added = False

    def _open_pool(self, pool_factory: PoolFactory) -> Optional[ConnectionPool]:
        config = self.pool_config
        if not config.is_configured:
            app_logger.warning(
                "Database not configured - running without database connection",
                host_provided=bool(config.host),
                user_provided=bool(config.user),
                database_provided=bool(config.database),
            )
            return None

        pool = pool_factory(config)
        status = pool.status() if pool is not None else {}
        if "error" not in status:
            app_logger.info(
                "Database connection pool created",
                host=config.host,
                database=config.database,
                max_connections=status.get("max_connections", config.max_connections),
            )
        return pool

    def add_request_logging_middleware(self) -> ApplicationBuilder:
        """Add request logging middleware."""
        if self._middlewares_added:
            raise RuntimeError("Middlewares already added")

        @self.app.middleware("http")
        async def log_requests(request: Request, call_next):
            start = time.perf_counter()
            response = await call_next(request)
            api_logger.info(
                "Request handled",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return response

        return self

    def finalize_middlewares(self) -> ApplicationBuilder:
        """Mark middlewares as finalized."""
        self._middlewares_added = True
        return self

    def add_routes(self) -> ApplicationBuilder:
        """Add all API routes."""
        if self._routes_added:
            raise RuntimeError("Routes already added")

        self.app.include_router(health.router)
        self.app.include_router(db.router)

        self._routes_added = True
        return self

    def add_lifespan(self) -> ApplicationBuilder:
        """Startup verification task and pool drain on shutdown."""
        if self._lifespan_added:
            raise RuntimeError("Lifespan already added")

        settings = self.settings
        config = self.pool_config

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            pool: Optional[ConnectionPool] = app.state.pool
            app_logger.info(
                "Server started",
                port=settings.PORT,
                database_configured=pool is not None,
            )
            if pool is not None:
                app.state.startup_probe = asyncio.create_task(verify_pool_on_startup(pool, config))

            yield

            app_logger.info("Shutdown requested, draining")
            task = app.state.startup_probe
            if task is not None and not task.done():
                task.cancel()
            if pool is not None:
                await run_in_threadpool(pool.close)
                app_logger.info("Database connections closed")

        self.app.router.lifespan_context = lifespan
        self._lifespan_added = True
        return self

    def add_exception_handlers(self) -> ApplicationBuilder:
        """Add global exception handlers."""
        expose_details = self.settings.EXPOSE_ERROR_DETAILS

        # A known path with the wrong method is reported as not found too.
        @self.app.exception_handler(404)
        @self.app.exception_handler(405)
        async def not_found_handler(request: Request, exc: Exception):
            return JSONResponse(
                status_code=404,
                content={"error": "Not found", "path": request.url.path},
            )

        @self.app.exception_handler(Exception)
        async def internal_error_handler(request: Request, exc: Exception):
            app_logger.error("Unhandled error", exc=exc, path=request.url.path, error=str(exc))
            content = {"error": "Internal server error"}
            if expose_details:
                content["message"] = str(exc)
            return JSONResponse(status_code=500, content=content)

        return self

    def build(self) -> FastAPI:
        """Build and return the configured FastAPI application."""
        if not self._middlewares_added:
            raise RuntimeError("Middlewares not finalized")
        if not self._routes_added:
            raise RuntimeError("Routes not added")
        if not self._lifespan_added:
            raise RuntimeError("Lifespan not added")

        return self.app


def create_application(
    settings: Optional[Settings] = None,
    pool_factory: PoolFactory = open_pool,
) -> FastAPI:
    """Resolve configuration, open the pool and assemble the application."""
    settings = settings or get_settings()
    init_app_logging(settings)

    builder = (
        ApplicationBuilder(settings, pool_factory=pool_factory)
        .add_request_logging_middleware()
        .finalize_middlewares()
        .add_routes()
        .add_lifespan()
        .add_exception_handlers()
    )
    return builder.build()
