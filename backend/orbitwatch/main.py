"""
OrbitWatch Backend - FastAPI Application

Main entry point for the backend API.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from orbitwatch.api import router as api_router
from orbitwatch.core.config import Settings, configure_logging, get_settings
from orbitwatch.core.rate_limit import RateLimiter, RateLimitMiddleware
from orbitwatch.services.base import ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    settings: Settings = app.state.settings

    # Startup
    logger.info(f"Starting {settings.app_name} v{settings.app_version} ({settings.environment})")

    from orbitwatch.db.database import close_db, init_db, init_engine
    from orbitwatch.db.store import get_history_store
    from orbitwatch.services.cache import get_record_cache, reset_record_cache
    from orbitwatch.services.ingestion import IngestionService, build_fetchers, set_ingestion_service
    from orbitwatch.services.ingestion.http import close_upstream_client, get_upstream_client
    from orbitwatch.services.scheduler import start_scheduler, stop_scheduler

    # Schema first: the scheduler writes on its first tick
    init_engine(settings.database_url)
    await init_db()

    service = IngestionService(
        fetchers=build_fetchers(settings, get_upstream_client(settings)),
        cache=get_record_cache(),
        store=get_history_store(),
    )
    set_ingestion_service(service)

    if settings.scheduler_enabled:
        start_scheduler(service, settings.schedule_config())
    else:
        logger.info("Background polling disabled (scheduler_enabled=false)")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await stop_scheduler()
    await service.cache.close()
    await close_upstream_client()
    set_ingestion_service(None)
    reset_record_cache()
    await close_db()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Create FastAPI application."""
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="""
    OrbitWatch space telemetry API

    ## Sources
    - **iss**: ISS position (wheretheiss.at)
    - **osdr**: NASA OSDR biodata dataset catalog
    - **apod**: NASA Astronomy Picture of the Day
    - **neo**: NASA near-Earth object feed
    - **donki**: NASA DONKI space weather (flares, CMEs)
    - **spacex**: next SpaceX launch

    Each source is polled on its own interval, cached in memory and
    appended to history. All endpoints share one global rate limit.
    """,
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.state.rate_limiter = RateLimiter(
        limit=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )
    app.add_middleware(RateLimitMiddleware, limiter=app.state.rate_limiter)

    app.include_router(api_router)

    # Service errors carry their own status code
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        if exc.status_code >= 500:
            logger.warning(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error": type(exc).__name__},
        )

    # Global exception handler - logs all unhandled exceptions
    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    return app
