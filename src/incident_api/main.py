"""FastAPI application factory.

Creates the FastAPI app with lifespan management, exception handlers,
and OpenAPI metadata. The geocode resolver, its layered cache and the
batch orchestrator are built once per process in the lifespan and kept on
``app.state``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from incident_api import __version__
from incident_api.core.background import InProcessTaskRunner
from incident_api.core.config import Settings, get_settings
from incident_api.core.logging import setup_logging
from incident_api.lib.geocoder import BatchGeocoder, build_resolver
from incident_api.lib.incidents import FeedError
from incident_api.services.incident_service import build_feed_client


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Build geocoding components on startup; flush and close them on shutdown."""
    settings: Settings = app.state.settings
    setup_logging(settings.log_level, log_dir=settings.log_dir, json_output=settings.log_json)

    task_runner = InProcessTaskRunner()
    resolver = build_resolver(settings, task_runner)
    app.state.task_runner = task_runner
    app.state.resolver = resolver
    app.state.batch_geocoder = BatchGeocoder(
        resolver,
        max_geocode_cap=settings.geocode_max_per_request_cap,
        concurrency_cap=settings.geocode_concurrency_cap,
    )
    app.state.feed_client = build_feed_client(settings)
    logger.info(
        f"Geocoding ready: providers={resolver.provider_names}, cache tiers={resolver.cache.tiers}"
    )

    yield

    # Let pending cache writes land before the store connections go away
    await task_runner.drain()
    await resolver.cache.close()
    if task_runner.failures:
        logger.warning(f"{len(task_runner.failures)} background cache writes failed during this run")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings override (defaults to environment settings).

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Incident Map API",
        description="Live public-safety incidents with multi-provider geocoding and layered caching",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Register exception handlers
    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        return JSONResponse(
            status_code=400,
            content={"detail": str(exc)},
        )

    @app.exception_handler(FeedError)
    async def feed_error_handler(request: Request, exc: FeedError) -> JSONResponse:
        return JSONResponse(
            status_code=502,
            content={"detail": "Failed to fetch incidents from upstream feed", "error": exc.message},
        )

    @app.get("/health", tags=["health"])
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    # Register middleware and routers
    from incident_api.api.router import create_router, setup_middleware

    setup_middleware(app, settings)
    app.include_router(create_router(settings))

    return app
