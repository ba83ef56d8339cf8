"""Beacon FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from beacon import __version__
from beacon.api.dependencies import get_cache, get_key_manager
from beacon.cache.redis import RedisCache
from beacon.config import get_settings
from beacon.db import close_db, init_db
from beacon.errors import BeaconError
from beacon.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    configure_logging(get_settings().logging)
    logger.info("beacon.startup", version=__version__)
    await init_db()

    yield

    # Shutdown
    logger.info("beacon.shutdown")

    # Let pending last-used updates finish before the engine goes away
    await get_key_manager().wait_for_background_tasks()

    cache = get_cache()
    if isinstance(cache, RedisCache):
        await cache.close()

    await close_db()


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    app = FastAPI(
        title="Beacon",
        description="Website analytics collection and API key management",
        version=__version__,
        lifespan=lifespan,
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        """Add request ID to all requests."""
        request_id = request.headers.get("X-Request-Id") or str(uuid.uuid4())
        request.state.request_id = request_id
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            response = await call_next(request)
        response.headers["X-Request-Id"] = request_id
        return response

    # Error handler
    @app.exception_handler(BeaconError)
    async def beacon_error_handler(request: Request, exc: BeaconError):
        """Handle Beacon errors with consistent format."""
        request_id = getattr(request.state, "request_id", None)
        if exc.status_code >= 500:
            logger.error("request.failed", code=exc.code, path=request.url.path)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.to_dict(request_id),
        )

    # Health check
    @app.get("/health")
    async def health() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok"}

    # Import and register API routers
    from beacon.api.v1 import router as v1_router

    app.include_router(v1_router, prefix="/v1")

    return app


# Create default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "beacon.main:app",
        host=settings.server.host,
        port=settings.server.port,
    )
