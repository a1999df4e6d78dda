"""FastAPI application entry point.

This is the main application that ties together:
- API routes (pastes, health)
- Lifecycle management (preflight and daemon lock on startup, release on shutdown)
- Middleware (request logging)
- Error mapping from service errors to JSON responses
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lanpaste import __version__
from lanpaste.api.routes import health_router, pastes_router
from lanpaste.api.routes.health import set_ready
from lanpaste.config import Settings, get_settings
from lanpaste.errors import InvalidInput, LanPasteError
from lanpaste.services.paste_service import init_paste_service, shutdown_paste_service
from lanpaste.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for one data directory.

    Args:
        settings: Settings to serve with; loaded from the environment if omitted
    """
    if settings is None:
        settings = get_settings()

    setup_logging(
        environment=settings.environment,
        log_level="DEBUG" if settings.debug else "INFO",
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager.

        - Startup: preflight checks, daemon lock, repository bootstrap
        - Shutdown: release the daemon lock
        """
        logger.info(f"Starting lanpaste {__version__} (data dir: {settings.data_dir})")

        try:
            await init_paste_service(settings)
        except LanPasteError as e:
            logger.error(f"Failed to start paste service: {e.message}")
            raise

        set_ready(True)
        logger.info("Service is ready")

        yield  # Application runs here

        logger.info("Shutting down...")
        set_ready(False)
        await shutdown_paste_service()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="LAN Paste",
        description="""
        Git-backed paste store for the local network.

        ## Usage
        1. POST raw bytes to /api/v1/paste (optionally with ?name=&tag=&msg=)
        2. Fetch metadata from /api/v1/p/{id} or bytes from /api/v1/p/{id}/raw
        3. Browse /api/v1/recent
        """,
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    # Request logging middleware
    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log all incoming requests."""
        start_time = datetime.now(timezone.utc)

        # Skip logging for probes to reduce noise
        if request.url.path in ("/healthz", "/readyz"):
            return await call_next(request)

        response = await call_next(request)

        duration_ms = (datetime.now(timezone.utc) - start_time).total_seconds() * 1000

        logger.info(
            f"{request.method} {request.url.path} - {response.status_code} ({duration_ms:.0f}ms)",
            extra={
                "extra_data": {
                    "method": request.method,
                    "path": request.url.path,
                    "status_code": response.status_code,
                    "duration_ms": duration_ms,
                }
            },
        )

        return response

    @app.exception_handler(LanPasteError)
    async def lanpaste_error_handler(request: Request, exc: LanPasteError):
        """Map service errors to their status code and JSON body."""
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        """Report malformed query parameters as bad requests."""
        err = InvalidInput(f"invalid request: {exc.errors()}")
        return JSONResponse(status_code=err.status_code, content=err.to_dict())

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_error",
                "message": "An unexpected error occurred",
            },
        )

    # Mount routers
    app.include_router(health_router)
    app.include_router(pastes_router)

    return app


app = create_app()


def run() -> None:
    """Console entry point: serve with uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "lanpaste.main:app",
        host=settings.host,
        port=settings.port,
        log_level="debug" if settings.debug else "info",
    )


# For local development
if __name__ == "__main__":
    run()
