"""
FastAPI Realtime Application Factory
====================================

Entry point for the realtime presence service: the live push channel that
sits next to the chat REST API (login, messages, rooms) and keeps clients
up to date on presence, typing and delivery.

Routers:
    - /ws           : WebSocket push channel (auth + typing signaling)
    - /realtime/*   : Status and typing state queries
    - /internal/*   : Event publishing for collaborators (X-Internal-Secret)
    - /health       : Health check endpoint

Running the Service:
    Development:
        uvicorn chatcore.main:app --reload --host 0.0.0.0 --port 3003

    Production (single worker; the registry is process-local):
        uvicorn chatcore.main:app --host 0.0.0.0 --port 3003

    With custom log level:
        LOG_LEVEL=DEBUG uvicorn chatcore.main:app --reload
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Dict, Optional

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import Settings, get_settings, validate_configuration
from .realtime.events import internal_router
from .realtime.hub import RealtimeHub
from .realtime.ws import realtime_router, ws_router


SERVICE_NAME = "chatcore-realtime"
SERVICE_VERSION = "1.0.0"


# Configure structured JSON logging
def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structured logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='{"timestamp": "%(asctime)s", "level": "%(levelname)s", "logger": "%(name)s", "message": "%(message)s", "module": "%(module)s", "function": "%(funcName)s"}',
        handlers=[logging.StreamHandler(sys.stdout)]
    )


# Lifespan context manager for startup/shutdown
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup tasks:
        - Configure logging
        - Validate configuration and log warnings

    Shutdown tasks:
        - Cancel pending typing timers
        - Close active WebSocket connections
    """
    settings: Settings = app.state.settings

    setup_logging(settings.LOG_LEVEL)
    logger = logging.getLogger("chatcore.main")

    report = validate_configuration(settings)
    for error in report["errors"]:
        logger.error(f"Configuration error: {error}")
    for warning in report["warnings"]:
        logger.warning(f"Configuration warning: {warning}")

    logger.info(
        "Realtime service started",
        extra={
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "typing_timeout_seconds": settings.TYPING_TIMEOUT_SECONDS
        }
    )

    yield

    logger.info("Shutting down realtime service")

    try:
        await app.state.realtime.shutdown()
    except Exception as e:
        logger.error(f"Error stopping realtime hub: {e}", exc_info=True)

    logger.info("Realtime service shutdown complete")


def create_application(settings: Optional[Settings] = None) -> FastAPI:
    """
    Application factory function.

    Creates and configures the FastAPI application instance with:
        - Its own RealtimeHub (registry, typing tracker, broadcaster)
        - Lifespan management
        - CORS middleware
        - Route handlers
        - Exception handlers

    Args:
        settings: Settings to use; loaded from the environment when omitted

    Returns:
        FastAPI: Configured application instance
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Realtime Presence Service",
        description="Connection registry, broadcast and presence core for chat clients",
        version=SERVICE_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc"
    )

    app.state.settings = settings
    app.state.realtime = RealtimeHub(settings)

    if settings.allowed_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.allowed_origins_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "OPTIONS"],
            allow_headers=["*"],
        )

    # Push channel for clients
    app.include_router(ws_router, tags=["Real-time Communications"])

    # Status and typing queries
    app.include_router(realtime_router, prefix="/realtime", tags=["Real-time Communications"])

    # Events from collaborators (login, messages, reactions)
    app.include_router(internal_router, tags=["Internal APIs"])

    # Health check endpoint
    @app.get("/health", tags=["System"])
    async def health_check() -> Dict[str, str]:
        """
        Health check endpoint.

        Returns:
            dict: Service health information
        """
        return {
            "status": "ok",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION
        }

    @app.get("/", tags=["System"])
    async def root() -> Dict[str, object]:
        """Service metadata and available endpoints."""
        return {
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "endpoints": {
                "health": "/health",
                "docs": "/docs",
                "websocket": "/ws",
                "realtime": "/realtime",
                "internal": "/internal"
            }
        }

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """
        Global exception handler for unhandled errors.

        Logs the error and returns a standardized error response.
        """
        logger = logging.getLogger("chatcore.main")
        logger.error(
            f"Unhandled exception: {str(exc)}",
            extra={
                "path": request.url.path,
                "method": request.method,
                "exception_type": type(exc).__name__
            },
            exc_info=True
        )

        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "detail": str(exc) if settings.LOG_LEVEL == "DEBUG" else None
            }
        )

    return app


# Create app instance for uvicorn
app = create_application()


if __name__ == "__main__":
    """
    Direct execution entry point: python -m chatcore.main
    """
    settings = get_settings()

    uvicorn.run(
        "chatcore.main:app",
        host=settings.SERVER_HOST,
        port=settings.SERVER_PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower()
    )
