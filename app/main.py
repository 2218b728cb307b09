"""
File Source - Main FastAPI Application

Runs the directory poller inside the API process and exposes:
- Health of the service and its metadata store
- Manual polls, statistics and seen-file resets
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from loguru import logger

from app.api import admin, health
from app.utils.config import get_settings
from app.utils.helpers import configure_logging
from domains.file_source.service import FileSourceService

API_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    if app.state.service is None:
        settings = get_settings()
        configure_logging(settings.log_level)
        logger.info(f"Starting {settings.api_title} v{settings.api_version}")

        try:
            app.state.service = FileSourceService.from_settings(settings)
        except Exception as e:
            logger.error(f"Failed to initialise file source: {e}")
            raise

    app.state.service.start()

    yield

    # Cleanup
    logger.info("Shutting down application...")
    app.state.service.stop()
    logger.success("Application shut down complete")


def create_app(service: Optional[FileSourceService] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        service: Pre-built service; when omitted it is built from settings at startup
    """
    app = FastAPI(
        title="File Source",
        version=API_VERSION,
        description="Directory poller publishing new files to an output channel",
        lifespan=lifespan
    )
    app.state.service = service

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={"error": "Internal server error", "detail": str(exc)}
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "File Source",
            "version": API_VERSION,
            "status": "operational",
            "docs": "/docs",
            "health": "/health"
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
