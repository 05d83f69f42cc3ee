"""
Halloween Photobooth - Main FastAPI Application

Photo-to-video pipeline and gallery backend:
- Watches the input folder for new photobooth pictures
- Turns each picture into a Halloween video exactly once
- Serves generated and screensaver videos to the browser player
- Admin status and processing-history reset
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
import sys

from app.services import build_services
from app.utils.config import Settings, get_settings
from app.api import health, videos, admin


def configure_logging(level: str) -> None:
    """Single stdout sink shared by the API and the watcher."""
    logger.remove()
    logger.add(
        sys.stdout,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=level.upper()
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build the FastAPI application around one set of photobooth services."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        logger.info(f"Starting {settings.api_title} v{settings.api_version}")

        services = build_services(settings)
        if not services.storage.initialize():
            raise RuntimeError("Could not create photobooth folders")
        services.ledger.initialize()
        app.state.services = services

        if settings.watcher_autostart:
            await services.watcher.start()
        else:
            logger.info("Photo watcher autostart disabled")

        logger.success("All services initialized successfully")

        yield

        # Cleanup
        logger.info("Shutting down Halloween Photobooth...")
        await services.watcher.stop()
        logger.success("Application shut down complete")

    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Halloween photobooth photo-to-video pipeline and gallery",
        lifespan=lifespan
    )

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler."""
        logger.error(f"Unhandled exception: {exc}")
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc) if settings.log_level.upper() == "DEBUG" else "An error occurred"
            }
        )

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(videos.router, prefix="/api", tags=["Gallery"])
    app.include_router(admin.router, prefix="/api", tags=["Admin"])

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "service": "Halloween Photobooth",
            "version": settings.api_version,
            "status": "operational",
            "docs": "/docs",
            "health": "/health"
        }

    return app


settings = get_settings()
configure_logging(settings.log_level)
app = create_app(settings)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=settings.api_port,
        log_level=settings.log_level.lower()
    )
