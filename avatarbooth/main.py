"""
Avatar Booth API - Photo-to-avatar camera booth
FastAPI Backend Entry Point
"""

import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from avatarbooth import __version__
from avatarbooth.core.config import settings
from avatarbooth.core.logging import configure_logging
from avatarbooth.api import predictions, uploads
from avatarbooth.services.replicate import ReplicateClient
from avatarbooth.services.upload import CloudinaryUploadService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown events."""
    configure_logging(settings.LOG_LEVEL)
    logger.info("Starting Avatar Booth API...")

    # One HTTP client shared by every request and job run
    http = httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT)
    app.state.http = http
    app.state.replicate = ReplicateClient.from_settings(settings)
    app.state.uploader = CloudinaryUploadService.from_settings(http, settings)

    if not settings.replicate_configured:
        logger.warning("Replicate token or deployment not configured; predictions will fail")
    if not settings.cloudinary_configured:
        logger.warning("Cloudinary cloud name or upload preset not configured; uploads will fail")
    logger.info(f"Result selection policy: {settings.RESULT_SELECTION}")

    yield

    logger.info("Shutting down Avatar Booth API...")
    await http.aclose()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        description="Photo-to-avatar camera booth: upload, transform and poll image jobs",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Include routers
    app.include_router(predictions.router, prefix="/api/predictions", tags=["Predictions"])
    app.include_router(uploads.router, prefix="/api/uploads", tags=["Uploads"])

    @app.get("/health", tags=["Health"])
    async def health_check():
        """
        Health check endpoint for monitoring.
        Reports whether the external services are configured.
        """
        services = {
            "replicate": "ok" if settings.replicate_configured else "not configured",
            "cloudinary": "ok" if settings.cloudinary_configured else "not configured",
        }
        healthy = all(value == "ok" for value in services.values())
        return {
            "status": "healthy" if healthy else "degraded",
            "version": __version__,
            "services": services,
            "polling": {
                "interval_seconds": settings.POLL_INTERVAL_SECONDS,
                "max_wait_seconds": settings.POLL_MAX_WAIT_SECONDS,
                "result_selection": settings.RESULT_SELECTION,
            },
        }

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint."""
        return {
            "message": "Avatar Booth API",
            "docs": "/docs",
            "health": "/health",
        }

    return app


app = create_app()
