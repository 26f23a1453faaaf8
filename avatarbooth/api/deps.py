"""
API Dependencies
Common dependencies for FastAPI routes (clients wired in the lifespan).
"""

from typing import Optional

from fastapi import HTTPException, Request, status

from avatarbooth.core.config import Settings, get_settings
from avatarbooth.services.replicate import ReplicateClient
from avatarbooth.services.upload import CloudinaryUploadService


def get_app_settings() -> Settings:
    """Get settings (overridable in tests)."""
    return get_settings()


def get_replicate_client(request: Request) -> ReplicateClient:
    """Get the shared Replicate client."""
    client = getattr(request.app.state, "replicate", None)
    if client is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Image service not initialized"
        )
    return client


def get_upload_service(request: Request) -> CloudinaryUploadService:
    """Get the shared upload service."""
    uploader = getattr(request.app.state, "uploader", None)
    if uploader is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upload service not initialized"
        )
    return uploader


def get_optional_upload_service(request: Request) -> Optional[CloudinaryUploadService]:
    """Get the shared upload service if one was wired, else ``None``."""
    return getattr(request.app.state, "uploader", None)
