"""
Upload API Routes
Receives a captured photo and stores it so it can be transformed.
"""

import logging
from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from avatarbooth.api.deps import get_upload_service
from avatarbooth.schemas.prediction import UploadResponse
from avatarbooth.services.errors import UploadError
from avatarbooth.services.upload import CloudinaryUploadService

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_photo(
    file: UploadFile = File(...),
    uploader: CloudinaryUploadService = Depends(get_upload_service),
):
    """Store a photo and return its public URL."""
    if not file.content_type or not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File must be an image"
        )

    data = await file.read()
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="File is empty"
        )

    try:
        secure_url = await uploader.upload(data, file.content_type)
    except UploadError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=e.message
        )

    return UploadResponse(secure_url=secure_url)
