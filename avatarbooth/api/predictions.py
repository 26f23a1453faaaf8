"""
Predictions API Routes
Proxies job creation and status queries to the image service so the
API token never reaches the browser.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from avatarbooth.api.deps import get_app_settings, get_optional_upload_service, get_replicate_client
from avatarbooth.core.config import Settings
from avatarbooth.schemas.prediction import PredictionCreateRequest
from avatarbooth.services.errors import UploadError, UpstreamError
from avatarbooth.services.replicate import ReplicateClient
from avatarbooth.services.submission import JobParameters
from avatarbooth.services.upload import CloudinaryUploadService, decode_data_url

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_ERROR = "internal server error"


def _upstream_http_error(error: UpstreamError) -> HTTPException:
    code = error.status_code if error.status_code and error.status_code >= 400 else status.HTTP_502_BAD_GATEWAY
    return HTTPException(status_code=code, detail=error.message)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_prediction(
    request: PredictionCreateRequest,
    replicate: ReplicateClient = Depends(get_replicate_client),
    uploader: Optional[CloudinaryUploadService] = Depends(get_optional_upload_service),
    settings: Settings = Depends(get_app_settings),
):
    """
    Start an image transformation.

    Body fields other than ``image`` override the configured model input.
    A ``data:image/...`` capture is stored first and its public URL is sent
    in its place.
    """
    if not request.image or not request.image.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="image is required"
        )

    image = request.image.strip()
    if image.startswith("data:image/"):
        image = await _store_capture(image, uploader)

    try:
        overrides = request.model_dump(exclude={"image"}, exclude_none=True)
        params = JobParameters.from_settings(settings, overrides)
        prediction = await replicate.create_prediction(params.to_input(image))
    except UpstreamError as e:
        logger.error(f"[Predictions] Create rejected: {e.message}")
        raise _upstream_http_error(e)
    except Exception as e:
        logger.exception(f"[Predictions] Create failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )

    logger.info(f"[Predictions] Created {prediction.id}")
    return prediction.model_dump(mode="json")


async def _store_capture(data_url: str, uploader: Optional[CloudinaryUploadService]) -> str:
    """Upload a base64 capture and return its public URL."""
    if uploader is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Upload service not initialized"
        )

    try:
        data, mime_type = decode_data_url(data_url)
    except UploadError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    try:
        secure_url = await uploader.upload(data, mime_type)
    except UploadError as e:
        logger.error(f"[Predictions] Capture upload failed: {e.message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=e.message)

    logger.info(f"[Predictions] Capture stored at {secure_url}")
    return secure_url


@router.get("/")
async def missing_prediction_id():
    raise HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail="id is required"
    )


@router.get("/{prediction_id}")
async def get_prediction(
    prediction_id: str,
    replicate: ReplicateClient = Depends(get_replicate_client),
):
    """Get the current prediction body."""
    if not prediction_id.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="id is required"
        )

    try:
        prediction = await replicate.get_prediction(prediction_id.strip())
    except UpstreamError as e:
        logger.error(f"[Predictions] Status for {prediction_id} failed: {e.message}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=e.message
        )
    except Exception as e:
        logger.exception(f"[Predictions] Status for {prediction_id} failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=INTERNAL_ERROR
        )

    if prediction.error:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=str(prediction.error)
        )

    return prediction.model_dump(mode="json")
