"""
Booth Workflow
Photo in, avatar out: upload the capture, run the job, fetch the result.
"""

import logging
import mimetypes
import time
from pathlib import Path
from typing import Optional, Tuple

import httpx

from avatarbooth.services.controller import JobController
from avatarbooth.services.errors import BoothError
from avatarbooth.services.submission import JobParameters
from avatarbooth.services.upload import CloudinaryUploadService

logger = logging.getLogger(__name__)


def read_photo(path: Path) -> Tuple[bytes, str]:
    """Read a photo from disk and guess its mime type."""
    mime_type, _ = mimetypes.guess_type(path.name)
    if not mime_type or not mime_type.startswith("image/"):
        raise BoothError(f"{path.name} is not an image file")
    return path.read_bytes(), mime_type


def result_filename(timestamp_ms: Optional[int] = None) -> str:
    """Download name for a finished avatar."""
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"cyber-avatar-2099-{timestamp_ms}.jpg"


async def transform_photo(
    data: bytes,
    mime_type: str,
    uploader: CloudinaryUploadService,
    controller: JobController,
    params: Optional[JobParameters] = None,
) -> str:
    """
    Upload a photo and run one transformation job.

    Returns:
        Result image URL

    Raises:
        UploadError, SubmissionError, JobError
    """
    image_url = await uploader.upload(data, mime_type)
    return await controller.run(image_url, params)


async def download_result(http: httpx.AsyncClient, url: str, destination: Path) -> Path:
    """
    Save the result image.

    ``destination`` may be a directory, in which case a timestamped name is used.
    """
    if destination.is_dir():
        destination = destination / result_filename()

    try:
        response = await http.get(url)
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise BoothError(f"Could not download the result image: {e}") from e

    destination.parent.mkdir(parents=True, exist_ok=True)
    destination.write_bytes(response.content)
    logger.info(f"[Booth] Saved {len(response.content)} bytes to {destination}")
    return destination
