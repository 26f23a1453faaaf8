"""
Upload Service
Stores captured photos on Cloudinary and returns a public URL the
image service can fetch.
"""

import base64
import binascii
import logging
import re
from typing import Optional, Tuple

import httpx

from avatarbooth.core.config import Settings
from avatarbooth.services.errors import UploadError

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,(?P<data>.*)$", re.DOTALL)

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
    "image/webp": "webp",
    "image/gif": "gif",
}


def decode_data_url(data_url: str) -> Tuple[bytes, str]:
    """
    Decode a ``data:image/...;base64,`` URL as produced by a canvas capture.

    Returns:
        (image bytes, mime type)

    Raises:
        UploadError: not an image data URL, or invalid base64
    """
    match = _DATA_URL_RE.match(data_url.strip())
    if not match:
        raise UploadError("Not a base64 image data URL")
    try:
        data = base64.b64decode(match.group("data"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise UploadError(f"Invalid base64 image data: {e}") from e
    return data, match.group("mime")


class CloudinaryUploadService:
    """Unsigned Cloudinary upload using an upload preset."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        cloud_name: str,
        upload_preset: str,
        folder: Optional[str] = None,
        api_base: str = "https://api.cloudinary.com/v1_1",
    ):
        self.http = http
        self.cloud_name = cloud_name
        self.upload_preset = upload_preset
        self.folder = folder or None
        self.endpoint = f"{api_base.rstrip('/')}/{cloud_name}/image/upload"

    @classmethod
    def from_settings(cls, http: httpx.AsyncClient, settings: Settings) -> "CloudinaryUploadService":
        return cls(
            http,
            cloud_name=settings.CLOUDINARY_CLOUD_NAME,
            upload_preset=settings.CLOUDINARY_UPLOAD_PRESET,
            folder=settings.CLOUDINARY_FOLDER,
            api_base=settings.CLOUDINARY_API_BASE,
        )

    async def upload(self, data: bytes, mime_type: str = "image/jpeg") -> str:
        """
        Upload image bytes in a single attempt.

        Args:
            data: Raw image bytes
            mime_type: Content type of the image

        Returns:
            Publicly fetchable ``secure_url``

        Raises:
            UploadError: transport failure, non-2xx, or service-reported error
        """
        filename = f"capture.{_EXTENSIONS.get(mime_type, 'jpg')}"
        form = {"upload_preset": self.upload_preset}
        if self.folder:
            form["folder"] = self.folder

        logger.info(f"[Upload] Uploading {len(data)} bytes ({mime_type}) to {self.cloud_name}")

        try:
            response = await self.http.post(
                self.endpoint,
                data=form,
                files={"file": (filename, data, mime_type)},
            )
        except httpx.HTTPError as e:
            logger.error(f"[Upload] Transport error: {e}")
            raise UploadError(f"Image upload failed: {e}") from e

        body = _json_or_none(response)
        service_message = _service_error(body)

        if response.is_error or service_message:
            message = service_message or f"Image upload failed (HTTP {response.status_code})"
            logger.error(f"[Upload] Rejected: {message}")
            raise UploadError(message, details={"status_code": response.status_code})

        secure_url = body.get("secure_url") if isinstance(body, dict) else None
        if not isinstance(secure_url, str) or not secure_url:
            raise UploadError("Image upload failed: no URL returned")

        logger.info(f"[Upload] Stored at {secure_url}")
        return secure_url


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _service_error(body) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    error = body.get("error")
    if isinstance(error, dict):
        return error.get("message") or "Image upload failed"
    if isinstance(error, str) and error:
        return error
    return None
