"""
Prediction backend protocol and shared response handling.
"""

import logging
from typing import Any, Dict, Optional, Protocol

import httpx

from avatarbooth.schemas.prediction import Prediction
from avatarbooth.services.errors import UpstreamError

logger = logging.getLogger(__name__)


class PredictionBackend(Protocol):
    """Anything that can create and look up predictions."""

    async def create_prediction(self, input: Dict[str, Any]) -> Prediction:
        """Submit a job; returns the accepted prediction."""
        ...

    async def get_prediction(self, prediction_id: str) -> Prediction:
        """Return the current prediction body."""
        ...


async def send(
    http: httpx.AsyncClient,
    method: str,
    url: str,
    expected_status: int,
    **kwargs,
) -> Dict[str, Any]:
    """
    Perform one request and return the JSON body.

    Raises:
        UpstreamError: transport failure, unexpected status, or non-JSON body
    """
    try:
        response = await http.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        logger.warning(f"[Backend] {method} {url} failed: {e}")
        raise UpstreamError(f"Image service unreachable: {e}") from e

    body = _json_or_none(response)

    if response.status_code != expected_status:
        detail = _detail(body) or f"Image service returned HTTP {response.status_code}"
        logger.warning(f"[Backend] {method} {url} -> {response.status_code}: {detail}")
        raise UpstreamError(detail, status_code=response.status_code)

    if not isinstance(body, dict):
        raise UpstreamError("Image service returned an invalid body", status_code=response.status_code)

    return body


def parse_prediction(body: Dict[str, Any]) -> Prediction:
    try:
        return Prediction.model_validate(body)
    except ValueError as e:
        raise UpstreamError(f"Image service returned an invalid prediction: {e}") from e


def _json_or_none(response: httpx.Response):
    try:
        return response.json()
    except ValueError:
        return None


def _detail(body) -> Optional[str]:
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail:
            return str(detail)
    return None
