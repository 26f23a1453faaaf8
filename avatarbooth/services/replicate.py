"""
Replicate Client
Creates, reads and cancels predictions through the official Replicate SDK.
Documentation: https://replicate.com/docs/get-started/python
"""

import logging
from typing import Any, Dict, Optional

import httpx
import replicate
from replicate.exceptions import ReplicateError

from avatarbooth.core.config import Settings
from avatarbooth.schemas.prediction import Prediction
from avatarbooth.services.backend import parse_prediction
from avatarbooth.services.errors import UpstreamError

logger = logging.getLogger(__name__)


class ReplicateClient:
    """
    Prediction backend on Replicate.

    Wraps a ``replicate.Client``; one instance may be shared by concurrent runs.
    """

    def __init__(
        self,
        sdk: replicate.Client,
        deployment_owner: Optional[str] = None,
        deployment_name: Optional[str] = None,
        model_version: Optional[str] = None,
    ):
        self.sdk = sdk
        self.deployment_owner = deployment_owner or None
        self.deployment_name = deployment_name or None
        self.model_version = model_version or None

    @classmethod
    def from_settings(cls, settings: Settings) -> "ReplicateClient":
        sdk = replicate.Client(
            api_token=settings.REPLICATE_API_TOKEN,
            base_url=settings.REPLICATE_API_BASE,
            timeout=settings.HTTP_TIMEOUT,
        )
        return cls(
            sdk,
            deployment_owner=settings.REPLICATE_DEPLOYMENT_OWNER,
            deployment_name=settings.REPLICATE_DEPLOYMENT_NAME,
            model_version=settings.REPLICATE_MODEL_VERSION,
        )

    @property
    def deployment(self) -> Optional[str]:
        if self.deployment_owner and self.deployment_name:
            return f"{self.deployment_owner}/{self.deployment_name}"
        return None

    async def create_prediction(self, input: Dict[str, Any]) -> Prediction:
        """
        Create a prediction on the configured deployment (or model version).

        Raises:
            UpstreamError: no target configured, or Replicate refused the job
        """
        if self.deployment:
            call = self.sdk.deployments.predictions.async_create(self.deployment, input=input)
        elif self.model_version:
            call = self.sdk.predictions.async_create(version=self.model_version, input=input)
        else:
            raise UpstreamError("No deployment or model version configured")

        prediction = await self._call("create", call)
        logger.info(f"[Replicate] Prediction created: {prediction.id} ({prediction.status.value})")
        return prediction

    async def get_prediction(self, prediction_id: str) -> Prediction:
        return await self._call("get", self.sdk.predictions.async_get(prediction_id))

    async def cancel_prediction(self, prediction_id: str) -> Prediction:
        prediction = await self._call("cancel", self.sdk.predictions.async_cancel(prediction_id))
        logger.info(f"[Replicate] Prediction canceled: {prediction_id}")
        return prediction

    async def _call(self, action: str, call) -> Prediction:
        try:
            result = await call
        except ReplicateError as e:
            status_code = getattr(e, "status", None)
            message = getattr(e, "detail", None) or str(e)
            logger.warning(f"[Replicate] {action} failed ({status_code}): {message}")
            raise UpstreamError(message, status_code=status_code) from e
        except httpx.HTTPError as e:
            logger.warning(f"[Replicate] {action} failed: {e}")
            raise UpstreamError(f"Image service unreachable: {e}") from e

        return parse_prediction(to_body(result))


def to_body(result: Any) -> Dict[str, Any]:
    """Plain prediction body from an SDK prediction object."""
    fields = list(Prediction.model_fields) + ["input"]
    return {name: getattr(result, name) for name in fields if getattr(result, name, None) is not None}
