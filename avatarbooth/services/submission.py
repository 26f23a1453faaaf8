"""
Submission Service
Turns an uploaded image URL plus job parameters into an accepted Job.
"""

import logging
import random
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict

from avatarbooth.core.config import Settings
from avatarbooth.schemas.job import Job
from avatarbooth.services.backend import PredictionBackend
from avatarbooth.services.errors import MissingInputError, SubmissionError, UpstreamError

logger = logging.getLogger(__name__)

SEED_UPPER_BOUND = 1_000_000


class JobParameters(BaseModel):
    """
    Model input knobs forwarded verbatim to the image service.

    Extra keys are allowed and passed through unchanged.
    """
    model_config = ConfigDict(extra="allow")

    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    num_inference_steps: Optional[int] = None
    guidance_scale: Optional[float] = None
    strength: Optional[float] = None
    seed: Optional[int] = None

    @classmethod
    def from_settings(
        cls, settings: Settings, overrides: Optional[Dict[str, Any]] = None
    ) -> "JobParameters":
        """Defaults from settings; ``None`` overrides are ignored."""
        values = {
            "prompt": settings.DEFAULT_PROMPT,
            "negative_prompt": settings.DEFAULT_NEGATIVE_PROMPT,
            "num_inference_steps": settings.DEFAULT_NUM_INFERENCE_STEPS,
            "guidance_scale": settings.DEFAULT_GUIDANCE_SCALE,
            "strength": settings.DEFAULT_STRENGTH,
        }
        values.update({k: v for k, v in (overrides or {}).items() if v is not None})
        return cls(**values)

    def to_input(self, image_url: str, rng: Optional[random.Random] = None) -> Dict[str, Any]:
        """Build the model input, drawing a seed when none was given."""
        data = self.model_dump(exclude_none=True)
        if data.get("seed") is None:
            data["seed"] = (rng or random).randrange(SEED_UPPER_BOUND)
        data["image"] = image_url
        return data


class SubmissionClient:
    """Submits transformation jobs through a prediction backend."""

    def __init__(self, backend: PredictionBackend, rng: Optional[random.Random] = None):
        self.backend = backend
        self.rng = rng

    async def submit(self, image_url: Optional[str], params: Optional[JobParameters] = None) -> Job:
        """
        Submit one job.

        Raises:
            MissingInputError: empty image URL; no request is made
            SubmissionError: the service did not accept the job
        """
        if not image_url or not image_url.strip():
            raise MissingInputError()

        model_input = (params or JobParameters()).to_input(image_url.strip(), self.rng)
        logger.info(f"[Submission] Submitting job for {model_input['image']} (seed={model_input['seed']})")

        try:
            prediction = await self.backend.create_prediction(model_input)
        except UpstreamError as e:
            raise SubmissionError(e.message, details={"status_code": e.status_code}) from e

        job = Job.from_prediction(prediction)
        logger.info(f"[Submission] Job accepted: {job.id} ({job.status.value})")
        return job
