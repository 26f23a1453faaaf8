"""
Prediction Schemas
Pydantic models for the upstream prediction body and the proxy API.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class PredictionStatus(str, Enum):
    """Status vocabulary of the image-transformation service."""
    STARTING = "starting"
    PROCESSING = "processing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    PredictionStatus.SUCCEEDED,
    PredictionStatus.FAILED,
    PredictionStatus.CANCELED,
})


class Prediction(BaseModel):
    """
    Prediction body as returned by the upstream service.

    Unknown fields are kept so the proxy can forward the body untouched.
    """
    model_config = ConfigDict(extra="allow")

    id: str
    status: PredictionStatus
    output: Any = None
    error: Any = None
    logs: Optional[str] = None
    version: Optional[str] = None
    model: Optional[str] = None
    urls: Dict[str, str] = Field(default_factory=dict)
    metrics: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


class PredictionCreateRequest(BaseModel):
    """
    Body of POST /api/predictions.

    Only ``image`` is required; anything else overrides the configured
    job parameters and is forwarded to the model input.
    """
    model_config = ConfigDict(extra="allow")

    image: Optional[str] = None
    prompt: Optional[str] = None
    negative_prompt: Optional[str] = None
    num_inference_steps: Optional[int] = None
    guidance_scale: Optional[float] = None
    strength: Optional[float] = None
    seed: Optional[int] = None


class UploadResponse(BaseModel):
    """Schema for upload response."""
    secure_url: str

