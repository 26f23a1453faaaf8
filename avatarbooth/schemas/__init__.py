# Pydantic schemas package
from avatarbooth.schemas.prediction import (
    PredictionStatus, Prediction, PredictionCreateRequest, UploadResponse,
    TERMINAL_STATUSES,
)
from avatarbooth.schemas.job import Job

__all__ = [
    "PredictionStatus", "Prediction", "PredictionCreateRequest", "UploadResponse",
    "TERMINAL_STATUSES",
    "Job",
]
