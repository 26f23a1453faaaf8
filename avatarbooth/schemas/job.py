"""
Job Schemas
The controller's view of one submitted transformation request.
"""

from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from avatarbooth.schemas.prediction import Prediction, PredictionStatus


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Job(BaseModel):
    """
    Snapshot of an in-flight or finished job.

    Snapshots are immutable; polling produces a new one via ``advance``.
    """
    model_config = ConfigDict(frozen=True)

    id: str
    status: PredictionStatus
    output: Any = None
    error_detail: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    last_polled_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> "Job":
        """Create the first snapshot from a submission response."""
        return cls(
            id=prediction.id,
            status=prediction.status,
            output=prediction.output if prediction.status == PredictionStatus.SUCCEEDED else None,
            error_detail=_error_text(prediction),
        )

    def advance(self, prediction: Prediction, polled_at: Optional[datetime] = None) -> "Job":
        """
        Return the snapshot that follows this one after a status query.

        Raises:
            ValueError: prediction belongs to another job, or would move a
                terminal job back to a non-terminal status
        """
        if prediction.id != self.id:
            raise ValueError(f"Snapshot for job {prediction.id} cannot update job {self.id}")
        if self.is_terminal and prediction.status != self.status:
            raise ValueError(
                f"Job {self.id} is already {self.status.value}; "
                f"refusing transition to {prediction.status.value}"
            )

        return Job(
            id=self.id,
            status=prediction.status,
            output=prediction.output if prediction.status == PredictionStatus.SUCCEEDED else None,
            error_detail=_error_text(prediction),
            created_at=self.created_at,
            last_polled_at=polled_at or utcnow(),
        )


def _error_text(prediction: Prediction) -> Optional[str]:
    if prediction.status not in (PredictionStatus.FAILED, PredictionStatus.CANCELED):
        return None
    if prediction.error is None:
        return None
    return str(prediction.error)
