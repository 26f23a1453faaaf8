"""
Booth Errors
Exception hierarchy for upload, submission and job lifecycle failures.

Every error carries a human-readable ``message`` that the UI can show as-is.
"""

from typing import Optional


class BoothError(Exception):
    """Base exception for booth errors."""

    default_message = "Unexpected error, please try again."

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None):
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)


class UploadError(BoothError):
    """Photo could not be stored by the upload service."""

    default_message = "Image upload failed."


# Status codes worth another attempt when retries are enabled
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})


class UpstreamError(BoothError):
    """
    Non-success response (or transport failure) from a prediction endpoint.

    ``status_code`` is None when no response was received.
    """

    default_message = "Image service request failed."

    def __init__(
        self,
        message: Optional[str] = None,
        status_code: Optional[int] = None,
        details: Optional[dict] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code

    @property
    def retryable(self) -> bool:
        return self.status_code is None or self.status_code in RETRYABLE_STATUS_CODES


class SubmissionError(BoothError):
    """Job was not accepted by the image service."""

    default_message = "Could not start image processing."


class MissingInputError(SubmissionError):
    """Submission attempted without an image URL; nothing was sent."""

    default_message = "image is required"


class JobError(BoothError):
    """Base for failures after the job was accepted."""


class PollFailedError(JobError):
    """A status query failed."""

    default_message = "Could not check processing status."


class JobFailedError(JobError):
    """The image service reported the job as failed or canceled."""

    default_message = "Processing failed, please try again."


class JobTimeoutError(JobError):
    """No terminal status within the configured wall-clock bound."""

    default_message = "Processing took too long, please try again."


class ResultExtractionError(JobError):
    """Succeeded job whose output has no usable result reference."""

    default_message = "Processing finished without a result image."
