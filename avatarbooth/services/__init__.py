# Services package - external integrations and the job lifecycle
from avatarbooth.services.upload import CloudinaryUploadService
from avatarbooth.services.replicate import ReplicateClient
from avatarbooth.services.booth_api import BoothApiClient
from avatarbooth.services.submission import JobParameters, SubmissionClient
from avatarbooth.services.extraction import ResultSelection, extract_result
from avatarbooth.services.controller import ControllerState, JobController

__all__ = [
    "CloudinaryUploadService",
    "ReplicateClient",
    "BoothApiClient",
    "JobParameters",
    "SubmissionClient",
    "ResultSelection",
    "extract_result",
    "ControllerState",
    "JobController",
]
