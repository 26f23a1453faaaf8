"""
Job Lifecycle Controller
Drives one transformation job from submission to a terminal result.

    idle -> submitting -> polling -> succeeded | failed

Polling is cooperative: the controller awaits a fixed interval before every
status query and never blocks the event loop. Cancelling the task that runs
``run`` interrupts the pending wait and no further queries are made.

One controller serves one run. Concurrent runs use separate controllers and
may share the same HTTP client and backend.
"""

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Awaitable, Callable, Optional

from avatarbooth.core.config import Settings
from avatarbooth.schemas.job import Job
from avatarbooth.schemas.prediction import Prediction, PredictionStatus
from avatarbooth.services.backend import PredictionBackend
from avatarbooth.services.errors import (
    BoothError,
    JobError,
    JobFailedError,
    JobTimeoutError,
    PollFailedError,
    SubmissionError,
    UpstreamError,
)
from avatarbooth.services.extraction import ResultSelection, extract_result
from avatarbooth.services.submission import JobParameters, SubmissionClient

logger = logging.getLogger(__name__)


class ControllerState(str, Enum):
    IDLE = "idle"
    SUBMITTING = "submitting"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


UpdateCallback = Callable[[ControllerState, Optional[Job]], None]


class JobController:
    """
    Submit a job and poll it until the service reports a terminal status.

    Args:
        submitter: Submission client used for the single submit call
        backend: Prediction backend used for status queries
        selection: Result extraction rule for succeeded jobs
        poll_interval: Seconds to wait before every status query
        max_wait: Seconds after submission before giving up (finite)
        status_retries: Retries for transient status-query failures
        retry_backoff: Base delay for those retries, doubled per attempt
        cancel_on_timeout: Ask the service to cancel the job on timeout
        on_update: Called with (state, job) on every transition and snapshot
        sleep: Awaitable delay, injectable for tests
        clock: Monotonic clock in seconds, injectable for tests
    """

    def __init__(
        self,
        submitter: SubmissionClient,
        backend: PredictionBackend,
        *,
        selection: ResultSelection = ResultSelection.FIRST,
        poll_interval: float = 2.0,
        max_wait: float = 300.0,
        status_retries: int = 0,
        retry_backoff: float = 1.0,
        cancel_on_timeout: bool = False,
        on_update: Optional[UpdateCallback] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if max_wait <= 0 or not math.isfinite(max_wait):
            raise ValueError("max_wait must be a positive, finite number of seconds")
        if status_retries < 0:
            raise ValueError("status_retries cannot be negative")

        self.submitter = submitter
        self.backend = backend
        self.selection = ResultSelection(selection)
        self.poll_interval = poll_interval
        self.max_wait = max_wait
        self.status_retries = status_retries
        self.retry_backoff = retry_backoff
        self.cancel_on_timeout = cancel_on_timeout
        self.on_update = on_update
        self._sleep = sleep
        self._clock = clock

        self._state = ControllerState.IDLE
        self._job: Optional[Job] = None
        self._result: Optional[str] = None
        self._error: Optional[BoothError] = None
        self._submitted_at: Optional[float] = None
        self._polls = 0

    @classmethod
    def from_settings(
        cls,
        submitter: SubmissionClient,
        backend: PredictionBackend,
        settings: Settings,
        **kwargs,
    ) -> "JobController":
        options = dict(
            selection=ResultSelection(settings.RESULT_SELECTION),
            poll_interval=settings.POLL_INTERVAL_SECONDS,
            max_wait=settings.POLL_MAX_WAIT_SECONDS,
            status_retries=settings.POLL_STATUS_RETRIES,
            retry_backoff=settings.POLL_RETRY_BACKOFF,
            cancel_on_timeout=settings.CANCEL_ON_TIMEOUT,
        )
        options.update(kwargs)
        return cls(submitter, backend, **options)

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def job(self) -> Optional[Job]:
        """Latest job snapshot, replaced after every successful query."""
        return self._job

    @property
    def result(self) -> Optional[str]:
        return self._result

    @property
    def error(self) -> Optional[BoothError]:
        return self._error

    @property
    def polls(self) -> int:
        """Number of status queries issued so far."""
        return self._polls

    async def run(self, image_url: Optional[str], params: Optional[JobParameters] = None) -> str:
        """
        Submit, poll to completion and return the result image URL.

        Raises:
            SubmissionError: job not accepted (includes MissingInputError)
            PollFailedError: a status query failed
            JobFailedError: the service reported failed or canceled
            JobTimeoutError: no terminal status within ``max_wait``
            ResultExtractionError: succeeded without a usable output
            asyncio.CancelledError: the run was abandoned
        """
        if self._state != ControllerState.IDLE:
            raise RuntimeError("JobController runs a single job; create a new controller per run")

        logger.info(
            f"[Controller] Starting run (interval={self.poll_interval}s, "
            f"max_wait={self.max_wait}s, selection={self.selection.value})"
        )
        self._transition(ControllerState.SUBMITTING)

        try:
            job = await self.submitter.submit(image_url, params)
            self._job = job
            self._submitted_at = self._clock()
            self._transition(ControllerState.POLLING)

            job = await self._poll_until_terminal(job)

            if job.status != PredictionStatus.SUCCEEDED:
                logger.warning(f"[Controller] Job {job.id} ended as {job.status.value}: {job.error_detail}")
                raise JobFailedError(details={
                    "job_id": job.id,
                    "status": job.status.value,
                    "error": job.error_detail,
                })

            result = extract_result(job.output, self.selection)

        except (SubmissionError, JobError) as e:
            self._error = e
            self._transition(ControllerState.FAILED)
            raise
        except asyncio.CancelledError:
            logger.info(f"[Controller] Run abandoned after {self._polls} poll(s)")
            self._transition(ControllerState.FAILED)
            raise

        self._result = result
        logger.info(f"[Controller] Job {job.id} succeeded after {self._polls} poll(s): {result}")
        self._transition(ControllerState.SUCCEEDED)
        return result

    async def _poll_until_terminal(self, job: Job) -> Job:
        while not job.is_terminal:
            await self._wait(self.poll_interval, job)

            prediction = await self._query(job)

            if prediction.error and not prediction.status.is_terminal:
                raise PollFailedError(str(prediction.error), details={"job_id": job.id})

            try:
                job = job.advance(prediction)
            except ValueError as e:
                raise PollFailedError(str(e), details={"job_id": job.id}) from e

            self._job = job
            logger.debug(f"[Controller] Job {job.id} status: {job.status.value}")
            self._notify()

        return job

    async def _wait(self, delay: float, job: Job) -> None:
        """
        Sleep before the next status query, never past the deadline.

        Gives up instead of returning once ``max_wait`` has elapsed, so no
        query is ever issued after the deadline.
        """
        remaining = self.max_wait - (self._clock() - self._submitted_at)
        if remaining <= 0:
            await self._give_up(job)

        await self._sleep(min(delay, remaining))

        if self._clock() - self._submitted_at >= self.max_wait:
            await self._give_up(job)

    async def _query(self, job: Job) -> Prediction:
        """One status query, retried only for transient failures when enabled."""
        attempt = 0
        while True:
            self._polls += 1
            try:
                return await self.backend.get_prediction(job.id)
            except UpstreamError as e:
                if e.retryable and attempt < self.status_retries:
                    # A retry is still a status query: keep at least one interval between them
                    delay = max(self.poll_interval, self.retry_backoff * (2 ** attempt))
                    attempt += 1
                    logger.warning(
                        f"[Retry {attempt}/{self.status_retries}] Status check for {job.id} failed: "
                        f"{e.message}. Retrying in {delay:.1f}s..."
                    )
                    await self._wait(delay, job)
                    continue
                logger.error(f"[Controller] Status check for {job.id} failed: {e.message}")
                raise PollFailedError(
                    e.message, details={"job_id": job.id, "status_code": e.status_code}
                ) from e

    async def _give_up(self, job: Job) -> None:
        logger.warning(f"[Controller] Job {job.id} still {job.status.value} after {self.max_wait}s")

        cancel = getattr(self.backend, "cancel_prediction", None)
        if self.cancel_on_timeout and cancel is not None:
            try:
                await cancel(job.id)
            except UpstreamError as e:
                logger.warning(f"[Controller] Could not cancel job {job.id}: {e.message}")

        raise JobTimeoutError(details={"job_id": job.id, "status": job.status.value})

    def _transition(self, state: ControllerState) -> None:
        logger.debug(f"[Controller] {self._state.value} -> {state.value}")
        self._state = state
        self._notify()

    def _notify(self) -> None:
        if self.on_update is not None:
            self.on_update(self._state, self._job)
