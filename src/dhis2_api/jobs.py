"""Submit-then-poll driver for DHIS2 asynchronous jobs.

Bulk imports posted with ``async=true`` are accepted immediately; the
response carries a job reference (``response.id`` and ``response.jobType``).
``AsyncJobRunner`` posts the payload, extracts the reference, and polls
``/api/system/tasks/<category>/<id>`` on a fixed interval until a terminal
notification shows up or the deadline passes.

State machine::

    SUBMITTED --(inline result)------------------------------> COMPLETED
    SUBMITTED --(job reference)--> POLLING --(terminal, ok)--> COMPLETED
    SUBMITTED --(HTTP error)--------------------------------> FAILED
    POLLING   --(ERROR notification / HTTP error / retries)--> FAILED
    POLLING   --(deadline or cancel)------------------------> TIMED_OUT
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Sequence
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from dhis2_api.errors import (
    DecodeError,
    Dhis2ClientError,
    JobTimeoutError,
    ServerError,
    TransportError,
    error_for_response,
)
from dhis2_api.models import Dhis2Model

if TYPE_CHECKING:
    from dhis2_api.client import Dhis2

logger = logging.getLogger(__name__)


class JobCategory(str, Enum):
    """DHIS2 job types that report progress through notifications."""

    DATAVALUE_IMPORT = "DATAVALUE_IMPORT"
    METADATA_IMPORT = "METADATA_IMPORT"
    TRACKER_IMPORT_JOB = "TRACKER_IMPORT_JOB"
    EVENT_IMPORT = "EVENT_IMPORT"
    ENROLLMENT_IMPORT = "ENROLLMENT_IMPORT"
    TEI_IMPORT = "TEI_IMPORT"
    COMPLETE_DATA_SET_REGISTRATION_IMPORT = "COMPLETE_DATA_SET_REGISTRATION_IMPORT"
    GML_IMPORT = "GML_IMPORT"
    ANALYTICS_TABLE = "ANALYTICS_TABLE"
    RESOURCE_TABLE = "RESOURCE_TABLE"
    DATA_INTEGRITY = "DATA_INTEGRITY"
    DATA_INTEGRITY_DETAILS = "DATA_INTEGRITY_DETAILS"
    MONITORING = "MONITORING"


class JobState(str, Enum):
    SUBMITTED = "SUBMITTED"
    POLLING = "POLLING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    TIMED_OUT = "TIMED_OUT"


class JobReference(BaseModel):
    """Identifies a server-side job: ``(category, id)``."""

    model_config = ConfigDict(frozen=True)

    category: JobCategory | str
    id: str

    @property
    def category_name(self) -> str:
        return self.category.value if isinstance(self.category, JobCategory) else self.category

    @property
    def tasks_path(self) -> str:
        return f"system/tasks/{self.category_name}/{self.id}"

    @property
    def summary_path(self) -> str:
        return f"system/taskSummaries/{self.category_name}/{self.id}"


class JobNotification(Dhis2Model):
    """Point-in-time status of a job."""

    uid: str | None = None
    level: str | None = "INFO"
    category: str | None = None
    time: datetime | None = None
    message: str | None = None
    completed: bool | None = False
    data_type: str | None = None
    data: Any = None

    @property
    def is_error(self) -> bool:
        return (self.level or "").upper() == "ERROR"

    @property
    def is_terminal(self) -> bool:
        return bool(self.completed) or self.is_error


class JobOutcome(BaseModel):
    """Final state of an async job run."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    state: JobState
    reference: JobReference | None = None
    notifications: list[JobNotification] = Field(default_factory=list)
    result: Any = None
    error: Dhis2ClientError | None = None
    attempts: int = 0

    @property
    def ok(self) -> bool:
        return self.state is JobState.COMPLETED

    def unwrap(self) -> Any:
        """Return the result, or raise the error that ended the run."""
        if self.error is not None:
            raise self.error
        if self.state is not JobState.COMPLETED:
            raise ServerError(f"Job ended in state {self.state.value}")
        return self.result


def _category(value: str) -> JobCategory | str:
    try:
        return JobCategory(value)
    except ValueError:
        return value


def extract_job_reference(body: Any) -> JobReference | None:
    """Return the job reference embedded in a submission response, if any."""
    if not isinstance(body, dict):
        return None
    response = body.get("response")
    if not isinstance(response, dict):
        return None
    job_id = response.get("id")
    job_type = response.get("jobType")
    if not job_id or not job_type:
        return None
    return JobReference(category=_category(str(job_type)), id=str(job_id))


def governing_notification(notifications: Sequence[JobNotification]) -> JobNotification | None:
    """Pick the newest terminal notification, or ``None`` if none is terminal.

    DHIS2 returns notifications newest first, but ordering is not guaranteed
    across versions, so the timestamp decides.  Ties keep server order.
    """
    terminal = [n for n in notifications if n.is_terminal]
    if not terminal:
        return None
    return max(terminal, key=lambda n: n.time.timestamp() if n.time else float("-inf"))


def _decode_json(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError as exc:
        raise DecodeError(f"Response body is not valid JSON: {exc}", response.status_code) from exc


class AsyncJobRunner:
    """Drive one submit-then-poll job to completion.

    A runner holds no state between runs; every ``run`` owns its reference
    and polling loop, so one runner (and one client) can serve concurrent
    callers.

    Args:
        client: The DHIS2 client whose transport is used.
        interval: Seconds between polls.  Defaults to the client config.
        timeout: Maximum seconds to poll.  Defaults to the client config.
        max_poll_failures: Consecutive transient poll failures tolerated.
        clock: Monotonic clock, injectable for tests.
        sleep: Sleep function, injectable for tests.
        cancel: Event that stops polling before the next request when set.
    """

    def __init__(
        self,
        client: Dhis2,
        interval: float | None = None,
        timeout: float | None = None,
        max_poll_failures: int | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        cancel: threading.Event | None = None,
    ) -> None:
        config = client.config
        self.client = client
        self.interval = interval if interval is not None else config.poll_interval
        self.timeout = timeout if timeout is not None else config.poll_timeout
        self.max_poll_failures = max_poll_failures if max_poll_failures is not None else config.max_poll_failures
        if self.interval <= 0:
            raise ValueError("interval must be positive")
        if self.timeout <= 0:
            raise ValueError("timeout must be positive")
        self._clock = clock
        self._sleep = sleep
        self._cancel = cancel

    def run(
        self,
        path: str,
        content: bytes,
        params: Sequence[tuple[str, str]] = (),
    ) -> JobOutcome:
        """Submit *content* to *path* and wait for the job to finish.

        Args:
            path: API path relative to ``/api`` (e.g. ``"dataValueSets"``).
            content: JSON request body.
            params: Extra query parameters.  ``async=true`` is appended
                unless already present.

        Returns:
            The JobOutcome; COMPLETED outcomes carry the result payload.
        """
        query = list(params)
        if not any(key == "async" for key, _ in query):
            query.append(("async", "true"))

        logger.info("Submitting async job to %s", path)
        try:
            response = self.client.http.post(
                path,
                content=content,
                params=query,
                headers={"Content-Type": "application/json"},
            )
        except httpx.TransportError as exc:
            return self._failed(TransportError(f"Submission to {path} failed: {exc}"))

        if not (response.is_success or response.status_code == 409):
            return self._failed(error_for_response(response))

        try:
            body = _decode_json(response)
        except DecodeError as exc:
            return self._failed(exc)

        reference = extract_job_reference(body)
        if reference is None:
            logger.info("Job at %s completed synchronously (HTTP %d)", path, response.status_code)
            return JobOutcome(state=JobState.COMPLETED, result=body)

        logger.info("Job accepted: %s %s", reference.category_name, reference.id)
        return self.poll(reference)

    def poll(self, reference: JobReference) -> JobOutcome:
        """Poll notifications for *reference* until a terminal state."""
        deadline = self._clock() + self.timeout
        seen: list[JobNotification] = []
        attempts = 0
        failures = 0

        while True:
            if self._cancel is not None and self._cancel.is_set():
                logger.warning("Polling of %s cancelled after %d attempts", reference.id, attempts)
                return JobOutcome(
                    state=JobState.TIMED_OUT,
                    reference=reference,
                    notifications=seen,
                    error=JobTimeoutError(f"Polling of job {reference.id} was cancelled"),
                    attempts=attempts,
                )
            if self._clock() >= deadline:
                logger.warning("Job %s timed out after %d attempts", reference.id, attempts)
                return JobOutcome(
                    state=JobState.TIMED_OUT,
                    reference=reference,
                    notifications=seen,
                    error=JobTimeoutError(f"Job {reference.id} did not complete within {self.timeout:g}s"),
                    attempts=attempts,
                )

            attempts += 1
            try:
                notifications = self._fetch_notifications(reference)
            except (TransportError, DecodeError) as exc:
                failures += 1
                logger.warning(
                    "Poll %d for job %s failed (%d/%d): %s",
                    attempts,
                    reference.id,
                    failures,
                    self.max_poll_failures,
                    exc,
                )
                if failures > self.max_poll_failures:
                    return JobOutcome(
                        state=JobState.FAILED,
                        reference=reference,
                        notifications=seen,
                        error=exc,
                        attempts=attempts,
                    )
                self._wait(deadline)
                continue
            except Dhis2ClientError as exc:
                return JobOutcome(
                    state=JobState.FAILED,
                    reference=reference,
                    notifications=seen,
                    error=exc,
                    attempts=attempts,
                )

            failures = 0
            seen = notifications
            logger.debug("Poll %d for job %s: %d notifications", attempts, reference.id, len(notifications))

            final = governing_notification(notifications)
            if final is not None:
                return self._finish(reference, final, seen, attempts)

            self._wait(deadline)

    def _finish(
        self,
        reference: JobReference,
        final: JobNotification,
        seen: list[JobNotification],
        attempts: int,
    ) -> JobOutcome:
        if final.is_error:
            logger.error("Job %s failed: %s", reference.id, final.message)
            return JobOutcome(
                state=JobState.FAILED,
                reference=reference,
                notifications=seen,
                error=ServerError(final.message or f"Job {reference.id} failed"),
                attempts=attempts,
            )

        result = final.data
        if result is None:
            try:
                result = self.client.get_job_summary(reference)
            except Dhis2ClientError as exc:
                return JobOutcome(
                    state=JobState.FAILED,
                    reference=reference,
                    notifications=seen,
                    error=exc,
                    attempts=attempts,
                )

        logger.info("Job %s completed after %d polls", reference.id, attempts)
        return JobOutcome(
            state=JobState.COMPLETED,
            reference=reference,
            notifications=seen,
            result=result,
            attempts=attempts,
        )

    def _fetch_notifications(self, reference: JobReference) -> list[JobNotification]:
        try:
            response = self.client.http.get(reference.tasks_path)
        except httpx.TransportError as exc:
            raise TransportError(f"Polling job {reference.id} failed: {exc}") from exc
        if not response.is_success:
            raise error_for_response(response)
        body = _decode_json(response)
        if not isinstance(body, list):
            raise DecodeError("Expected a list of job notifications", response.status_code)
        try:
            return [JobNotification.model_validate(item) for item in body]
        except ValidationError as exc:
            raise DecodeError(f"Malformed job notification: {exc}", response.status_code) from exc

    def _wait(self, deadline: float) -> None:
        remaining = deadline - self._clock()
        if remaining <= 0:
            return
        self._sleep(min(self.interval, remaining))

    @staticmethod
    def _failed(error: Dhis2ClientError) -> JobOutcome:
        logger.error("Job submission failed: %s", error)
        return JobOutcome(state=JobState.FAILED, error=error)
