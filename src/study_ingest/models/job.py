"""Queued extraction job and its retry policy."""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from functools import cached_property

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from study_ingest.models.content import SourceType


class QueueState(str, Enum):
    """Queue-side lifecycle of a job."""

    WAITING = "waiting"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded redelivery with exponential backoff, expressed as tenacity strategies.

    The queue evaluates the policy once per failed delivery instead of wrapping
    a call in ``@retry``: a delivery's outcome arrives later, from whichever
    worker held the lease. Delay after the n-th failed delivery is
    ``backoff_base_seconds * 2 ** (n - 1)``: 2s, 4s, 8s with the default base.

    Every failure is redelivered until ``max_attempts`` is used up. With
    ``fail_fast`` set, errors whose ``retryable`` flag is False (corrupt files,
    invalid URLs, 4xx responses) exhaust the job on their first delivery.
    """

    max_attempts: int = 3
    backoff_base_seconds: float = 2.0
    fail_fast: bool = False

    @cached_property
    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.backoff_base_seconds, exp_base=2),
            retry=retry_if_exception(self._should_retry),
        )

    def _should_retry(self, error: BaseException) -> bool:
        # Errors without a retryable flag (unexpected exceptions) count as transient
        return not self.fail_fast or getattr(error, "retryable", True)

    def _call_state(self, attempt: int, error: BaseException | None = None) -> RetryCallState:
        state = RetryCallState(self._retrying, fn=None, args=(), kwargs={})
        state.attempt_number = max(attempt, 1)
        if error is not None:
            state.set_exception((type(error), error, error.__traceback__))
        return state

    def delay_for(self, attempt: int) -> float:
        """Return the backoff delay (seconds) after failed delivery number ``attempt``."""
        return self._retrying.wait(self._call_state(attempt))

    def next_delay(self, attempt: int, error: BaseException) -> float | None:
        """Delay before redelivering after ``error`` on delivery ``attempt``.

        Returns None when the job must not be redelivered.
        """
        state = self._call_state(attempt, error)
        if self._retrying.stop(state) or not self._retrying.retry(state):
            return None
        return self._retrying.wait(state)


@dataclass(frozen=True)
class JobPayload:
    """Enqueue contract: what to extract and from where."""

    source_type: SourceType
    source_locator: str


@dataclass
class Job:
    """One unit of "extract and populate text for content X" work."""

    content_id: str
    payload: JobPayload
    lineage: int = 1
    max_attempts: int = 3
    job_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    attempt: int = 0  # Deliveries handed out so far
    queue_state: QueueState = QueueState.WAITING
    last_error: str | None = None
    available_at: float = 0.0  # Monotonic time before which the job is not deliverable
    lease_token: str | None = None
    lease_expires_at: float | None = None
