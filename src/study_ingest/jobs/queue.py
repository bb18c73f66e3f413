"""In-process durable-style job queue with leases, bounded retries, and backoff.

Delivery is at-least-once. A leased job is invisible to other workers until
its visibility deadline passes; ``requeue_expired`` then treats the lease as a
failed delivery (the holder is assumed to have crashed) and makes the job
deliverable again. Whether and when a failed delivery comes back is decided by
the queue's ``RetryPolicy``: every failure is redelivered after exponential
backoff until ``max_attempts`` is reached, after which the job is dropped.
There is no dead-letter retention.

Callers always receive snapshots of queue-owned ``Job`` objects. ``ack`` and
``nack`` compare the snapshot's lease token with the current one, so a worker
whose lease expired cannot acknowledge a job that was handed to someone else.
"""

import asyncio
import dataclasses
import logging
import time
import uuid

from study_ingest.errors import LeaseExpiredError, QueueExhaustedError
from study_ingest.models.job import Job, JobPayload, QueueState, RetryPolicy

logger = logging.getLogger(__name__)


class InMemoryJobQueue:
    """Asyncio job scheduler with explicit attempt counters and backoff timers."""

    def __init__(
        self,
        policy: RetryPolicy | None = None,
        visibility_timeout: float = 180.0,
    ):
        self.policy = policy or RetryPolicy()
        self.visibility_timeout = visibility_timeout
        self._jobs: dict[str, Job] = {}
        self._cond = asyncio.Condition()
        self._completed_count = 0
        self._failed_count = 0

    async def enqueue(self, content_id: str, payload: JobPayload, lineage: int = 1) -> Job:
        """Add a job for ``content_id``. It is deliverable immediately."""
        job = Job(
            content_id=content_id,
            payload=payload,
            lineage=lineage,
            max_attempts=self.policy.max_attempts,
            available_at=time.monotonic(),
        )
        async with self._cond:
            self._jobs[job.job_id] = job
            self._cond.notify_all()
        logger.info(
            "Job enqueued",
            extra={
                "job_id": job.job_id,
                "content_id": content_id,
                "source_type": payload.source_type.value,
                "lineage": lineage,
            },
        )
        return dataclasses.replace(job)

    async def lease(self) -> Job:
        """Wait for the next deliverable job and lease it to the caller."""
        async with self._cond:
            while True:
                now = time.monotonic()
                job = self._next_ready(now)
                if job is not None:
                    job.queue_state = QueueState.ACTIVE
                    job.attempt += 1
                    job.lease_token = uuid.uuid4().hex
                    job.lease_expires_at = now + self.visibility_timeout
                    return dataclasses.replace(job)

                # Sleep until woken by enqueue/nack or until the next backoff timer fires
                try:
                    async with asyncio.timeout(self._next_wakeup(now)):
                        await self._cond.wait()
                except TimeoutError:
                    pass

    async def ack(self, job: Job) -> bool:
        """Mark a leased job completed and drop it. Returns False for a stale lease."""
        async with self._cond:
            stored = self._owned(job)
            if stored is None:
                logger.warning("Ignoring ack for stale lease on job %s", job.job_id)
                return False
            stored.queue_state = QueueState.COMPLETED
            del self._jobs[stored.job_id]
            self._completed_count += 1
            self._cond.notify_all()
            return True

    async def nack(self, job: Job, error: BaseException) -> float | None:
        """Record a failed delivery.

        Returns the backoff delay in seconds before redelivery, or None if the
        lease was stale (another worker owns the job now).

        Raises:
            QueueExhaustedError: The retry policy gave up on the job (last attempt
                used, or a fail-fast policy saw a permanent error). The job
                has been dropped.
        """
        async with self._cond:
            stored = self._owned(job)
            if stored is None:
                logger.warning("Ignoring nack for stale lease on job %s", job.job_id)
                return None
            delay = self._record_failure(stored, error, time.monotonic())
            self._cond.notify_all()

        if delay is None:
            raise QueueExhaustedError(stored.job_id, stored.attempt, stored.last_error)
        return delay

    async def requeue_expired(self) -> list[Job]:
        """Reclaim active jobs whose lease deadline passed.

        Each expiry counts as a failed delivery. Returns snapshots of jobs that
        were dropped because that failure exhausted their attempts.
        """
        exhausted: list[Job] = []
        async with self._cond:
            now = time.monotonic()
            for stored in list(self._jobs.values()):
                if stored.queue_state != QueueState.ACTIVE:
                    continue
                if stored.lease_expires_at is None or stored.lease_expires_at > now:
                    continue
                logger.warning(
                    "Lease expired for job %s (attempt %d)", stored.job_id, stored.attempt
                )
                if self._record_failure(
                    stored, LeaseExpiredError("Worker lease expired"), now
                ) is None:
                    exhausted.append(dataclasses.replace(stored))
            self._cond.notify_all()
        return exhausted

    async def join(self) -> None:
        """Wait until every enqueued job has been acknowledged or dropped."""
        async with self._cond:
            await self._cond.wait_for(lambda: not self._jobs)

    def get(self, job_id: str) -> Job | None:
        """Return a snapshot of a queued job, or None once it left the queue."""
        job = self._jobs.get(job_id)
        return dataclasses.replace(job) if job else None

    def stats(self) -> dict[str, int]:
        """Return job counts by queue state."""
        counts = {state.value: 0 for state in QueueState}
        for job in self._jobs.values():
            counts[job.queue_state.value] += 1
        counts[QueueState.COMPLETED.value] = self._completed_count
        counts[QueueState.FAILED.value] = self._failed_count
        return counts

    def _owned(self, job: Job) -> Job | None:
        stored = self._jobs.get(job.job_id)
        if stored is None or stored.queue_state != QueueState.ACTIVE:
            return None
        if stored.lease_token != job.lease_token:
            return None
        return stored

    def _record_failure(self, stored: Job, error: BaseException, now: float) -> float | None:
        """Reschedule or drop a job after a failed delivery. Caller holds the lock."""
        message = str(error) or type(error).__name__
        stored.last_error = message
        stored.lease_token = None
        stored.lease_expires_at = None

        delay = self.policy.next_delay(stored.attempt, error)
        if delay is None:
            stored.queue_state = QueueState.FAILED
            del self._jobs[stored.job_id]
            self._failed_count += 1
            logger.error(
                "Job dropped after %d attempt(s): %s",
                stored.attempt,
                message,
                extra={"job_id": stored.job_id, "content_id": stored.content_id},
            )
            return None

        stored.queue_state = QueueState.WAITING
        stored.available_at = now + delay
        logger.info(
            "Job %s rescheduled in %.1fs (attempt %d/%d failed): %s",
            stored.job_id,
            delay,
            stored.attempt,
            stored.max_attempts,
            message,
        )
        return delay

    def _next_ready(self, now: float) -> Job | None:
        for job in self._jobs.values():
            if job.queue_state == QueueState.WAITING and job.available_at <= now:
                return job
        return None

    def _next_wakeup(self, now: float) -> float | None:
        timers = [
            job.available_at - now
            for job in self._jobs.values()
            if job.queue_state == QueueState.WAITING
        ]
        return max(min(timers), 0.0) if timers else None
