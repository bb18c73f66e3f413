"""Worker pool that drives queued extraction jobs through the content state machine.

Each worker task leases one job at a time and holds it for the whole
extraction (file read, fetch, parse). Per delivery:

1. Mark the content PROCESSING (redeliveries keep it PROCESSING).
2. Route to the source adapter under a per-job timeout.
3. On success write the text and COMPLETED in one transition, then ack.
4. On failure nack with the exception; the queue's retry policy reschedules
   it with backoff. Once the policy gives up the content is marked FAILED with
   the last error message.

Jobs whose lineage was superseded by a re-submission, or whose content was
deleted, are acked and dropped without touching the record. Nothing a single
job does can stop the pool: every failure is contained in ``process_job``.
"""

import asyncio
import logging

from study_ingest.errors import (
    FetchTimeoutError,
    InvalidTransitionError,
    NotFoundError,
    QueueExhaustedError,
    StaleJobError,
)
from study_ingest.extraction.router import ExtractionRouter
from study_ingest.jobs.queue import InMemoryJobQueue
from study_ingest.models.content import ContentStatus
from study_ingest.models.job import Job
from study_ingest.registry import ContentRegistry

logger = logging.getLogger(__name__)

# Outcomes that mean "this job no longer applies to the record"
_DROP_ERRORS = (StaleJobError, NotFoundError, InvalidTransitionError)


class WorkerService:
    """Fixed-size pool of asyncio workers pulling from a shared job queue."""

    def __init__(
        self,
        registry: ContentRegistry,
        queue: InMemoryJobQueue,
        router: ExtractionRouter,
        concurrency: int = 4,
        job_timeout: float = 120.0,
        reaper_interval: float = 5.0,
    ):
        self.registry = registry
        self.queue = queue
        self.router = router
        self.concurrency = concurrency
        self.job_timeout = job_timeout
        self.reaper_interval = reaper_interval
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    async def start(self) -> None:
        """Spawn the worker tasks and the lease reaper. No-op if already running."""
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker_loop(i), name=f"extraction-worker-{i}")
            for i in range(self.concurrency)
        ]
        self._tasks.append(asyncio.create_task(self._reaper_loop(), name="lease-reaper"))
        logger.info("Content processor workers started", extra={"concurrency": self.concurrency})

    async def stop(self) -> None:
        """Cancel all worker tasks. Leased jobs become redeliverable when their lease expires."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        logger.info("Content processor workers stopped")

    async def process_job(self, job: Job) -> ContentStatus | None:
        """Run one delivery of ``job``.

        Returns the content status this delivery left behind (PROCESSING while
        a retry is pending), or None when the job was dropped as stale.
        """
        log_extra = {"job_id": job.job_id, "content_id": job.content_id, "attempt": job.attempt}
        logger.info("Processing %s (%s)", job.content_id, job.payload.source_type.value, extra=log_extra)

        try:
            await self.registry.update_status(
                job.content_id, ContentStatus.PROCESSING, lineage=job.lineage
            )
        except _DROP_ERRORS as exc:
            logger.warning("Dropping job %s: %s", job.job_id, exc, extra=log_extra)
            await self.queue.ack(job)
            return None

        try:
            async with asyncio.timeout(self.job_timeout):
                text = await self.router.route(
                    job.payload.source_type, job.payload.source_locator
                )
        except TimeoutError:
            return await self._handle_failure(
                job, FetchTimeoutError(f"Extraction exceeded {self.job_timeout:.0f}s")
            )
        except Exception as exc:
            return await self._handle_failure(job, exc)

        try:
            await self.registry.update_status(
                job.content_id, ContentStatus.COMPLETED, text=text, lineage=job.lineage
            )
        except _DROP_ERRORS as exc:
            logger.warning("Discarding result of job %s: %s", job.job_id, exc, extra=log_extra)
            await self.queue.ack(job)
            return None

        await self.queue.ack(job)
        logger.info(
            "Content processed successfully: %s",
            job.content_id,
            extra={**log_extra, "content_length": len(text)},
        )
        return ContentStatus.COMPLETED

    async def _handle_failure(self, job: Job, exc: Exception) -> ContentStatus | None:
        message = str(exc) or type(exc).__name__
        logger.warning(
            "Content processing failed: %s (attempt %d/%d): %s",
            job.content_id,
            job.attempt,
            job.max_attempts,
            message,
            extra={"job_id": job.job_id, "error_type": type(exc).__name__},
        )
        try:
            delay = await self.queue.nack(job, exc)
        except QueueExhaustedError as exhausted:
            await self._mark_failed(job, exhausted.last_error)
            return ContentStatus.FAILED
        return None if delay is None else ContentStatus.PROCESSING

    async def _mark_failed(self, job: Job, message: str) -> None:
        try:
            await self.registry.update_status(
                job.content_id, ContentStatus.FAILED, message, lineage=job.lineage
            )
        except _DROP_ERRORS as exc:
            logger.warning("Not marking %s failed: %s", job.content_id, exc)

    async def _worker_loop(self, worker_id: int) -> None:
        while True:
            job = await self.queue.lease()
            try:
                await self.process_job(job)
            except Exception:
                logger.exception("Worker %d crashed on job %s", worker_id, job.job_id)

    async def _reaper_loop(self) -> None:
        while True:
            await asyncio.sleep(self.reaper_interval)
            try:
                for job in await self.queue.requeue_expired():
                    await self._mark_failed(job, job.last_error or "Worker lease expired")
            except Exception:
                logger.exception("Lease reaper pass failed")
