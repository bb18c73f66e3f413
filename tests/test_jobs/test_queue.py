"""Tests for the in-memory job queue: leases, retries, backoff, expiry."""

import asyncio

import pytest

from study_ingest.errors import CorruptFileError, FetchError, QueueExhaustedError
from study_ingest.jobs.queue import InMemoryJobQueue
from study_ingest.models.content import SourceType
from study_ingest.models.job import JobPayload, QueueState, RetryPolicy

PAYLOAD = JobPayload(source_type=SourceType.FILE, source_locator="/uploads/notes.pdf")


def _fast_queue(**kwargs) -> InMemoryJobQueue:
    return InMemoryJobQueue(policy=RetryPolicy(max_attempts=3, backoff_base_seconds=0.001), **kwargs)


@pytest.mark.asyncio
async def test_lease_marks_job_active():
    queue = _fast_queue()
    enqueued = await queue.enqueue("c1", PAYLOAD)

    job = await queue.lease()

    assert job.job_id == enqueued.job_id
    assert job.queue_state == QueueState.ACTIVE
    assert job.attempt == 1
    assert job.lease_token is not None
    assert queue.stats()["active"] == 1


@pytest.mark.asyncio
async def test_leased_job_is_invisible_to_others():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    await queue.lease()

    with pytest.raises(TimeoutError):
        await asyncio.wait_for(queue.lease(), timeout=0.05)


@pytest.mark.asyncio
async def test_lease_waits_for_enqueue():
    queue = _fast_queue()
    waiter = asyncio.create_task(queue.lease())
    await asyncio.sleep(0)
    await queue.enqueue("c1", PAYLOAD)

    job = await asyncio.wait_for(waiter, timeout=1)
    assert job.content_id == "c1"


@pytest.mark.asyncio
async def test_ack_removes_job():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    job = await queue.lease()

    assert await queue.ack(job) is True
    assert queue.get(job.job_id) is None
    assert queue.stats()["completed"] == 1


@pytest.mark.asyncio
async def test_ack_with_stale_token_is_ignored():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    job = await queue.lease()
    job.lease_token = "not-the-current-lease"

    assert await queue.ack(job) is False
    assert queue.stats()["active"] == 1


@pytest.mark.asyncio
async def test_nack_reschedules_with_exponential_backoff():
    queue = InMemoryJobQueue(policy=RetryPolicy(max_attempts=3, backoff_base_seconds=2.0))
    await queue.enqueue("c1", PAYLOAD)
    job = await queue.lease()

    delay = await queue.nack(job, FetchError("connection reset"))

    assert delay == 2.0
    stored = queue.get(job.job_id)
    assert stored.queue_state == QueueState.WAITING
    assert stored.last_error == "connection reset"
    # Not deliverable until the backoff elapses
    with pytest.raises(TimeoutError):
        await asyncio.wait_for(queue.lease(), timeout=0.05)


@pytest.mark.asyncio
async def test_redelivery_after_backoff():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    first = await queue.lease()
    await queue.nack(first, FetchError("flaky"))

    second = await asyncio.wait_for(queue.lease(), timeout=1)

    assert second.job_id == first.job_id
    assert second.attempt == 2
    assert second.lease_token != first.lease_token


@pytest.mark.asyncio
async def test_nack_exhausts_after_max_attempts():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)

    for _ in range(2):
        job = await asyncio.wait_for(queue.lease(), timeout=1)
        await queue.nack(job, FetchError("still failing"))

    job = await asyncio.wait_for(queue.lease(), timeout=1)
    with pytest.raises(QueueExhaustedError) as exc_info:
        await queue.nack(job, FetchError("final failure"))

    assert exc_info.value.attempts == 3
    assert exc_info.value.last_error == "final failure"
    assert queue.get(job.job_id) is None
    assert queue.stats()["failed"] == 1


@pytest.mark.asyncio
async def test_permanent_failure_is_still_redelivered():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    first = await queue.lease()

    delay = await queue.nack(first, CorruptFileError("Invalid PDF format"))

    assert delay is not None
    second = await asyncio.wait_for(queue.lease(), timeout=1)
    assert second.attempt == 2
    assert second.last_error == "Invalid PDF format"


@pytest.mark.asyncio
async def test_unexpected_exception_message_falls_back_to_type_name():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    job = await queue.lease()

    await queue.nack(job, RuntimeError())

    assert queue.get(job.job_id).last_error == "RuntimeError"


@pytest.mark.asyncio
async def test_fail_fast_policy_exhausts_permanent_failure_immediately():
    queue = InMemoryJobQueue(
        policy=RetryPolicy(max_attempts=3, backoff_base_seconds=0.001, fail_fast=True)
    )
    await queue.enqueue("c1", PAYLOAD)
    job = await queue.lease()

    with pytest.raises(QueueExhaustedError) as exc_info:
        await queue.nack(job, CorruptFileError("Invalid PDF format"))

    assert exc_info.value.attempts == 1
    assert queue.get(job.job_id) is None


@pytest.mark.asyncio
async def test_expired_lease_is_redelivered():
    queue = _fast_queue(visibility_timeout=0.0)
    await queue.enqueue("c1", PAYLOAD)
    first = await queue.lease()

    exhausted = await queue.requeue_expired()
    assert exhausted == []

    second = await asyncio.wait_for(queue.lease(), timeout=1)
    assert second.attempt == 2
    # The crashed holder can no longer acknowledge
    assert await queue.ack(first) is False


@pytest.mark.asyncio
async def test_repeated_expiry_exhausts_job():
    queue = _fast_queue(visibility_timeout=0.0)
    await queue.enqueue("c1", PAYLOAD)

    for _ in range(2):
        await asyncio.wait_for(queue.lease(), timeout=1)
        assert await queue.requeue_expired() == []

    await asyncio.wait_for(queue.lease(), timeout=1)
    exhausted = await queue.requeue_expired()

    assert len(exhausted) == 1
    assert exhausted[0].content_id == "c1"
    assert exhausted[0].last_error == "Worker lease expired"


@pytest.mark.asyncio
async def test_join_returns_when_queue_drains():
    queue = _fast_queue()
    await queue.enqueue("c1", PAYLOAD)
    joiner = asyncio.create_task(queue.join())
    await asyncio.sleep(0)
    assert not joiner.done()

    await queue.ack(await queue.lease())
    await asyncio.wait_for(joiner, timeout=1)
