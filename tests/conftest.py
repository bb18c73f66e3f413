"""Shared test fixtures."""

import pytest
from fastapi.testclient import TestClient

from study_ingest.app import app
from study_ingest.jobs.queue import InMemoryJobQueue
from study_ingest.models.job import RetryPolicy
from study_ingest.registry import ContentRegistry


@pytest.fixture(scope="session")
def client() -> TestClient:
    """Create a TestClient for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def queue() -> InMemoryJobQueue:
    """Queue with millisecond backoff so retry tests finish quickly."""
    return InMemoryJobQueue(policy=RetryPolicy(max_attempts=3, backoff_base_seconds=0.001))


@pytest.fixture
def registry(queue: InMemoryJobQueue) -> ContentRegistry:
    """Registry wired to the fast-backoff queue."""
    return ContentRegistry(queue)
