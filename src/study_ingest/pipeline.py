"""Composition root: wires registry, queue, router, workers, and generator."""

from dataclasses import dataclass

import httpx

from study_ingest.config import Settings, get_settings
from study_ingest.extraction import build_default_router
from study_ingest.extraction.router import ExtractionRouter
from study_ingest.jobs.queue import InMemoryJobQueue
from study_ingest.jobs.worker import WorkerService
from study_ingest.llm.generator import StudyMaterialGenerator
from study_ingest.models.job import RetryPolicy
from study_ingest.registry import ContentRegistry


@dataclass
class Pipeline:
    """Everything a host process needs to ingest content and generate material."""

    registry: ContentRegistry
    queue: InMemoryJobQueue
    router: ExtractionRouter
    worker: WorkerService
    generator: StudyMaterialGenerator


def build_pipeline(
    settings: Settings | None = None,
    *,
    router: ExtractionRouter | None = None,
    generator: StudyMaterialGenerator | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> Pipeline:
    """Construct a pipeline from settings. Pass ``router``/``generator`` to substitute them."""
    settings = settings or get_settings()
    queue = InMemoryJobQueue(
        policy=RetryPolicy(
            max_attempts=settings.queue_max_attempts,
            backoff_base_seconds=settings.queue_backoff_base_seconds,
            fail_fast=settings.queue_fail_fast,
        ),
        visibility_timeout=settings.queue_visibility_timeout_seconds,
    )
    registry = ContentRegistry(queue)
    router = router or build_default_router(settings, http_client=http_client)
    worker = WorkerService(
        registry,
        queue,
        router,
        concurrency=settings.worker_concurrency,
        job_timeout=settings.job_timeout_seconds,
        reaper_interval=settings.queue_reaper_interval_seconds,
    )
    return Pipeline(
        registry=registry,
        queue=queue,
        router=router,
        worker=worker,
        generator=generator or StudyMaterialGenerator(settings=settings),
    )
