"""Background extraction: job queue and worker pool."""

from study_ingest.jobs.queue import InMemoryJobQueue
from study_ingest.jobs.worker import WorkerService

__all__ = [
    "InMemoryJobQueue",
    "WorkerService",
]
