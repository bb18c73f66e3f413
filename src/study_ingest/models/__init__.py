"""Data models and enums for the ingestion pipeline."""

from study_ingest.models.artifacts import (
    Artifact,
    ConceptList,
    Flashcard,
    GenerationParams,
    GenerationResult,
    GenerationTask,
    QuizQuestion,
    Summary,
    SummaryKind,
)
from study_ingest.models.content import Content, ContentStatus, ContentStatusView, SourceType
from study_ingest.models.job import Job, JobPayload, QueueState, RetryPolicy

__all__ = [
    "Artifact",
    "ConceptList",
    "Content",
    "ContentStatus",
    "ContentStatusView",
    "Flashcard",
    "GenerationParams",
    "GenerationResult",
    "GenerationTask",
    "Job",
    "JobPayload",
    "QueueState",
    "QuizQuestion",
    "RetryPolicy",
    "SourceType",
    "Summary",
    "SummaryKind",
]
