"""Content record, source type and processing status enums."""

import uuid
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field, model_validator


class SourceType(str, Enum):
    """Kinds of source a content record can be ingested from."""

    FILE = "file"
    WEBPAGE = "webpage"
    VIDEO = "video"


class ContentStatus(str, Enum):
    """Processing lifecycle of a content record."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


# Allowed worker-driven transitions. Re-submission (any state -> PENDING under
# a new lineage) is handled separately by the registry.
ALLOWED_TRANSITIONS: dict[ContentStatus, frozenset[ContentStatus]] = {
    ContentStatus.PENDING: frozenset({ContentStatus.PROCESSING}),
    ContentStatus.PROCESSING: frozenset(
        {ContentStatus.PROCESSING, ContentStatus.COMPLETED, ContentStatus.FAILED}
    ),
    ContentStatus.COMPLETED: frozenset(),
    ContentStatus.FAILED: frozenset(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return uuid.uuid4().hex


class Content(BaseModel):
    """An ingestible document tracked through the extraction pipeline."""

    id: str = Field(default_factory=_new_id)
    owner_id: str
    source_type: SourceType
    source_locator: str  # Filesystem path or URL
    title: str
    extracted_text: str = ""
    status: ContentStatus = ContentStatus.PENDING
    error_message: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    version: int = 0  # Bumped on every write
    lineage: int = 1  # Bumped on every explicit re-submission

    @model_validator(mode="after")
    def _text_iff_completed(self) -> "Content":
        has_text = bool(self.extracted_text)
        if has_text != (self.status == ContentStatus.COMPLETED):
            raise ValueError(
                f"extracted_text must be non-empty iff status is completed "
                f"(status={self.status.value}, text_length={len(self.extracted_text)})"
            )
        return self


class ContentStatusView(BaseModel):
    """Status read handed to the controller layer."""

    id: str
    status: ContentStatus
    error_message: str | None = None


class ContentPage(BaseModel):
    """One page of an owner's content records, newest first."""

    contents: list[Content]
    page: int
    limit: int
    total: int
    total_pages: int
