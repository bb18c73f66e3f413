"""Content registry: the single owner of content records and their state machine.

The registry holds records and applies status/text transitions; it performs no
extraction itself. Writes for one content id are serialized by a per-id lock,
and every write produces a new validated ``Content`` (so the
text-iff-completed invariant is checked on each transition). Callers only ever
see copies.

Duplicate jobs for the same content are resolved by lineage: each explicit
re-submission bumps ``Content.lineage`` and enqueues a job stamped with the new
value. Transitions requested with an older lineage raise ``StaleJobError``, so
a superseded job can never overwrite the result of a fresher one.
"""

import asyncio
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from typing import Protocol

from study_ingest.errors import (
    ContentValidationError,
    InvalidTransitionError,
    NotFoundError,
    StaleJobError,
)
from study_ingest.models.content import (
    ALLOWED_TRANSITIONS,
    Content,
    ContentPage,
    ContentStatus,
    ContentStatusView,
    SourceType,
)
from study_ingest.models.job import Job, JobPayload

logger = logging.getLogger(__name__)


class JobEnqueuer(Protocol):
    """Anything that accepts extraction jobs (the queue, or a test double)."""

    async def enqueue(self, content_id: str, payload: JobPayload, lineage: int = 1) -> Job: ...


class ContentRegistry:
    """In-memory content store with serialized, validated state transitions."""

    def __init__(self, queue: JobEnqueuer):
        self._queue = queue
        self._records: dict[str, Content] = {}
        self._locks: defaultdict[str, asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create(
        self,
        owner_id: str,
        source_type: SourceType | str,
        locator: str,
        title: str,
    ) -> Content:
        """Persist a new pending record and enqueue exactly one extraction job."""
        if not owner_id or not owner_id.strip():
            raise ContentValidationError("owner_id must not be blank")
        if not locator or not locator.strip():
            raise ContentValidationError("source locator must not be blank")
        if not title or not title.strip():
            raise ContentValidationError("title must not be blank")
        try:
            source_type = SourceType(source_type)
        except ValueError:
            raise ContentValidationError(f"Unknown source type: {source_type!r}") from None

        content = Content(
            owner_id=owner_id,
            source_type=source_type,
            source_locator=locator.strip(),
            title=title.strip(),
        )
        self._records[content.id] = content

        try:
            await self._queue.enqueue(
                content.id,
                JobPayload(source_type=content.source_type, source_locator=content.source_locator),
                lineage=content.lineage,
            )
        except Exception:
            # Never leave a pending record that no job will ever pick up
            del self._records[content.id]
            raise

        logger.info(
            "Content created",
            extra={"content_id": content.id, "owner_id": owner_id, "source_type": source_type.value},
        )
        return content.model_copy()

    async def get(self, content_id: str, owner_id: str) -> Content:
        """Return a record owned by ``owner_id``.

        Raises:
            NotFoundError: The record is absent or owned by someone else.
        """
        record = self._records.get(content_id)
        if record is None or record.owner_id != owner_id:
            raise NotFoundError(content_id)
        return record.model_copy()

    async def get_status(self, content_id: str, owner_id: str) -> ContentStatusView:
        """Status read for the controller layer."""
        record = await self.get(content_id, owner_id)
        return ContentStatusView(
            id=record.id, status=record.status, error_message=record.error_message
        )

    async def list_for_owner(self, owner_id: str, page: int = 1, limit: int = 10) -> ContentPage:
        """Return one page of an owner's records, newest first."""
        page = max(page, 1)
        limit = max(limit, 1)
        # Records are kept in creation order; timestamps can tie
        owned = [r for r in reversed(self._records.values()) if r.owner_id == owner_id]
        start = (page - 1) * limit
        return ContentPage(
            contents=[r.model_copy() for r in owned[start : start + limit]],
            page=page,
            limit=limit,
            total=len(owned),
            total_pages=math.ceil(len(owned) / limit),
        )

    async def delete(self, content_id: str, owner_id: str) -> Content:
        """Remove a record. Jobs still queued for it are dropped by the worker."""
        async with self._locks[content_id]:
            record = await self.get(content_id, owner_id)
            del self._records[content_id]
        self._locks.pop(content_id, None)
        logger.info("Content deleted", extra={"content_id": content_id})
        return record

    async def update_status(
        self,
        content_id: str,
        status: ContentStatus | str,
        error_message: str | None = None,
        *,
        text: str | None = None,
        lineage: int | None = None,
    ) -> Content:
        """Apply a worker-driven status transition.

        ``text`` is written together with COMPLETED, atomically. Any other
        status clears the text. ``error_message`` is kept only for FAILED.

        Raises:
            NotFoundError: Unknown content id.
            StaleJobError: ``lineage`` is older than the record's current lineage.
            InvalidTransitionError: The state machine forbids the change, or
                COMPLETED was requested without text.
        """
        status = ContentStatus(status)
        async with self._locks[content_id]:
            current = self._require(content_id)
            self._check_lineage(current, lineage)

            if status not in ALLOWED_TRANSITIONS[current.status]:
                raise InvalidTransitionError(content_id, current.status.value, status.value)

            if status == ContentStatus.COMPLETED:
                new_text = text if text is not None else current.extracted_text
                if not new_text:
                    raise InvalidTransitionError(
                        content_id, current.status.value, "completed without text"
                    )
            else:
                new_text = ""

            updated = self._write(
                current,
                status=status,
                extracted_text=new_text,
                error_message=error_message if status == ContentStatus.FAILED else None,
            )

        logger.info(
            "Content status %s -> %s",
            current.status.value,
            status.value,
            extra={"content_id": content_id, "lineage": updated.lineage},
        )
        return updated.model_copy()

    async def update_text(self, content_id: str, text: str, *, lineage: int | None = None) -> Content:
        """Overwrite the extracted text of a completed record (never appends)."""
        async with self._locks[content_id]:
            current = self._require(content_id)
            self._check_lineage(current, lineage)
            if current.status != ContentStatus.COMPLETED:
                raise InvalidTransitionError(content_id, current.status.value, "text update")
            if not text:
                raise InvalidTransitionError(content_id, current.status.value, "empty text")
            updated = self._write(current, extracted_text=text)
        return updated.model_copy()

    async def resubmit(self, content_id: str, owner_id: str) -> Content:
        """Restart ingestion under a new lineage and enqueue a fresh job.

        Allowed from any state. A job of the previous lineage that is still in
        flight will find itself stale and discard its result.
        """
        async with self._locks[content_id]:
            current = self._records.get(content_id)
            if current is None or current.owner_id != owner_id:
                raise NotFoundError(content_id)
            lineage = current.lineage + 1
            # Enqueue before writing so a failed enqueue leaves the record untouched.
            # Workers wait on this lock, so the new job cannot run ahead of the write.
            await self._queue.enqueue(
                content_id,
                JobPayload(source_type=current.source_type, source_locator=current.source_locator),
                lineage=lineage,
            )
            updated = self._write(
                current,
                status=ContentStatus.PENDING,
                extracted_text="",
                error_message=None,
                lineage=lineage,
            )

        logger.info(
            "Content resubmitted",
            extra={"content_id": content_id, "lineage": updated.lineage},
        )
        return updated.model_copy()

    def _require(self, content_id: str) -> Content:
        record = self._records.get(content_id)
        if record is None:
            raise NotFoundError(content_id)
        return record

    @staticmethod
    def _check_lineage(current: Content, lineage: int | None) -> None:
        if lineage is not None and lineage != current.lineage:
            raise StaleJobError(current.id, lineage, current.lineage)

    def _write(self, current: Content, **changes) -> Content:
        """Build, validate, and store the next version of a record. Caller holds the lock."""
        data = current.model_dump()
        data.update(changes)
        data["version"] = current.version + 1
        data["updated_at"] = datetime.now(timezone.utc)
        updated = Content(**data)
        self._records[current.id] = updated
        return updated
