"""Exception taxonomy for ingestion, extraction, queueing, and generation.

Every error raised by this package derives from ``StudyIngestError`` so callers
(controllers, the worker pool) can catch the whole family in one place.

Extraction errors carry a ``retryable`` flag separating transient failures
(network, timeouts) from permanent ones (corrupt input, unsupported URLs).
The queue redelivers every failure up to its attempt limit; the flag only
shortens that when the retry policy runs with ``fail_fast``.
"""


class StudyIngestError(Exception):
    """Base class for all package errors."""


# --- Registry / request errors ---


class ContentValidationError(StudyIngestError):
    """Request data is malformed (blank owner, locator, or title)."""


class NotFoundError(StudyIngestError):
    """Content does not exist or is not owned by the caller."""

    def __init__(self, content_id: str):
        super().__init__(f"Content not found: {content_id}")
        self.content_id = content_id


class InvalidTransitionError(StudyIngestError):
    """A status change violates the content state machine."""

    def __init__(self, content_id: str, current: str, requested: str):
        super().__init__(
            f"Invalid status transition for {content_id}: {current} -> {requested}"
        )
        self.content_id = content_id
        self.current = current
        self.requested = requested


class StaleJobError(StudyIngestError):
    """A job belongs to an older submission than the content's current one."""

    def __init__(self, content_id: str, job_lineage: int, current_lineage: int):
        super().__init__(
            f"Stale job for {content_id}: lineage {job_lineage} "
            f"superseded by {current_lineage}"
        )
        self.content_id = content_id
        self.job_lineage = job_lineage
        self.current_lineage = current_lineage


class ContentNotReadyError(StudyIngestError):
    """Generation was requested for content that has not completed processing."""

    def __init__(self, content_id: str, status: str):
        super().__init__(f"Content is still being processed ({status}): {content_id}")
        self.content_id = content_id
        self.status = status


# --- Extraction errors ---


class ExtractionError(StudyIngestError):
    """Base class for source adapter failures."""

    retryable: bool = False

    def __init__(self, message: str = "", *, retryable: bool | None = None):
        super().__init__(message)
        if retryable is not None:
            self.retryable = retryable


class UnsupportedSourceTypeError(ExtractionError):
    """The router has no adapter for the declared source type."""

    def __init__(self, source_type: object):
        super().__init__(f"Unsupported source type: {source_type!r}")
        self.source_type = source_type


class CorruptFileError(ExtractionError):
    """File bytes do not match the expected format or cannot be parsed."""


class ProtectedContentError(ExtractionError):
    """File is encrypted or password protected."""


class NoExtractableTextError(ExtractionError):
    """Source parsed successfully but yielded no text (e.g. scanned pages)."""


class FileTooLargeError(ExtractionError):
    """File exceeds the configured size cap."""


class FileUnreadableError(ExtractionError):
    """File is missing or cannot be read from storage."""


class FetchTimeoutError(ExtractionError):
    """A remote fetch exceeded its time budget."""

    retryable = True


class FetchError(ExtractionError):
    """A remote fetch failed (connection error, HTTP error status)."""

    retryable = True


class InvalidVideoUrlError(ExtractionError):
    """Locator does not match any accepted video URL form."""


class TranscriptUnavailableError(ExtractionError):
    """Video has no retrievable transcript (disabled, missing, or video gone)."""


# --- Generation errors ---


class GenerationError(StudyIngestError):
    """Base class for generation client failures."""


class BackendFailureError(GenerationError):
    """The generation backend call failed (network or server-side error)."""


class GenerationParseError(GenerationError):
    """Model output could not be recovered to the expected JSON shape.

    ``raw_text`` holds the untouched model output for diagnostics.
    """

    def __init__(self, message: str, raw_text: str):
        super().__init__(message)
        self.raw_text = raw_text


# --- Queue errors ---


class LeaseExpiredError(StudyIngestError):
    """A worker held a job past its visibility deadline."""


class QueueExhaustedError(StudyIngestError):
    """All delivery attempts for a job were consumed."""

    def __init__(self, job_id: str, attempts: int, last_error: str):
        super().__init__(f"Job {job_id} exhausted after {attempts} attempt(s): {last_error}")
        self.job_id = job_id
        self.attempts = attempts
        self.last_error = last_error
