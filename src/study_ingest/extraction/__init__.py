"""Source extraction: uploaded files, web pages, and video transcripts.

Public API:
    ExtractionRouter(adapters).route(source_type, locator) -> str
        Dispatches to the adapter registered for the source type.
    build_default_router(settings, http_client=None) -> ExtractionRouter
        Router wired with the File, Webpage, and Video adapters.
"""

import httpx

from study_ingest.config import Settings
from study_ingest.extraction.file import FileAdapter
from study_ingest.extraction.router import ExtractionRouter
from study_ingest.extraction.webpage import WebpageAdapter
from study_ingest.extraction.youtube import VideoTranscriptAdapter
from study_ingest.models.content import SourceType


def build_default_router(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> ExtractionRouter:
    """Construct a router with every built-in adapter configured from settings."""
    return ExtractionRouter(
        {
            SourceType.FILE: FileAdapter(max_bytes=settings.max_file_bytes),
            SourceType.WEBPAGE: WebpageAdapter(
                client=http_client,
                timeout=settings.webpage_timeout_seconds,
                user_agent=settings.webpage_user_agent,
            ),
            SourceType.VIDEO: VideoTranscriptAdapter(
                languages=settings.transcript_languages,
                proxy_url=settings.youtube_proxy_url,
            ),
        }
    )


__all__ = [
    "ExtractionRouter",
    "FileAdapter",
    "VideoTranscriptAdapter",
    "WebpageAdapter",
    "build_default_router",
]
