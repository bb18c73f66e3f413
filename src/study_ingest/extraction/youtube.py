"""YouTube transcript extraction using youtube-transcript-api."""

import asyncio
import logging
import re
from collections.abc import Sequence

from youtube_transcript_api import YouTubeTranscriptApi
from youtube_transcript_api._errors import (
    InvalidVideoId,
    NoTranscriptFound,
    TranscriptsDisabled,
    VideoUnavailable,
)
from youtube_transcript_api.proxies import GenericProxyConfig

from study_ingest.errors import FetchError, InvalidVideoUrlError, TranscriptUnavailableError

logger = logging.getLogger(__name__)

# Accepted URL forms, tried in order. The first match wins.
VIDEO_URL_PATTERNS = (
    # Canonical watch URL: the v= query parameter, wherever it sits in the query
    re.compile(r"^(?:https?://)?(?:www\.|m\.)?youtube\.com/watch\?(?:[^#]*?&)?v=([A-Za-z0-9_-]+)"),
    # Short link: youtu.be/<id>
    re.compile(r"^(?:https?://)?youtu\.be/([A-Za-z0-9_-]+)"),
    # Embedded player: youtube.com/embed/<id>
    re.compile(r"^(?:https?://)?(?:www\.)?youtube(?:-nocookie)?\.com/embed/([A-Za-z0-9_-]+)"),
    # Shorts: youtube.com/shorts/<id>
    re.compile(r"^(?:https?://)?(?:www\.|m\.)?youtube\.com/shorts/([A-Za-z0-9_-]+)"),
)


def extract_video_id(url: str) -> str | None:
    """Extract the video ID from a YouTube URL, or None for unrecognized forms.

    Handles: youtube.com/watch?v=, youtu.be/, youtube.com/embed/, youtube.com/shorts/
    Extra query params (e.g., &t=123, &list=PLxxx) are ignored.
    """
    candidate = url.strip()
    for pattern in VIDEO_URL_PATTERNS:
        match = pattern.match(candidate)
        if match:
            return match.group(1)
    return None


class VideoTranscriptAdapter:
    """Fetches a video's transcript and joins its segments into plain text."""

    def __init__(self, languages: Sequence[str] = ("en",), proxy_url: str = ""):
        self.languages = list(languages)
        self.proxy_url = proxy_url

    async def extract(self, locator: str) -> str:
        """Return the transcript text for the video at ``locator``.

        Raises:
            InvalidVideoUrlError: Unrecognized URL (raised before any network call).
            TranscriptUnavailableError: Captions disabled/missing or video unavailable.
            FetchError: Transport failures such as IP blocks or request errors.
        """
        video_id = extract_video_id(locator)
        if video_id is None:
            raise InvalidVideoUrlError(f"Invalid YouTube URL: {locator}")

        proxy_config = GenericProxyConfig(https_url=self.proxy_url) if self.proxy_url else None
        ytt_api = YouTubeTranscriptApi(proxy_config=proxy_config)
        try:
            # Sync call wrapped in to_thread
            transcript = await asyncio.to_thread(
                ytt_api.fetch, video_id, languages=self.languages
            )
        except InvalidVideoId as exc:
            raise InvalidVideoUrlError(f"Invalid YouTube video id: {video_id}") from exc
        except (TranscriptsDisabled, NoTranscriptFound, VideoUnavailable) as exc:
            raise TranscriptUnavailableError(
                f"No transcript available for video {video_id}"
            ) from exc
        except Exception as exc:
            # IP blocks, request errors, etc.
            raise FetchError(f"Transcript fetch failed for video {video_id}: {exc}") from exc

        text = " ".join(snippet.text for snippet in transcript).strip()
        if not text:
            raise TranscriptUnavailableError(f"Transcript for video {video_id} is empty")

        logger.info("YouTube transcript fetched", extra={"video_id": video_id, "length": len(text)})
        return text
