"""Tests for source-type dispatch in the extraction router."""

from unittest.mock import AsyncMock

import pytest

from study_ingest.config import Settings
from study_ingest.errors import UnsupportedSourceTypeError
from study_ingest.extraction import (
    FileAdapter,
    VideoTranscriptAdapter,
    WebpageAdapter,
    build_default_router,
)
from study_ingest.extraction.router import ExtractionRouter
from study_ingest.models.content import SourceType


def _adapter(text: str) -> AsyncMock:
    adapter = AsyncMock()
    adapter.extract.return_value = text
    return adapter


@pytest.mark.asyncio
async def test_route_dispatches_by_source_type():
    file_adapter = _adapter("file text")
    page_adapter = _adapter("page text")
    router = ExtractionRouter({SourceType.FILE: file_adapter, SourceType.WEBPAGE: page_adapter})

    result = await router.route(SourceType.WEBPAGE, "https://example.com")

    assert result == "page text"
    page_adapter.extract.assert_awaited_once_with("https://example.com")
    file_adapter.extract.assert_not_called()


@pytest.mark.asyncio
async def test_route_accepts_string_source_type():
    file_adapter = _adapter("file text")
    router = ExtractionRouter({SourceType.FILE: file_adapter})

    assert await router.route("file", "/uploads/a.pdf") == "file text"


@pytest.mark.asyncio
async def test_route_unknown_type_raises():
    router = ExtractionRouter({SourceType.FILE: _adapter("x")})
    with pytest.raises(UnsupportedSourceTypeError):
        await router.route("podcast", "https://example.com/feed")


@pytest.mark.asyncio
async def test_route_unregistered_type_raises():
    router = ExtractionRouter({SourceType.FILE: _adapter("x")})
    with pytest.raises(UnsupportedSourceTypeError):
        await router.route(SourceType.VIDEO, "https://youtu.be/abc123")


@pytest.mark.asyncio
async def test_adapter_errors_propagate_unchanged():
    """The router never retries or rewraps adapter failures."""
    failing = AsyncMock()
    failing.extract.side_effect = ValueError("boom")
    router = ExtractionRouter({SourceType.FILE: failing})

    with pytest.raises(ValueError, match="boom"):
        await router.route(SourceType.FILE, "/uploads/a.pdf")
    assert failing.extract.await_count == 1


def test_unsupported_source_type_is_permanent():
    assert UnsupportedSourceTypeError("podcast").retryable is False


def test_default_router_wires_all_adapters():
    settings = Settings(max_file_bytes=1024, webpage_timeout_seconds=3.0)
    router = build_default_router(settings)

    assert router.source_types == frozenset(SourceType)
    adapters = router._adapters
    assert isinstance(adapters[SourceType.FILE], FileAdapter)
    assert adapters[SourceType.FILE].max_bytes == 1024
    assert isinstance(adapters[SourceType.WEBPAGE], WebpageAdapter)
    assert adapters[SourceType.WEBPAGE].timeout == 3.0
    assert isinstance(adapters[SourceType.VIDEO], VideoTranscriptAdapter)
