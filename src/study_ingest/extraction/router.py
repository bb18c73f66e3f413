"""Dispatch extraction to the adapter registered for a source type."""

import logging
from collections.abc import Mapping

from study_ingest.errors import UnsupportedSourceTypeError
from study_ingest.extraction.base import SourceAdapter
from study_ingest.models.content import SourceType

logger = logging.getLogger(__name__)


class ExtractionRouter:
    """Pure dispatch by source type. Retries belong to the job queue, not here."""

    def __init__(self, adapters: Mapping[SourceType, SourceAdapter]):
        self._adapters = dict(adapters)

    @property
    def source_types(self) -> frozenset[SourceType]:
        return frozenset(self._adapters)

    async def route(self, source_type: SourceType | str, locator: str) -> str:
        """Extract text from ``locator`` with the adapter for ``source_type``.

        Raises:
            UnsupportedSourceTypeError: No adapter handles ``source_type``.
        """
        try:
            kind = SourceType(source_type)
        except ValueError:
            raise UnsupportedSourceTypeError(source_type) from None

        adapter = self._adapters.get(kind)
        if adapter is None:
            raise UnsupportedSourceTypeError(kind.value)

        logger.debug("Routing %s source to %s", kind.value, type(adapter).__name__)
        return await adapter.extract(locator)
