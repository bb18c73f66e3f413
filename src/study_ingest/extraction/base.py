"""Source adapter interface."""

from typing import Protocol


class SourceAdapter(Protocol):
    """Turns a source locator (path or URL) into plain text.

    Implementations raise ``ExtractionError`` subclasses on failure and never
    return empty text. Extraction must be safe to repeat: a redelivered job
    calls ``extract`` again with the same locator.
    """

    async def extract(self, locator: str) -> str: ...
