"""Web page fetching and main-text extraction using httpx and BeautifulSoup."""

import logging
import re

import httpx
from bs4 import BeautifulSoup

from study_ingest.errors import FetchError, FetchTimeoutError, NoExtractableTextError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 10.0
DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
)

# Elements that never carry readable body text
NON_CONTENT_TAGS = ["script", "style", "nav", "footer", "iframe", "noscript"]

# Content containers, most specific first. The first match wins.
CONTENT_SELECTORS = (
    "article",
    "main",
    "[role=main]",
    ".content",
    "#content",
    ".post-content",
    ".entry-content",
)

# Statuses worth redelivering; other 4xx responses will not change on retry
_RETRYABLE_STATUSES = frozenset({408, 425, 429})

_WHITESPACE = re.compile(r"\s+")


def extract_main_text(html: str) -> str:
    """Return normalized readable text from an HTML document.

    Non-content elements are removed first. Text comes from the first matching
    content container; when none matches (or it is empty) all paragraph text
    is used instead. Whitespace runs collapse to single spaces. Deterministic:
    identical HTML always yields identical output.
    """
    soup = BeautifulSoup(html, "html.parser")
    for element in soup(NON_CONTENT_TAGS):
        element.decompose()

    text = ""
    for selector in CONTENT_SELECTORS:
        container = soup.select_one(selector)
        if container is not None:
            text = container.get_text(" ")
            break

    if not text.strip():
        text = "\n\n".join(p.get_text(" ") for p in soup.find_all("p"))

    return _WHITESPACE.sub(" ", text).strip()


class WebpageAdapter:
    """Fetches a URL and extracts its main text.

    Pass a shared ``httpx.AsyncClient`` to reuse pooled connections across
    jobs; otherwise a short-lived client is created per fetch.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._client = client
        self.timeout = timeout
        self.user_agent = user_agent

    async def extract(self, locator: str) -> str:
        html = await self.fetch(locator)
        text = extract_main_text(html)
        if not text:
            raise NoExtractableTextError(f"No readable text found at {locator}")
        logger.info("URL scraped", extra={"url": locator, "length": len(text)})
        return text

    async def fetch(self, url: str) -> str:
        """GET ``url`` and return the response body as text.

        Raises:
            FetchTimeoutError: No complete response within the timeout.
            FetchError: Connection failure or non-2xx status.
        """
        headers = {"User-Agent": self.user_agent}
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=headers, timeout=self.timeout, follow_redirects=True
                )
            else:
                async with httpx.AsyncClient(
                    timeout=httpx.Timeout(self.timeout), follow_redirects=True
                ) as client:
                    response = await client.get(url, headers=headers)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise FetchTimeoutError(f"Timed out after {self.timeout:.0f}s fetching {url}") from exc
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise FetchError(
                f"HTTP {status} fetching {url}",
                retryable=status >= 500 or status in _RETRYABLE_STATUSES,
            ) from exc
        except httpx.HTTPError as exc:
            raise FetchError(f"Failed to fetch {url}: {exc}") from exc

        return response.text
