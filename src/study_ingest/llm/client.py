"""Shared async-capable Gemini client.

One ``genai.Client`` per process so generation requests reuse its HTTP
connection pool. No ``HttpRetryOptions``: each generation request makes a
single backend call.
"""

from functools import lru_cache

from google import genai
from google.genai import types

from study_ingest.config import Settings, get_settings


def build_gemini_client(settings: Settings) -> genai.Client:
    """Construct a client from settings (API key and per-request timeout)."""
    return genai.Client(
        api_key=settings.gemini_api_key or None,
        http_options=types.HttpOptions(timeout=settings.gemini_timeout_ms),
    )


@lru_cache
def get_gemini_client() -> genai.Client:
    """Return the process-wide client, built lazily on first use."""
    return build_gemini_client(get_settings())


def reset_client() -> None:
    """Drop the cached client (tests, or after rotating the API key)."""
    get_gemini_client.cache_clear()
