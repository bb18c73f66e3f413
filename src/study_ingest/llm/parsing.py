"""Best-effort recovery of a JSON value from cooperative but imperfect model output.

Two explicit stages, then a strict parse:

1. Unwrap a code fence (```json ... ```) around the payload. Only a fence that
   opens a line counts, so backticks inside JSON strings are left alone.
2. Find the first top-level balanced ``{...}`` or ``[...]`` region, tolerating
   prose before and after it. Brackets inside JSON strings are ignored.
3. ``json.loads`` the region.

This is not a general JSON repair algorithm. Anything that fails a stage
raises ``GenerationParseError`` with the raw output attached; partial or
guessed data is never returned.
"""

import json
import re
from typing import Any

from study_ingest.errors import GenerationParseError

# A JSON string cannot hold a raw newline, so a fence at the start of a line is markup
_OPEN_FENCE = re.compile(r"^[ \t]*```[A-Za-z0-9_-]*[ \t]*(?:\r?\n|(?=[\[{]))", re.MULTILINE)
_CLOSE_FENCE = re.compile(r"^[ \t]*```|```\s*\Z", re.MULTILINE)
_CLOSERS = {"{": "}", "[": "]"}


def strip_code_fences(text: str) -> str:
    """Return the body of the first fenced block, or ``text`` unchanged if unfenced."""
    opening = _OPEN_FENCE.search(text)
    if opening is None:
        return text.strip()
    body = text[opening.end() :]
    closing = _CLOSE_FENCE.search(body)
    if closing is not None:
        body = body[: closing.start()]
    return body.strip()


def find_json_region(text: str) -> str | None:
    """Return the first balanced top-level JSON object or array in ``text``.

    Returns None if there is no opening bracket, or if the first region is
    truncated or has mismatched brackets.
    """
    start = next((i for i, char in enumerate(text) if char in _CLOSERS), None)
    if start is None:
        return None

    expected: list[str] = []
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue

        if char == '"':
            in_string = True
        elif char in _CLOSERS:
            expected.append(_CLOSERS[char])
        elif char in "}]":
            if not expected or expected.pop() != char:
                return None
            if not expected:
                return text[start : index + 1]
    return None


def parse_model_output(raw_text: str) -> Any:
    """Parse the JSON object or array embedded in a model response.

    Raises:
        GenerationParseError: Empty output, no balanced region, or invalid JSON.
    """
    if not raw_text or not raw_text.strip():
        raise GenerationParseError("Empty response from generation backend", raw_text=raw_text or "")

    region = find_json_region(strip_code_fences(raw_text))
    if region is None:
        raise GenerationParseError(
            "No balanced JSON object or array found in model output", raw_text=raw_text
        )

    try:
        return json.loads(region)
    except json.JSONDecodeError as exc:
        raise GenerationParseError(
            f"Model output is not valid JSON: {exc.msg}", raw_text=raw_text
        ) from exc
