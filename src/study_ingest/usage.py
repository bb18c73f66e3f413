"""Gemini token accounting for generation requests.

Every backend call produces one structured ``Gemini completion generated`` log
record. A ``UsageMeter`` also keeps running per-task totals for the lifetime
of the process; nothing is persisted.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass

logger = logging.getLogger(__name__)

# Gemini 2.5 Flash-Lite list prices, USD per token
INPUT_PRICE_PER_TOKEN = 0.10 / 1_000_000
OUTPUT_PRICE_PER_TOKEN = 0.40 / 1_000_000


@dataclass(frozen=True)
class TokenUsage:
    """Token counts reported for one generation call."""

    prompt_tokens: int = 0
    completion_tokens: int = 0

    @classmethod
    def from_response(cls, response: object) -> "TokenUsage":
        """Read ``usage_metadata`` off a response. Missing counts are 0."""
        metadata = getattr(response, "usage_metadata", None)
        return cls(
            prompt_tokens=getattr(metadata, "prompt_token_count", 0) or 0,
            completion_tokens=getattr(metadata, "candidates_token_count", 0) or 0,
        )

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    @property
    def cost_usd(self) -> float:
        return (
            self.prompt_tokens * INPUT_PRICE_PER_TOKEN
            + self.completion_tokens * OUTPUT_PRICE_PER_TOKEN
        )


class UsageMeter:
    """Logs each call's usage and accumulates totals per generation task."""

    def __init__(self):
        self._calls: defaultdict[str, int] = defaultdict(int)
        self._tokens: defaultdict[str, int] = defaultdict(int)
        self._cost: defaultdict[str, float] = defaultdict(float)

    def record(self, task: str, model: str, usage: TokenUsage) -> None:
        self._calls[task] += 1
        self._tokens[task] += usage.total_tokens
        self._cost[task] += usage.cost_usd
        logger.info(
            "Gemini completion generated",
            extra={
                "task": task,
                "model": model,
                "prompt_tokens": usage.prompt_tokens,
                "completion_tokens": usage.completion_tokens,
                "total_tokens": usage.total_tokens,
                "cost_usd": round(usage.cost_usd, 6),
            },
        )

    def totals(self) -> dict[str, dict[str, float]]:
        """Per-task call count, token total, and cost so far."""
        return {
            task: {
                "calls": self._calls[task],
                "tokens": self._tokens[task],
                "cost_usd": round(self._cost[task], 6),
            }
            for task in sorted(self._calls)
        }
