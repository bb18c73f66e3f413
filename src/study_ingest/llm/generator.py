"""Study material generator: completed content text -> study artifacts via Gemini.

Wires prompts, the backend client, the output parser, and the task envelopes
into one call per request. The backend is invoked exactly once; there is no
built-in retry, so callers decide whether a failed request is worth repeating.
Nothing is cached or persisted.
"""

import logging

import httpx
from google import genai
from google.genai import types
from google.genai.errors import APIError

from study_ingest.config import Settings, get_settings
from study_ingest.errors import BackendFailureError, ContentNotReadyError
from study_ingest.llm.client import build_gemini_client, get_gemini_client
from study_ingest.llm.parsing import parse_model_output
from study_ingest.llm.prompts import TASK_TEMPERATURES, build_prompt, resolve_count
from study_ingest.llm.schemas import build_artifacts
from study_ingest.models.artifacts import GenerationParams, GenerationResult, GenerationTask
from study_ingest.models.content import Content, ContentStatus
from study_ingest.usage import TokenUsage, UsageMeter

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 4096


class StudyMaterialGenerator:
    """Generates flashcards, quizzes, summaries, and concept lists from text."""

    def __init__(
        self,
        client: genai.Client | None = None,
        model: str | None = None,
        max_prompt_chars: int | None = None,
        settings: Settings | None = None,
    ):
        self._settings = settings
        settings = settings or get_settings()
        self._client = client
        self.model = model or settings.gemini_model
        self.max_prompt_chars = max_prompt_chars or settings.max_prompt_chars
        self.usage = UsageMeter()

    @property
    def client(self) -> genai.Client:
        # Injected settings get their own client, otherwise share the process singleton
        if self._client is None and self._settings is not None:
            self._client = build_gemini_client(self._settings)
        elif self._client is None:
            self._client = get_gemini_client()
        return self._client

    async def generate(
        self,
        content: Content,
        task: GenerationTask | str,
        params: GenerationParams | None = None,
    ) -> GenerationResult:
        """Generate artifacts from a completed content record.

        Raises:
            ContentNotReadyError: The record is not COMPLETED. No waiting is done.
            BackendFailureError: The backend call failed.
            GenerationParseError: The output could not be recovered to the task's shape.
        """
        if content.status != ContentStatus.COMPLETED:
            raise ContentNotReadyError(content.id, content.status.value)

        result = await self.generate_from_text(content.extracted_text, task, params)
        result.content_id = content.id
        return result

    async def generate_from_text(
        self,
        text: str,
        task: GenerationTask | str,
        params: GenerationParams | None = None,
    ) -> GenerationResult:
        """Generate artifacts for ``task`` directly from source text."""
        task = GenerationTask(task)
        params = params or GenerationParams()

        if len(text) > self.max_prompt_chars:
            logger.info("Truncating source text from %d to %d chars", len(text), self.max_prompt_chars)
            text = text[: self.max_prompt_chars]

        prompt = build_prompt(task, text, params)
        raw_text = await self._call_backend(task, prompt)

        data = parse_model_output(raw_text)
        artifacts = build_artifacts(
            task, data, params, raw_text, limit=resolve_count(task, params)
        )
        return GenerationResult(task=task, artifacts=artifacts)

    async def _call_backend(self, task: GenerationTask, prompt: str) -> str:
        """Invoke the generation backend once and return the raw response text."""
        try:
            response = await self.client.aio.models.generate_content(
                model=self.model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    temperature=TASK_TEMPERATURES[task],
                    max_output_tokens=MAX_OUTPUT_TOKENS,
                ),
            )
        except (APIError, httpx.HTTPError) as exc:
            logger.error("Gemini generation failed for %s", task.value, exc_info=True)
            raise BackendFailureError(f"AI generation failed: {exc}") from exc

        self.usage.record(task.value, self.model, TokenUsage.from_response(response))
        return response.text or ""
