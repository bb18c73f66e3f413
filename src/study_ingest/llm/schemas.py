"""Expected JSON envelopes per generation task, and their mapping to artifacts.

Envelopes describe exactly what the prompts ask the model to return. Parsed
output is validated against them before any artifact is built.
"""

from typing import Any

from pydantic import BaseModel, Field, ValidationError

from study_ingest.errors import GenerationParseError
from study_ingest.models.artifacts import (
    Artifact,
    ConceptList,
    Flashcard,
    GenerationParams,
    GenerationTask,
    QuizQuestion,
    Summary,
)


class FlashcardsEnvelope(BaseModel):
    flashcards: list[Flashcard] = Field(min_length=1)


class QuizEnvelope(BaseModel):
    questions: list[QuizQuestion] = Field(min_length=1)


class SummaryEnvelope(BaseModel):
    summary: str = Field(min_length=1)


class ConceptsEnvelope(BaseModel):
    concepts: list[str] = Field(min_length=1)


ENVELOPES: dict[GenerationTask, tuple[str, type[BaseModel]]] = {
    GenerationTask.FLASHCARDS: ("flashcards", FlashcardsEnvelope),
    GenerationTask.QUIZ: ("questions", QuizEnvelope),
    GenerationTask.SUMMARY: ("summary", SummaryEnvelope),
    GenerationTask.CONCEPTS: ("concepts", ConceptsEnvelope),
}


def build_artifacts(
    task: GenerationTask,
    data: Any,
    params: GenerationParams,
    raw_text: str,
    limit: int | None = None,
) -> list[Artifact]:
    """Validate parsed model output for ``task`` and convert it to artifacts.

    A bare JSON array is accepted as the list under the task's expected key
    (models sometimes drop the wrapper object). List results are capped at
    ``limit`` items when given.

    Raises:
        GenerationParseError: The data does not match the task's envelope.
    """
    key, envelope_cls = ENVELOPES[task]
    if isinstance(data, list):
        data = {key: data}

    try:
        envelope = envelope_cls.model_validate(data)
    except ValidationError as exc:
        raise GenerationParseError(
            f"Model output does not match the {task.value} shape: "
            f"{exc.error_count()} validation error(s)",
            raw_text=raw_text,
        ) from exc

    if isinstance(envelope, FlashcardsEnvelope):
        artifacts: list[Artifact] = list(envelope.flashcards)
    elif isinstance(envelope, QuizEnvelope):
        artifacts = list(envelope.questions)
    elif isinstance(envelope, SummaryEnvelope):
        if not envelope.summary.strip():
            raise GenerationParseError("Model returned a blank summary", raw_text=raw_text)
        return [Summary(text=envelope.summary.strip(), kind=params.summary_kind)]
    else:
        concepts = [c.strip() for c in envelope.concepts if c.strip()]
        if not concepts:
            raise GenerationParseError("Model returned only blank concepts", raw_text=raw_text)
        return [ConceptList(concepts=concepts)]

    return artifacts[:limit] if limit else artifacts
