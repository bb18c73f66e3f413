"""Study artifacts produced by the generation client.

Artifacts form a tagged union discriminated by ``artifact_type`` so every
consumer gets a concrete, validated type instead of an untyped JSON blob.
"""

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import AliasChoices, BaseModel, Field


class GenerationTask(str, Enum):
    """Kinds of study material the generation client can produce."""

    FLASHCARDS = "flashcards"
    QUIZ = "quiz"
    SUMMARY = "summary"
    CONCEPTS = "concepts"


class SummaryKind(str, Enum):
    """Summary length presets."""

    SHORT = "short"
    DETAILED = "detailed"


class Flashcard(BaseModel):
    """A single question/answer study card."""

    artifact_type: Literal["flashcard"] = "flashcard"
    question: str = Field(min_length=1)
    answer: str = Field(min_length=1)


class QuizQuestion(BaseModel):
    """A multiple choice question with exactly four options."""

    artifact_type: Literal["quiz_question"] = "quiz_question"
    question: str = Field(min_length=1)
    options: list[str] = Field(min_length=4, max_length=4)
    correct_index: int = Field(
        ge=0,
        le=3,
        validation_alias=AliasChoices("correct_index", "correctIndex", "correctAnswer"),
    )
    explanation: str = ""


class Summary(BaseModel):
    """A prose summary of the source text."""

    artifact_type: Literal["summary"] = "summary"
    text: str = Field(min_length=1)
    kind: SummaryKind = SummaryKind.SHORT


class ConceptList(BaseModel):
    """Key concepts, terms, or theories found in the source text."""

    artifact_type: Literal["concept_list"] = "concept_list"
    concepts: list[str] = Field(min_length=1)


Artifact = Annotated[
    Union[Flashcard, QuizQuestion, Summary, ConceptList],
    Field(discriminator="artifact_type"),
]


class GenerationParams(BaseModel):
    """Task parameters for a generation request."""

    count: int | None = Field(default=None, ge=1, le=50)
    summary_kind: SummaryKind = SummaryKind.SHORT


class GenerationResult(BaseModel):
    """Artifacts produced by one generation request. Never cached."""

    content_id: str | None = None
    task: GenerationTask
    artifacts: list[Artifact]
