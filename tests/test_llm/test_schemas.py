"""Tests for converting parsed model output into typed artifacts."""

import pytest

from study_ingest.errors import GenerationParseError
from study_ingest.llm.schemas import build_artifacts
from study_ingest.models.artifacts import (
    ConceptList,
    Flashcard,
    GenerationParams,
    GenerationTask,
    QuizQuestion,
    Summary,
    SummaryKind,
)


def _quiz_item(index: int = 1) -> dict:
    return {
        "question": "Where does glycolysis occur?",
        "options": ["Cytoplasm", "Nucleus", "Mitochondria", "Ribosome"],
        "correct_index": index,
        "explanation": "Glycolysis happens in the cytoplasm.",
    }


def test_flashcards_envelope():
    data = {"flashcards": [{"question": "What is ATP?", "answer": "Energy currency"}]}
    artifacts = build_artifacts(GenerationTask.FLASHCARDS, data, GenerationParams(), "raw")

    assert artifacts == [Flashcard(question="What is ATP?", answer="Energy currency")]


def test_bare_list_accepted_for_list_tasks():
    data = [{"question": "Q1", "answer": "A1"}, {"question": "Q2", "answer": "A2"}]
    artifacts = build_artifacts(GenerationTask.FLASHCARDS, data, GenerationParams(), "raw")
    assert len(artifacts) == 2


def test_list_results_capped_at_limit():
    data = {"flashcards": [{"question": f"Q{i}", "answer": f"A{i}"} for i in range(6)]}
    artifacts = build_artifacts(
        GenerationTask.FLASHCARDS, data, GenerationParams(count=4), "raw", limit=4
    )
    assert [a.question for a in artifacts] == ["Q0", "Q1", "Q2", "Q3"]


def test_quiz_envelope():
    artifacts = build_artifacts(
        GenerationTask.QUIZ, {"questions": [_quiz_item(0)]}, GenerationParams(), "raw"
    )
    assert isinstance(artifacts[0], QuizQuestion)
    assert artifacts[0].correct_index == 0


def test_quiz_with_three_options_rejected():
    item = _quiz_item()
    item["options"] = item["options"][:3]
    with pytest.raises(GenerationParseError) as exc_info:
        build_artifacts(GenerationTask.QUIZ, {"questions": [item]}, GenerationParams(), "raw out")
    assert exc_info.value.raw_text == "raw out"


def test_quiz_index_out_of_range_rejected():
    with pytest.raises(GenerationParseError):
        build_artifacts(
            GenerationTask.QUIZ, {"questions": [_quiz_item(4)]}, GenerationParams(), "raw"
        )


def test_summary_carries_kind():
    artifacts = build_artifacts(
        GenerationTask.SUMMARY,
        {"summary": "  Cells make energy.  "},
        GenerationParams(summary_kind=SummaryKind.DETAILED),
        "raw",
    )
    assert artifacts == [Summary(text="Cells make energy.", kind=SummaryKind.DETAILED)]


def test_blank_summary_rejected():
    with pytest.raises(GenerationParseError, match="blank summary"):
        build_artifacts(GenerationTask.SUMMARY, {"summary": "   "}, GenerationParams(), "raw")


def test_concepts_trimmed_and_blank_dropped():
    artifacts = build_artifacts(
        GenerationTask.CONCEPTS, {"concepts": [" Osmosis ", "", "Diffusion"]}, GenerationParams(), "raw"
    )
    assert artifacts == [ConceptList(concepts=["Osmosis", "Diffusion"])]


def test_wrong_key_rejected():
    with pytest.raises(GenerationParseError, match="concepts shape"):
        build_artifacts(GenerationTask.CONCEPTS, {"terms": ["a"]}, GenerationParams(), "raw")


def test_empty_list_rejected():
    with pytest.raises(GenerationParseError):
        build_artifacts(GenerationTask.FLASHCARDS, {"flashcards": []}, GenerationParams(), "raw")
