"""Prompt templates and sampling temperatures for each generation task.

Prompts are pure functions of (task, text, params): the same input always
produces the same prompt. Every template ends by demanding a single JSON shape
and nothing else, which is what the output parser expects.
"""

from study_ingest.models.artifacts import GenerationParams, GenerationTask, SummaryKind

DEFAULT_COUNTS = {
    GenerationTask.FLASHCARDS: 10,
    GenerationTask.QUIZ: 5,
}

# Lower for strict extraction-style tasks, moderate for free prose
TASK_TEMPERATURES = {
    GenerationTask.FLASHCARDS: 0.3,
    GenerationTask.QUIZ: 0.4,
    GenerationTask.SUMMARY: 0.5,
    GenerationTask.CONCEPTS: 0.3,
}

SUMMARY_LENGTHS = {
    SummaryKind.SHORT: "100 words",
    SummaryKind.DETAILED: "300 words",
}

_FLASHCARDS_PROMPT = """\
You are an expert educator creating study flashcards.

Your flashcards should:
- Test understanding, not just memorization
- Be clear and concise
- Cover important concepts
- Use simple language

Generate exactly {count} flashcards from this content:

{text}

Return ONLY valid JSON in this exact format (no markdown, no explanations):
{{
  "flashcards": [
    {{
      "question": "Question text here",
      "answer": "Answer text here"
    }}
  ]
}}

Keep questions under 20 words and answers under 50 words."""

_QUIZ_PROMPT = """\
You are an expert educator creating multiple choice quizzes.

Your questions should:
- Test comprehension and application
- Have 4 plausible options
- Have only one correct answer
- Include clear explanations

Generate exactly {count} multiple choice questions from this content:

{text}

Return ONLY valid JSON in this exact format (no markdown, no explanations):
{{
  "questions": [
    {{
      "question": "Question text",
      "options": ["Option A", "Option B", "Option C", "Option D"],
      "correct_index": 0,
      "explanation": "Why this answer is correct"
    }}
  ]
}}

correct_index is the index (0-3) of the correct option."""

_SUMMARY_PROMPT = """\
You are an expert at summarizing educational content clearly and concisely.

Summarize the following content in {length}:

{text}

Focus on:
- Main ideas and key concepts
- Important facts and conclusions
- Logical flow

Return ONLY valid JSON in this exact format (no markdown, no explanations):
{{
  "summary": "Summary text here"
}}"""

_CONCEPTS_PROMPT = """\
You are an expert at identifying key concepts and terms in educational content.

Extract 5-10 key concepts from this content:

{text}

Return ONLY valid JSON in this exact format (no markdown, no explanations):
{{
  "concepts": ["Concept 1", "Concept 2", "Concept 3"]
}}

List only the most important terms, theories, or ideas."""


def resolve_count(task: GenerationTask, params: GenerationParams) -> int | None:
    """Return the requested item count, falling back to the task default."""
    if params.count is not None:
        return params.count
    return DEFAULT_COUNTS.get(task)


def build_prompt(task: GenerationTask, text: str, params: GenerationParams) -> str:
    """Build the prompt for ``task`` over ``text``.

    Args:
        task: Which study material to generate.
        text: Extracted source text (already length-capped by the caller).
        params: Item count and summary length.

    Returns:
        The complete prompt string.
    """
    text = text.strip()
    if task == GenerationTask.FLASHCARDS:
        return _FLASHCARDS_PROMPT.format(count=resolve_count(task, params), text=text)
    if task == GenerationTask.QUIZ:
        return _QUIZ_PROMPT.format(count=resolve_count(task, params), text=text)
    if task == GenerationTask.SUMMARY:
        return _SUMMARY_PROMPT.format(length=SUMMARY_LENGTHS[params.summary_kind], text=text)
    return _CONCEPTS_PROMPT.format(text=text)
