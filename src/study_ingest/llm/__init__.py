"""Study material generation via Gemini.

Public API:
    StudyMaterialGenerator(client).generate(content, task, params) -> GenerationResult
        Builds a task prompt, calls Gemini once, and recovers the JSON answer
        into typed artifacts.
"""

from study_ingest.llm.client import get_gemini_client, reset_client
from study_ingest.llm.generator import StudyMaterialGenerator
from study_ingest.llm.parsing import parse_model_output

__all__ = [
    "get_gemini_client",
    "reset_client",
    "StudyMaterialGenerator",
    "parse_model_output",
]
