"""
CRAG module - corrective retrieval-augmented generation.

ARCHITECTURE:
-------------
- prompts.py: Externalized prompts (testable, versionable)
- schemas.py: Data models for judgments and results
- evaluator.py: LLM relevance judgment with similarity fallback
- corrector.py: Query refinement + one re-retrieval, fail-open
- pipeline.py: Stage sequencing and context assembly
"""

from crag_engine.crag.schemas import (
    RELEVANCE_THRESHOLD,
    RelevanceJudgment,
    RelevanceEvaluation,
    CorrectionResult,
    CRAGResult,
)
from crag_engine.crag.prompts import (
    format_evaluation_prompt,
    format_refinement_prompt,
)
from crag_engine.crag.evaluator import (
    FALLBACK_REASON,
    NO_DOCUMENTS_REASON,
    RelevanceEvaluator,
    extract_json_object,
    parse_judgment,
    similarity_fallback,
)
from crag_engine.crag.corrector import QueryCorrector
from crag_engine.crag.pipeline import (
    CONTEXT_SEPARATOR,
    NO_DOCUMENTS_FOUND_REASON,
    CRAGPipeline,
    build_context,
)

__all__ = [
    # Schemas
    "RELEVANCE_THRESHOLD",
    "RelevanceJudgment",
    "RelevanceEvaluation",
    "CorrectionResult",
    "CRAGResult",
    # Prompts
    "format_evaluation_prompt",
    "format_refinement_prompt",
    # Evaluator
    "FALLBACK_REASON",
    "NO_DOCUMENTS_REASON",
    "RelevanceEvaluator",
    "extract_json_object",
    "parse_judgment",
    "similarity_fallback",
    # Corrector
    "QueryCorrector",
    # Pipeline
    "CONTEXT_SEPARATOR",
    "NO_DOCUMENTS_FOUND_REASON",
    "CRAGPipeline",
    "build_context",
]
