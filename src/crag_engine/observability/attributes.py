"""
Semantic Conventions for Span Attributes

Pipeline stages use a custom crag.* namespace. Attributes of the LLM
calls themselves (model, tokens) come from the OpenInference instrumentor.
"""

# ---------------------------------------------------------------------------
# CRAG NAMESPACE (custom)
# ---------------------------------------------------------------------------

# Pipeline
CRAG_STAGE = "crag.stage"  # "retrieve", "evaluate", "correct"
CRAG_QUERY = "crag.query"  # only when capture_llm_content is on
CRAG_OWNER_SCOPED = "crag.owner_scoped"  # bool
CRAG_CORRECTION_ENABLED = "crag.correction_enabled"

# Retrieval
CRAG_RETRIEVED_DOC_COUNT = "crag.retrieved_doc_count"
CRAG_RETRIEVED_DOC_IDS = "crag.retrieved_doc_ids"
CRAG_TOP_SIMILARITY = "crag.top_similarity"

# Evaluation
CRAG_EVALUATION_SCORE = "crag.evaluation.score"
CRAG_EVALUATION_IS_RELEVANT = "crag.evaluation.is_relevant"
CRAG_EVALUATION_FALLBACK = "crag.evaluation.fallback"

# Correction
CRAG_CORRECTED = "crag.corrected"
CRAG_REFINED_QUERY = "crag.refined_query"  # only when capture_llm_content is on
CRAG_CORRECTION_ERROR = "crag.correction.error"


# ---------------------------------------------------------------------------
# HELPER FUNCTIONS
# ---------------------------------------------------------------------------


def retrieval_attributes(doc_ids: list[str], similarities: list[float]) -> dict:
    """Create attributes dict for a retrieval span."""
    attrs = {
        CRAG_STAGE: "retrieve",
        CRAG_RETRIEVED_DOC_COUNT: len(doc_ids),
        CRAG_RETRIEVED_DOC_IDS: list(doc_ids),
    }
    if similarities:
        attrs[CRAG_TOP_SIMILARITY] = max(similarities)
    return attrs


def evaluation_attributes(score: float, is_relevant: bool, reason: str) -> dict:
    """Create attributes dict for an evaluation span."""
    return {
        CRAG_STAGE: "evaluate",
        CRAG_EVALUATION_SCORE: score,
        CRAG_EVALUATION_IS_RELEVANT: is_relevant,
        CRAG_EVALUATION_FALLBACK: reason == "fallback",
    }


def correction_attributes(corrected: bool, error: str | None = None) -> dict:
    """Create attributes dict for a correction span."""
    attrs = {
        CRAG_STAGE: "correct",
        CRAG_CORRECTED: corrected,
    }
    if error:
        attrs[CRAG_CORRECTION_ERROR] = error
    return attrs
