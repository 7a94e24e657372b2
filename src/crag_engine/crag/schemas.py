"""
CRAG schemas - data models for evaluation, correction and results.

These schemas define the contract between:
- The evaluator LLM (RelevanceJudgment: what it must return)
- The pipeline stages (RelevanceEvaluation, CorrectionResult)
- The response layer (CRAGResult.to_dict)
"""

from __future__ import annotations

from dataclasses import dataclass, field

from pydantic import BaseModel, ConfigDict, Field

from crag_engine.retrieval.document import RetrievalResult

RELEVANCE_THRESHOLD = 0.7


# ---------------------------------------------------------------------------
# LLM OUTPUT SCHEMA (Pydantic for strict parsing)
# ---------------------------------------------------------------------------


class RelevanceJudgment(BaseModel):
    """Structured judgment scraped from the evaluator's reply.

    Every field is required; a reply missing one is rejected outright
    rather than patched with defaults.
    """

    model_config = ConfigDict(strict=True, populate_by_name=True)

    is_relevant: bool = Field(alias="isRelevant")
    score: float = Field(ge=0, le=1, description="Relevance from 0 to 1")
    reason: str = Field(description="Brief explanation")


# ---------------------------------------------------------------------------
# STAGE RESULTS (dataclasses for internal use)
# ---------------------------------------------------------------------------


@dataclass
class RelevanceEvaluation:
    """Outcome of the evaluation stage."""

    is_relevant: bool
    score: float
    reason: str

    def passes(self, threshold: float = RELEVANCE_THRESHOLD) -> bool:
        """Relevant and scored at or above threshold: no correction needed."""
        return self.is_relevant and self.score >= threshold

    def to_dict(self) -> dict:
        return {"isRelevant": self.is_relevant, "score": self.score, "reason": self.reason}


@dataclass
class CorrectionResult:
    """Outcome of corrective retrieval."""

    docs: list[RetrievalResult]
    corrected: bool
    refined_query: str | None = None
    original_query: str | None = None
    error: str | None = None


@dataclass
class CRAGResult:
    """Final output of the pipeline, consumed by the response layer."""

    documents: list[RetrievalResult]
    context: str
    evaluation: RelevanceEvaluation
    corrected: bool = False
    refined_query: str | None = None
    original_query: str | None = None
    correction_error: str | None = field(default=None, repr=False)

    def to_dict(self) -> dict:
        """Serialize with the camelCase keys the response layer expects."""
        return {
            "documents": [doc.to_dict() for doc in self.documents],
            "context": self.context,
            "evaluation": self.evaluation.to_dict(),
            "corrected": self.corrected,
            "refinedQuery": self.refined_query,
            "originalQuery": self.original_query,
        }
