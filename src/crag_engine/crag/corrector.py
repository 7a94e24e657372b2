"""
Query corrector - rewrite the query and retrieve once more.

Correction fails open: without a completion backend, or on any error
while refining or re-retrieving, the initial documents come back
unchanged with corrected=False and the error message attached.
"""

from __future__ import annotations

import logging

from crag_engine.core.protocols import CompletionBackend
from crag_engine.crag.prompts import format_refinement_prompt
from crag_engine.crag.schemas import (
    RELEVANCE_THRESHOLD,
    CorrectionResult,
    RelevanceEvaluation,
)
from crag_engine.retrieval.document import RetrievalResult
from crag_engine.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

NOT_CONFIGURED_ERROR = "completion backend not configured"


class QueryCorrector:
    """
    Corrective retrieval stage.

    Args:
        retriever: Retriever re-invoked with the refined query (default k)
        completion: Backend that writes the refined query, or None
        threshold: Evaluations at or above this (and relevant) are left alone
        model_id: Override the backend's default model
    """

    def __init__(
        self,
        retriever: Retriever,
        completion: CompletionBackend | None,
        threshold: float = RELEVANCE_THRESHOLD,
        model_id: str | None = None,
    ):
        self._retriever = retriever
        self._completion = completion
        self.threshold = threshold
        self._model_id = model_id

    def corrective_retrieval(
        self,
        query: str,
        initial_docs: list[RetrievalResult],
        evaluation: RelevanceEvaluation,
        owner_id: str | None = None,
    ) -> CorrectionResult:
        """
        Refine the query and retrieve again if the evaluation failed.

        Returns:
            CorrectionResult; never raises
        """
        if evaluation.passes(self.threshold):
            return CorrectionResult(docs=initial_docs, corrected=False)

        if self._completion is None:
            return CorrectionResult(
                docs=initial_docs, corrected=False, error=NOT_CONFIGURED_ERROR
            )

        try:
            refined_query = self._completion.complete(
                format_refinement_prompt(query, evaluation), self._model_id
            ).strip()
            if not refined_query:
                raise ValueError("Refined query was empty")

            corrected_docs = self._retriever.retrieve_top_k(refined_query, owner_id=owner_id)
        except Exception as e:
            logger.warning("Corrective retrieval failed, keeping initial documents: %s", e)
            return CorrectionResult(docs=initial_docs, corrected=False, error=str(e))

        logger.info("Query refined: %r -> %r", query, refined_query)
        return CorrectionResult(
            docs=corrected_docs,
            corrected=True,
            refined_query=refined_query,
            original_query=query,
        )
