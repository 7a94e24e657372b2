"""
CRAG pipeline - retrieve, evaluate, optionally correct, assemble context.

One pipeline serves both collections. Evaluation and correction are
optional stages:
- shared knowledge base: retriever + evaluator + corrector (full CRAG)
- personal memory: retriever only, used through retrieve()

perform_crag is a single pass; correction runs at most once. Any
exception is converted into an empty result whose evaluation reason
carries the error, so callers always get a CRAGResult back.
"""

from __future__ import annotations

import logging

from crag_engine.crag.corrector import QueryCorrector
from crag_engine.crag.evaluator import RelevanceEvaluator, similarity_fallback
from crag_engine.crag.schemas import RELEVANCE_THRESHOLD, CRAGResult, RelevanceEvaluation
from crag_engine.observability.attributes import (
    CRAG_CORRECTION_ENABLED,
    CRAG_OWNER_SCOPED,
    CRAG_QUERY,
    CRAG_REFINED_QUERY,
    correction_attributes,
    evaluation_attributes,
    retrieval_attributes,
)
from crag_engine.observability.config import get_config as get_phoenix_config
from crag_engine.observability.tracer import TracerProtocol, get_tracer
from crag_engine.retrieval.document import RetrievalResult
from crag_engine.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

NO_DOCUMENTS_FOUND_REASON = "No documents found in knowledge base"
CONTEXT_SEPARATOR = "\n\n---\n\n"


def build_context(docs: list[RetrievalResult]) -> str:
    """Label each document's full text as [Document N] and join them in order."""
    return CONTEXT_SEPARATOR.join(
        f"[Document {idx}]\n{doc.text}" for idx, doc in enumerate(docs, start=1)
    )


class CRAGPipeline:
    """
    Corrective retrieval-augmented generation over one collection.

    Args:
        retriever: Retrieval stage (always present)
        evaluator: Relevance stage; None means judge by similarity only
        corrector: Correction stage; None means never correct
        threshold: Relevance threshold shared by every stage
        tracer: Tracer override (global tracer if None)
    """

    def __init__(
        self,
        retriever: Retriever,
        evaluator: RelevanceEvaluator | None = None,
        corrector: QueryCorrector | None = None,
        threshold: float = RELEVANCE_THRESHOLD,
        tracer: TracerProtocol | None = None,
    ):
        self.retriever = retriever
        self.evaluator = evaluator
        self.corrector = corrector
        self.threshold = threshold
        self._tracer = tracer

    @property
    def tracer(self) -> TracerProtocol:
        return self._tracer or get_tracer()

    # -----------------------------------------------------------------------
    # STAGES
    # -----------------------------------------------------------------------

    def retrieve(
        self,
        query: str,
        k: int | None = None,
        owner_id: str | None = None,
    ) -> list[RetrievalResult]:
        """Retrieval stage alone. Errors propagate."""
        with self.tracer.start_span("crag.retrieve") as span:
            span.set_attribute(CRAG_OWNER_SCOPED, owner_id is not None)
            if get_phoenix_config().capture_llm_content:
                span.set_attribute(CRAG_QUERY, query)

            docs = self.retriever.retrieve_top_k(query, k=k, owner_id=owner_id)

            for key, value in retrieval_attributes(
                [d.doc_id for d in docs], [d.similarity for d in docs]
            ).items():
                span.set_attribute(key, value)
            return docs

    def _evaluate(self, query: str, docs: list[RetrievalResult]) -> RelevanceEvaluation:
        with self.tracer.start_span("crag.evaluate") as span:
            if self.evaluator is None:
                evaluation = similarity_fallback(docs, self.threshold)
            else:
                evaluation = self.evaluator.evaluate_relevance(query, docs)

            for key, value in evaluation_attributes(
                evaluation.score, evaluation.is_relevant, evaluation.reason
            ).items():
                span.set_attribute(key, value)
            return evaluation

    # -----------------------------------------------------------------------
    # ENTRY POINT
    # -----------------------------------------------------------------------

    def perform_crag(
        self,
        query: str,
        enable_correction: bool = True,
        owner_id: str | None = None,
    ) -> CRAGResult:
        """
        Retrieve -> Evaluate -> (Correct) -> assemble context.

        Args:
            query: Free-text user query
            enable_correction: When False, correction is never attempted,
                however poor the evaluation
            owner_id: Restrict every retrieval to one owner's documents

        Returns:
            CRAGResult; never raises
        """
        try:
            with self.tracer.start_span("crag.perform") as span:
                span.set_attribute(CRAG_CORRECTION_ENABLED, enable_correction)
                return self._run(query, enable_correction, owner_id)
        except Exception as e:
            logger.exception("CRAG pipeline failed")
            return CRAGResult(
                documents=[],
                context="",
                evaluation=RelevanceEvaluation(
                    is_relevant=False, score=0.0, reason=f"Error: {e}"
                ),
                corrected=False,
                original_query=query,
            )

    def _run(self, query: str, enable_correction: bool, owner_id: str | None) -> CRAGResult:
        initial_docs = self.retrieve(query, owner_id=owner_id)

        if not initial_docs:
            return CRAGResult(
                documents=[],
                context="",
                evaluation=RelevanceEvaluation(
                    is_relevant=False, score=0.0, reason=NO_DOCUMENTS_FOUND_REASON
                ),
                corrected=False,
                original_query=query,
            )

        evaluation = self._evaluate(query, initial_docs)

        final_docs = initial_docs
        corrected = False
        refined_query = None
        correction_error = None

        if enable_correction and self.corrector is not None and not evaluation.passes(self.threshold):
            with self.tracer.start_span("crag.correct") as span:
                correction = self.corrector.corrective_retrieval(
                    query, initial_docs, evaluation, owner_id=owner_id
                )
                final_docs = correction.docs
                corrected = correction.corrected
                refined_query = correction.refined_query
                correction_error = correction.error

                for key, value in correction_attributes(corrected, correction_error).items():
                    span.set_attribute(key, value)
                if refined_query and get_phoenix_config().capture_llm_content:
                    span.set_attribute(CRAG_REFINED_QUERY, refined_query)

        return CRAGResult(
            documents=final_docs,
            context=build_context(final_docs),
            evaluation=evaluation,
            corrected=corrected,
            refined_query=refined_query,
            original_query=query,
            correction_error=correction_error,
        )
