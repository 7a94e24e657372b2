"""
Relevance evaluator - LLM judgment with a similarity fallback.

The evaluator asks the completion backend whether the retrieved documents
answer the query, then scrapes a JSON object out of the free-form reply.
When anything goes wrong (no backend, call failure, no JSON, bad JSON,
schema violation) it falls back to the average similarity of the
retrieved documents. It never raises, so the pipeline can always proceed.
"""

from __future__ import annotations

import json
import logging

from crag_engine.core.protocols import CompletionBackend
from crag_engine.crag.prompts import format_evaluation_prompt
from crag_engine.crag.schemas import (
    RELEVANCE_THRESHOLD,
    RelevanceEvaluation,
    RelevanceJudgment,
)
from crag_engine.retrieval.document import RetrievalResult

logger = logging.getLogger(__name__)

NO_DOCUMENTS_REASON = "No documents retrieved"
FALLBACK_REASON = "fallback"


# ---------------------------------------------------------------------------
# PURE HELPERS
# ---------------------------------------------------------------------------


def extract_json_object(text: str) -> str | None:
    """
    Return the first balanced {...} substring of text, or None.

    Braces inside JSON string literals are ignored, so a reason like
    "uses {placeholders}" does not end the object early.
    """
    start = text.find("{")
    if start == -1:
        return None

    depth = 0
    in_string = False
    escaped = False
    for pos in range(start, len(text)):
        char = text[pos]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
        elif char == '"':
            in_string = True
        elif char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth == 0:
                return text[start : pos + 1]
    return None


def parse_judgment(reply: str) -> RelevanceJudgment:
    """
    Strictly parse the evaluator reply.

    Raises:
        ValueError: no JSON object, invalid JSON, or schema violation
            (pydantic's ValidationError is a ValueError)
    """
    payload = extract_json_object(reply)
    if payload is None:
        raise ValueError("No JSON found in response")
    return RelevanceJudgment.model_validate(json.loads(payload))


def similarity_fallback(
    docs: list[RetrievalResult],
    threshold: float = RELEVANCE_THRESHOLD,
) -> RelevanceEvaluation:
    """Judge relevance from the average similarity alone."""
    average = sum(doc.similarity for doc in docs) / len(docs)
    return RelevanceEvaluation(
        is_relevant=average >= threshold,
        score=min(max(average, 0.0), 1.0),
        reason=FALLBACK_REASON,
    )


# ---------------------------------------------------------------------------
# EVALUATOR
# ---------------------------------------------------------------------------


class RelevanceEvaluator:
    """
    LLM-as-judge for retrieval relevance.

    Args:
        completion: Backend to ask, or None to always use the fallback
        threshold: Average similarity needed for the fallback to say relevant
        model_id: Override the backend's default model
    """

    def __init__(
        self,
        completion: CompletionBackend | None,
        threshold: float = RELEVANCE_THRESHOLD,
        model_id: str | None = None,
    ):
        self._completion = completion
        self.threshold = threshold
        self._model_id = model_id

    def evaluate_relevance(
        self,
        query: str,
        docs: list[RetrievalResult],
    ) -> RelevanceEvaluation:
        """
        Judge whether docs answer query.

        Returns:
            Always a well-formed RelevanceEvaluation
        """
        if not docs:
            return RelevanceEvaluation(is_relevant=False, score=0.0, reason=NO_DOCUMENTS_REASON)

        if self._completion is None:
            logger.debug("No completion backend; evaluating by similarity")
            return similarity_fallback(docs, self.threshold)

        try:
            reply = self._completion.complete(
                format_evaluation_prompt(query, docs), self._model_id
            )
        except Exception as e:
            logger.warning("Relevance evaluation call failed, using fallback: %s", e)
            return similarity_fallback(docs, self.threshold)

        try:
            judgment = parse_judgment(reply)
        except (ValueError, RecursionError) as e:
            logger.warning("Could not parse relevance judgment, using fallback: %s", e)
            return similarity_fallback(docs, self.threshold)

        return RelevanceEvaluation(
            is_relevant=judgment.is_relevant,
            score=judgment.score,
            reason=judgment.reason,
        )
