"""
Unit Tests for the Relevance Evaluator

The completion backend is always a MagicMock; the evaluator must return a
well-formed RelevanceEvaluation whatever the backend does.
"""

import json

import pytest
from unittest.mock import MagicMock
from pydantic import ValidationError

from crag_engine.core.errors import UpstreamUnavailable
from crag_engine.crag import (
    FALLBACK_REASON,
    NO_DOCUMENTS_REASON,
    RelevanceEvaluation,
    RelevanceEvaluator,
    RelevanceJudgment,
    extract_json_object,
    format_evaluation_prompt,
    parse_judgment,
    similarity_fallback,
)
from crag_engine.retrieval import RetrievalResult


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


def _docs(*similarities):
    return [
        RetrievalResult(doc_id=f"d{i}", text=f"document {i}", metadata={}, similarity=s)
        for i, s in enumerate(similarities, start=1)
    ]


@pytest.fixture
def completion():
    backend = MagicMock()
    backend.complete.return_value = '{"isRelevant": true, "score": 0.9, "reason": "on topic"}'
    return backend


# ---------------------------------------------------------------------------
# JSON EXTRACTION
# ---------------------------------------------------------------------------


class TestExtractJsonObject:
    """Test scraping a JSON object out of free-form text."""

    def test_plain_object(self):
        assert extract_json_object('{"a": 1}') == '{"a": 1}'

    def test_surrounding_prose(self):
        text = 'Sure! Here is my answer:\n{"a": 1}\nHope this helps.'
        assert extract_json_object(text) == '{"a": 1}'

    def test_nested_object(self):
        text = 'x {"a": {"b": 2}} y'
        assert json.loads(extract_json_object(text)) == {"a": {"b": 2}}

    def test_braces_inside_strings(self):
        text = '{"reason": "mentions {placeholders} and }"} trailing }'
        assert json.loads(extract_json_object(text))["reason"] == "mentions {placeholders} and }"

    def test_escaped_quote_inside_string(self):
        text = r'{"reason": "said \"hi}\""}'
        assert json.loads(extract_json_object(text))["reason"] == 'said "hi}"'

    def test_first_object_wins(self):
        assert extract_json_object('{"a": 1} then {"b": 2}') == '{"a": 1}'

    @pytest.mark.parametrize("text", ["no json here", "{unclosed", ""])
    def test_none_when_missing(self, text):
        assert extract_json_object(text) is None


# ---------------------------------------------------------------------------
# STRICT PARSING
# ---------------------------------------------------------------------------


class TestParseJudgment:
    """Test the pydantic judgment schema."""

    def test_valid(self):
        judgment = parse_judgment('{"isRelevant": false, "score": 0.25, "reason": "off"}')
        assert judgment == RelevanceJudgment(is_relevant=False, score=0.25, reason="off")

    @pytest.mark.parametrize(
        "reply",
        [
            '{"isRelevant": true, "score": 1.5, "reason": "x"}',
            '{"isRelevant": true, "score": -0.1, "reason": "x"}',
            '{"isRelevant": true, "score": 0.5}',
            '{"score": 0.5, "reason": "x"}',
            '{"isRelevant": true, "score": "high", "reason": "x"}',
            '{"isRelevant": "yes", "score": 0.9, "reason": "x"}',
            '{"isRelevant": 1, "score": 0.9, "reason": "x"}',
            '{"isRelevant": true, "score": "0.9", "reason": "x"}',
        ],
    )
    def test_schema_violations(self, reply):
        with pytest.raises(ValidationError):
            parse_judgment(reply)

    def test_integer_score_accepted(self):
        assert parse_judgment('{"isRelevant": true, "score": 1, "reason": "x"}').score == 1.0

    def test_no_json(self):
        with pytest.raises(ValueError, match="No JSON"):
            parse_judgment("I think they are relevant.")

    def test_invalid_json(self):
        with pytest.raises(ValueError):
            parse_judgment("{isRelevant: yes}")


# ---------------------------------------------------------------------------
# SIMILARITY FALLBACK
# ---------------------------------------------------------------------------


class TestSimilarityFallback:
    """Test the average-similarity judgment."""

    def test_above_threshold(self):
        evaluation = similarity_fallback(_docs(0.8, 0.9))

        assert evaluation.is_relevant is True
        assert evaluation.score == pytest.approx(0.85)
        assert evaluation.reason == FALLBACK_REASON

    def test_below_threshold(self):
        assert similarity_fallback(_docs(0.1, 0.3)).is_relevant is False

    def test_threshold_is_inclusive(self):
        assert similarity_fallback(_docs(0.7)).is_relevant is True

    def test_score_clamped(self):
        assert similarity_fallback(_docs(-0.5, -0.3)).score == 0.0


# ---------------------------------------------------------------------------
# EVALUATOR
# ---------------------------------------------------------------------------


class TestRelevanceEvaluator:
    """Test RelevanceEvaluator.evaluate_relevance."""

    def test_no_documents(self, completion):
        evaluation = RelevanceEvaluator(completion).evaluate_relevance("q", [])

        assert evaluation == RelevanceEvaluation(False, 0.0, NO_DOCUMENTS_REASON)
        completion.complete.assert_not_called()

    def test_uses_llm_judgment(self, completion):
        evaluation = RelevanceEvaluator(completion).evaluate_relevance("q", _docs(0.1))

        assert evaluation.is_relevant is True
        assert evaluation.score == 0.9
        assert evaluation.reason == "on topic"

    def test_prompt_contains_query_and_docs(self, completion):
        docs = _docs(0.42)
        RelevanceEvaluator(completion, model_id="judge").evaluate_relevance("my query", docs)

        prompt, model_id = completion.complete.call_args.args
        assert prompt == format_evaluation_prompt("my query", docs)
        assert "my query" in prompt
        assert "similarity: 0.420" in prompt
        assert model_id == "judge"

    def test_prompt_truncates_documents(self):
        docs = [RetrievalResult(doc_id="x", text="z" * 2000, metadata={}, similarity=0.5)]
        prompt = format_evaluation_prompt("q", docs)
        assert "z" * 500 + "..." in prompt
        assert "z" * 501 not in prompt

    def test_no_backend_uses_fallback(self):
        evaluation = RelevanceEvaluator(None).evaluate_relevance("q", _docs(0.9))
        assert evaluation.reason == FALLBACK_REASON
        assert evaluation.is_relevant is True

    def test_backend_error_uses_fallback(self, completion):
        completion.complete.side_effect = UpstreamUnavailable("429")

        evaluation = RelevanceEvaluator(completion).evaluate_relevance("q", _docs(0.2, 0.4))

        assert evaluation.reason == FALLBACK_REASON
        assert evaluation.score == pytest.approx(0.3)
        assert evaluation.is_relevant is False

    @pytest.mark.parametrize(
        "reply",
        [
            "I cannot answer in JSON.",
            '{"isRelevant": true, "score": 7, "reason": "x"}',
            '{"isRelevant": true}',
            "{broken",
            '{"isRelevant": "yes", "score": 0.9, "reason": "r"}',
            '{"isRelevant": true, "score": "0.9", "reason": "r"}',
        ],
    )
    def test_bad_reply_uses_fallback(self, completion, reply):
        completion.complete.return_value = reply

        evaluation = RelevanceEvaluator(completion).evaluate_relevance("q", _docs(0.75))

        assert evaluation.reason == FALLBACK_REASON
        assert 0.0 <= evaluation.score <= 1.0

    def test_deeply_nested_reply_uses_fallback(self, completion):
        completion.complete.return_value = '{"a":' * 100_000 + "1" + "}" * 100_000

        evaluation = RelevanceEvaluator(completion).evaluate_relevance("q", _docs(0.75))

        assert evaluation.reason == FALLBACK_REASON
        assert evaluation.is_relevant is True

    def test_custom_threshold_applies_to_fallback(self):
        evaluation = RelevanceEvaluator(None, threshold=0.5).evaluate_relevance("q", _docs(0.6))
        assert evaluation.is_relevant is True


class TestRelevanceEvaluation:
    """Test the passes() rule shared by pipeline and corrector."""

    def test_passes_requires_both(self):
        assert RelevanceEvaluation(True, 0.7, "").passes() is True
        assert RelevanceEvaluation(True, 0.69, "").passes() is False
        assert RelevanceEvaluation(False, 0.95, "").passes() is False

    def test_to_dict(self):
        data = RelevanceEvaluation(True, 0.8, "ok").to_dict()
        assert data == {"isRelevant": True, "score": 0.8, "reason": "ok"}
