"""
CRAG prompts - externalized for versioning and testing.

Both formatters are pure functions: same inputs, same prompt. Tests can
check prompt content without any API call.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from crag_engine.crag.schemas import RelevanceEvaluation
    from crag_engine.retrieval.document import RetrievalResult

DOC_PREVIEW_CHARS = 500


# ---------------------------------------------------------------------------
# RELEVANCE EVALUATION
# ---------------------------------------------------------------------------


def format_evaluation_prompt(query: str, docs: list[RetrievalResult]) -> str:
    """
    Ask the judge whether the retrieved documents answer the query.

    Each document contributes its first 500 characters and its similarity.
    """
    docs_text = "\n\n".join(
        f"Document {idx} (similarity: {doc.similarity:.3f}):\n{doc.text[:DOC_PREVIEW_CHARS]}..."
        for idx, doc in enumerate(docs, start=1)
    )

    return f"""You are evaluating whether retrieved documents are relevant to a user query.

User Query: {query}

Retrieved Documents:
{docs_text}

Evaluate the relevance of these documents to the query. Consider:
1. Do the documents contain information directly related to the query?
2. Are the documents useful for answering the query?
3. Is the information accurate and up-to-date?

Respond in JSON format:
{{
  "isRelevant": true/false,
  "score": 0.0-1.0,
  "reason": "brief explanation"
}}"""


# ---------------------------------------------------------------------------
# QUERY REFINEMENT
# ---------------------------------------------------------------------------


def format_refinement_prompt(query: str, evaluation: RelevanceEvaluation) -> str:
    """Ask for a single rewritten search query, nothing else."""
    return f"""The initial retrieval for this query did not return relevant documents.

Original Query: {query}
Evaluation: {evaluation.reason}
Relevance Score: {evaluation.score:.2f}

Generate a refined search query that would better retrieve relevant documents. Focus on:
1. Key terms and concepts from the original query
2. Synonyms or related terms
3. More specific or more general terms as needed

Respond with ONLY the refined query, nothing else:"""
