"""
Retriever - brute-force top-K similarity search.

Every stored document is scored against the query on each call; there is
no ANN index. That keeps stores dumb and makes the ranking exact.

Two kinds of records never reach cosine_similarity:
- missing or malformed embeddings (silently skipped)
- embeddings whose length differs from the query vector (skipped, and
  counted in a warning), which happens when a collection mixes remote
  vectors with 384-d fallback vectors
"""

from __future__ import annotations

import logging

from crag_engine.core.protocols import DocumentStore, EmbeddingProvider
from crag_engine.core.errors import MalformedRecord
from crag_engine.retrieval.document import RetrievalResult, require_embedding
from crag_engine.retrieval.similarity import cosine_similarity

logger = logging.getLogger(__name__)

DEFAULT_TOP_K = 5
PERSONAL_TOP_K = 3


class Retriever:
    """
    Top-K cosine retriever over one DocumentStore.

    Dependencies are INJECTED, not created internally.

    Args:
        store: Collection to scan
        embeddings: Provider used to embed the query
        default_k: k used when the caller passes none (5 shared, 3 personal)
    """

    def __init__(
        self,
        store: DocumentStore,
        embeddings: EmbeddingProvider,
        default_k: int = DEFAULT_TOP_K,
    ):
        self.store = store
        self._embeddings = embeddings
        self.default_k = default_k

    def retrieve_top_k(
        self,
        query: str,
        k: int | None = None,
        owner_id: str | None = None,
    ) -> list[RetrievalResult]:
        """
        Rank documents by cosine similarity to the query.

        Args:
            query: Free-text query
            k: Maximum results (default_k if None)
            owner_id: Restrict the scan to one owner's documents

        Returns:
            At most k results, similarity descending, ties in store order
        """
        k = self.default_k if k is None else k
        if k <= 0:
            return []

        # Empty collection: skip the embedding call entirely
        if self.store.count(owner_id) == 0:
            return []

        query_vector = self._embeddings.embed(query)
        documents = (
            self.store.find_all() if owner_id is None else self.store.find_by_owner(owner_id)
        )

        scored: list[RetrievalResult] = []
        mismatched = 0
        for doc in documents:
            try:
                vector = require_embedding(doc)
            except MalformedRecord as e:
                logger.debug("Skipping record: %s", e)
                continue
            if vector.shape[0] != query_vector.shape[0]:
                mismatched += 1
                continue

            scored.append(
                RetrievalResult(
                    doc_id=doc.doc_id,
                    text=doc.text,
                    metadata=doc.metadata or {},
                    similarity=cosine_similarity(query_vector, vector),
                )
            )

        if mismatched:
            logger.warning(
                "Skipped %d document(s) whose embedding length differs from the query (%d)",
                mismatched,
                query_vector.shape[0],
            )

        # sorted() is stable, so equal scores keep store order
        scored = sorted(scored, key=lambda r: r.similarity, reverse=True)
        return scored[:k]
