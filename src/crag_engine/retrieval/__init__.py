"""
Retrieval module - documents, stores and similarity search.

This module provides:
- Document / PersonalDocument / RetrievalResult: the data models
- cosine_similarity: the scoring function
- PgDocumentStore / InMemoryDocumentStore: store implementations
- get_document_store(): Factory function
- Retriever: full-scan top-K search
"""

from crag_engine.retrieval.document import (
    Document,
    DocumentPreview,
    PersonalDocument,
    RetrievalResult,
    coerce_embedding,
    require_embedding,
)
from crag_engine.retrieval.similarity import cosine_similarity
from crag_engine.retrieval.store import (
    PERSONAL_TABLE,
    SHARED_TABLE,
    DocumentStoreConfig,
    InMemoryDocumentStore,
    PgDocumentStore,
    get_document_store,
)
from crag_engine.retrieval.retriever import DEFAULT_TOP_K, PERSONAL_TOP_K, Retriever

__all__ = [
    # Models
    "Document",
    "DocumentPreview",
    "PersonalDocument",
    "RetrievalResult",
    "coerce_embedding",
    "require_embedding",
    # Scoring
    "cosine_similarity",
    # Stores
    "PERSONAL_TABLE",
    "SHARED_TABLE",
    "DocumentStoreConfig",
    "InMemoryDocumentStore",
    "PgDocumentStore",
    "get_document_store",
    # Retriever
    "DEFAULT_TOP_K",
    "PERSONAL_TOP_K",
    "Retriever",
]
