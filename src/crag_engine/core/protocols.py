"""
Core protocols defining contracts for the entire engine.

Every collaborator the CRAG pipeline talks to is described here as a
Protocol, so the pipeline can be wired with production adapters
(OpenRouter, PostgreSQL) or with in-memory fakes in tests:

- EmbeddingProvider: text -> vector (cache + fallback live behind it)
- EmbeddingBackend: one remote embedding call for one model id
- CompletionBackend: one remote chat completion
- DocumentStore: persistence for documents and their embeddings
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Sequence, runtime_checkable

import numpy as np

if TYPE_CHECKING:
    from crag_engine.retrieval.document import Document


# ---------------------------------------------------------------------------
# EMBEDDING PROTOCOLS
# ---------------------------------------------------------------------------


@runtime_checkable
class EmbeddingProvider(Protocol):
    """
    Contract for embedding generation.

    Implementations:
    - CachedEmbeddings (production: remote backend + cache + hash fallback)
    - HashEmbeddings (offline, deterministic)
    """

    def embed(self, text: str) -> np.ndarray:
        """Generate embedding for a single text."""
        ...

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        ...


@runtime_checkable
class EmbeddingBackend(Protocol):
    """
    Contract for a remote embedding service.

    Raises UpstreamUnavailable on any transport or decoding failure.
    """

    def embed(self, text: str, model_id: str) -> Sequence[float]:
        """Embed text with the given model id."""
        ...


# ---------------------------------------------------------------------------
# COMPLETION PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class CompletionBackend(Protocol):
    """
    Contract for a remote LLM completion.

    Used identically by relevance evaluation and query refinement.
    Raises UpstreamUnavailable on any failure.
    """

    def complete(self, prompt: str, model_id: str | None = None) -> str:
        """Return the model's text reply for a single user prompt."""
        ...


# ---------------------------------------------------------------------------
# DOCUMENT STORE PROTOCOL
# ---------------------------------------------------------------------------


@runtime_checkable
class DocumentStore(Protocol):
    """
    Contract for document persistence.

    Implementations:
    - PgDocumentStore (production with PostgreSQL)
    - InMemoryDocumentStore (testing/development)

    doc_id uniqueness is enforced here through upsert semantics.
    """

    def upsert(self, doc: Document) -> Document:
        """Insert or replace a document by doc_id. Returns the stored record."""
        ...

    def find_all(self) -> list[Document]:
        """Return every stored document."""
        ...

    def find_by_owner(self, owner_id: str) -> list[Document]:
        """Return documents belonging to one owner."""
        ...

    def delete_by_id(self, doc_id: str) -> bool:
        """Delete one document. Returns False when nothing was deleted."""
        ...

    def delete_all(self) -> None:
        """Delete every document."""
        ...

    def count(self, owner_id: str | None = None) -> int:
        """Count documents, optionally for a single owner."""
        ...
