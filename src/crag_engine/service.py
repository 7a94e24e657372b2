"""
CRAG service - the knowledge base facade.

Everything the response layer needs goes through CragService:
- perform_crag: full corrective retrieval over the shared knowledge base
- search_personal: bare top-K over one user's personal memory
- store / delete / clear / count / list_preview: shared-collection
  management, thin pass-throughs with embedding generation on store
- store_summary / list_summaries / delete_summary: personal memory

Management operations propagate StoreError; the retrieval entry points
follow the pipeline's fail-open rules.
"""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Iterator

from crag_engine.config import CragConfig
from crag_engine.core.errors import (
    CragError,
    DimensionMismatchError,
    DocumentNotFoundError,
    InputError,
    StoreError,
)
from crag_engine.core.protocols import CompletionBackend, DocumentStore, EmbeddingProvider
from crag_engine.crag.corrector import QueryCorrector
from crag_engine.crag.evaluator import RelevanceEvaluator
from crag_engine.crag.pipeline import CRAGPipeline
from crag_engine.crag.schemas import CRAGResult
from crag_engine.embeddings.cache import EmbeddingCache
from crag_engine.retrieval.document import (
    Document,
    DocumentPreview,
    PersonalDocument,
    RetrievalResult,
    coerce_embedding,
    utcnow,
)
from crag_engine.retrieval.retriever import Retriever

logger = logging.getLogger(__name__)

SUMMARY_TYPE = "session_summary"
DEFAULT_SUMMARY_TITLE = "Session Summary"
SUMMARY_LIST_LIMIT = 50


@contextmanager
def _store_errors(action: str) -> Iterator[None]:
    """Re-raise foreign store exceptions as StoreError."""
    try:
        yield
    except CragError:
        raise
    except Exception as e:
        raise StoreError(f"Failed to {action}: {e}") from e


class CragService:
    """
    Knowledge base with corrective retrieval.

    Args:
        store: Shared document collection
        personal_store: Personal memory collection (never cross-joined)
        embeddings: Provider used for documents and queries
        completion: LLM backend for evaluation/refinement, or None
        config: Engine settings (defaults if not provided)
        cache: Embedding cache cleared by clear(); taken from the
            provider when it has one
    """

    def __init__(
        self,
        store: DocumentStore,
        personal_store: DocumentStore,
        embeddings: EmbeddingProvider,
        completion: CompletionBackend | None = None,
        config: CragConfig | None = None,
        cache: EmbeddingCache | None = None,
    ):
        self.config = config or CragConfig()
        self.document_store = store
        self.personal_store = personal_store
        self.embeddings = embeddings
        self.cache = cache if cache is not None else getattr(embeddings, "cache", None)

        threshold = self.config.relevance_threshold
        retriever = Retriever(store, embeddings, default_k=self.config.top_k)
        self.pipeline = CRAGPipeline(
            retriever,
            evaluator=RelevanceEvaluator(completion, threshold=threshold),
            corrector=QueryCorrector(retriever, completion, threshold=threshold),
            threshold=threshold,
        )
        self.personal_pipeline = CRAGPipeline(
            Retriever(personal_store, embeddings, default_k=self.config.personal_top_k),
            threshold=threshold,
        )

    # -----------------------------------------------------------------------
    # RETRIEVAL ENTRY POINTS
    # -----------------------------------------------------------------------

    def perform_crag(self, query: str, enable_correction: bool = True) -> CRAGResult:
        """Full CRAG over the shared knowledge base. Never raises."""
        return self.pipeline.perform_crag(query, enable_correction=enable_correction)

    def search_personal(
        self,
        owner_id: str,
        query: str,
        k: int | None = None,
    ) -> list[RetrievalResult]:
        """
        Top-K over one owner's personal memory; no evaluation or correction.

        Raises:
            InputError: owner_id is empty (would scan every owner's memory)
        """
        if not owner_id:
            raise InputError("owner_id is required for personal search")
        return self.personal_pipeline.retrieve(query, k=k, owner_id=owner_id)

    # -----------------------------------------------------------------------
    # SHARED COLLECTION MANAGEMENT
    # -----------------------------------------------------------------------

    def store(
        self,
        text: str,
        doc_id: str | None = None,
        metadata: dict | None = None,
    ) -> Document:
        """
        Embed and upsert a document into the shared collection.

        Raises:
            EmptyInputError: text is blank
            DimensionMismatchError: strict_dimensions is on and the vector
                length differs from the collection's
            StoreError: the write failed
        """
        doc_id = doc_id or uuid.uuid4().hex
        embedding = self._embed_for_storage(text, self.document_store, owner_id=None)

        doc = Document(
            doc_id=doc_id,
            text=text,
            embedding=embedding,
            metadata={**(metadata or {}), "storedAt": utcnow().isoformat(), "docId": doc_id},
        )
        with _store_errors("store document"):
            stored = self.document_store.upsert(doc)
        logger.info("Stored document %s (%d dims)", doc_id, embedding.shape[0])
        return stored

    def delete(self, doc_id: str) -> bool:
        """Delete one shared document. False when it did not exist."""
        with _store_errors("delete document"):
            return self.document_store.delete_by_id(doc_id)

    def clear(self) -> None:
        """Delete every shared document and drop the embedding cache."""
        with _store_errors("clear documents"):
            self.document_store.delete_all()
        if self.cache is not None:
            self.cache.clear()
        logger.info("All documents cleared")

    def count(self) -> int:
        with _store_errors("count documents"):
            return self.document_store.count()

    def list_preview(self) -> list[DocumentPreview]:
        """Every shared document as a 200-character preview."""
        with _store_errors("list documents"):
            docs = self.document_store.find_all()
        return [DocumentPreview.from_document(doc) for doc in docs]

    # -----------------------------------------------------------------------
    # PERSONAL MEMORY
    # -----------------------------------------------------------------------

    def store_summary(
        self,
        owner_id: str,
        summary: str,
        title: str | None = None,
        messages_count: int = 0,
    ) -> PersonalDocument:
        """Embed and store a session summary in the owner's memory."""
        embedding = self._embed_for_storage(summary, self.personal_store, owner_id=owner_id)
        doc = PersonalDocument(
            doc_id=uuid.uuid4().hex,
            text=summary,
            embedding=embedding,
            metadata={
                "title": title or DEFAULT_SUMMARY_TITLE,
                "type": SUMMARY_TYPE,
                "messagesCount": messages_count,
            },
            owner_id=owner_id,
        )
        with _store_errors("store summary"):
            return self.personal_store.upsert(doc)

    def list_summaries(self, owner_id: str, limit: int = SUMMARY_LIST_LIMIT) -> list[Document]:
        """The owner's summaries, newest first."""
        with _store_errors("list summaries"):
            docs = self.personal_store.find_by_owner(owner_id)
        docs = sorted(docs, key=lambda d: d.created_at, reverse=True)
        return docs[:limit]

    def delete_summary(self, owner_id: str, summary_id: str) -> None:
        """
        Delete one of the owner's summaries.

        Raises:
            DocumentNotFoundError: no such summary for this owner
        """
        with _store_errors("delete summary"):
            owned = {d.doc_id for d in self.personal_store.find_by_owner(owner_id)}
            if summary_id not in owned or not self.personal_store.delete_by_id(summary_id):
                raise DocumentNotFoundError(
                    "Summary not found or you do not have permission to delete it"
                )

    # -----------------------------------------------------------------------
    # HELPERS
    # -----------------------------------------------------------------------

    def _embed_for_storage(self, text: str, store: DocumentStore, owner_id: str | None):
        vector = coerce_embedding(self.embeddings.embed(text))
        if vector is None:
            raise StoreError("Embedding must be a non-empty array of numbers")

        if self.config.strict_dimensions:
            expected = self._collection_dimension(store, owner_id)
            if expected is not None and expected != vector.shape[0]:
                raise DimensionMismatchError(expected, vector.shape[0])
        return vector

    @staticmethod
    def _collection_dimension(store: DocumentStore, owner_id: str | None) -> int | None:
        docs = store.find_all() if owner_id is None else store.find_by_owner(owner_id)
        for doc in docs:
            vector = coerce_embedding(doc.embedding)
            if vector is not None:
                return vector.shape[0]
        return None


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_crag_service(config: CragConfig | None = None) -> CragService:
    """
    Build a CragService from configuration.

    Without OPENROUTER_API_KEY the service still works: embeddings come
    from the local fallback and relevance is judged by similarity alone.
    """
    from crag_engine.config import get_config
    from crag_engine.embeddings import get_embedding_cache, get_embedding_provider
    from crag_engine.retrieval.store import (
        PERSONAL_TABLE,
        SHARED_TABLE,
        DocumentStoreConfig,
        get_document_store,
    )

    config = config or get_config()

    cache = get_embedding_cache(config.cache_key, config.cache_max_entries)
    embeddings = get_embedding_provider(config=config, cache=cache)

    completion = None
    if config.llm_enabled:
        from crag_engine.llm import OpenRouterCompletionBackend, build_openai_client

        completion = OpenRouterCompletionBackend(
            build_openai_client(config), model=config.completion_model
        )
    else:
        logger.warning("OPENROUTER_API_KEY is not set; CRAG runs without LLM evaluation")

    store = get_document_store(
        config.use_postgres,
        DocumentStoreConfig(connection_string=config.database_url, table_name=SHARED_TABLE),
    )
    personal_store = get_document_store(
        config.use_postgres,
        DocumentStoreConfig(connection_string=config.database_url, table_name=PERSONAL_TABLE),
    )

    return CragService(
        store=store,
        personal_store=personal_store,
        embeddings=embeddings,
        completion=completion,
        config=config,
        cache=cache,
    )
