"""
Document store implementations.

Pattern: Protocol (core.protocols.DocumentStore) -> Production impl ->
Test double -> Factory

1. DocumentStoreConfig - Configuration dataclass
2. PgDocumentStore - PostgreSQL via psycopg (production)
3. InMemoryDocumentStore - dict-backed store (testing/development)
4. get_document_store() - Factory function

Stores only persist. They never score: similarity search is a full scan
done by the Retriever, so embeddings are kept as plain float arrays of
whatever length the embedding path produced.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace

import numpy as np

from crag_engine.core.errors import StoreError
from crag_engine.retrieval.document import Document, PersonalDocument

logger = logging.getLogger(__name__)

# Optional: Only import psycopg if available (for local dev without postgres)
try:
    import psycopg
    from psycopg.types.json import Jsonb

    PSYCOPG_AVAILABLE = True
except ImportError:
    PSYCOPG_AVAILABLE = False


# ---------------------------------------------------------------------------
# CONFIGURATION
# ---------------------------------------------------------------------------


@dataclass
class DocumentStoreConfig:
    """Configuration for the document store."""

    connection_string: str = "postgresql://localhost/crag"
    table_name: str = "documents"


SHARED_TABLE = "documents"
PERSONAL_TABLE = "personal_rag_docs"


# ---------------------------------------------------------------------------
# POSTGRES STORE (Production)
# ---------------------------------------------------------------------------


class PgDocumentStore:
    """
    PostgreSQL document store.

    Embeddings are stored as DOUBLE PRECISION[] (no fixed dimension), so
    vectors from the remote model and from the local fallback can coexist;
    the Retriever's dimension guard decides what is comparable.
    All psycopg errors surface as StoreError.
    """

    def __init__(self, config: DocumentStoreConfig):
        self.config = config
        self._conn = None

    def connect(self) -> None:
        """Establish database connection."""
        if not PSYCOPG_AVAILABLE:
            raise ImportError(
                "psycopg not available. Install with: pip install 'crag-engine[postgres]'"
            )
        try:
            self._conn = psycopg.connect(self.config.connection_string, autocommit=True)
        except psycopg.Error as e:
            raise StoreError(f"Could not connect to document store: {e}") from e

    def close(self) -> None:
        """Close database connection."""
        if self._conn:
            self._conn.close()
            self._conn = None

    def _execute(self, sql: str, params: tuple = ()):
        if not self._conn:
            self.connect()
        try:
            return self._conn.execute(sql, params)
        except psycopg.Error as e:
            raise StoreError(f"Document store operation failed: {e}") from e

    def create_schema(self) -> None:
        """Create the documents table and indexes."""
        table = self.config.table_name
        self._execute(
            f"""
            CREATE TABLE IF NOT EXISTS {table} (
                doc_id TEXT PRIMARY KEY,
                text TEXT NOT NULL,
                embedding DOUBLE PRECISION[],
                metadata JSONB NOT NULL DEFAULT '{{}}'::jsonb,
                owner_id TEXT,
                created_at TIMESTAMPTZ NOT NULL DEFAULT now()
            )
        """
        )
        self._execute(
            f"""
            CREATE INDEX IF NOT EXISTS {table}_owner_idx
            ON {table} (owner_id, created_at DESC)
        """
        )

    def upsert(self, doc: Document) -> Document:
        """Insert or update by doc_id. created_at of an existing row is kept."""
        embedding = None if doc.embedding is None else np.asarray(doc.embedding).tolist()
        row = self._execute(
            f"""
            INSERT INTO {self.config.table_name}
                (doc_id, text, embedding, metadata, owner_id, created_at)
            VALUES (%s, %s, %s, %s, %s, %s)
            ON CONFLICT (doc_id) DO UPDATE SET
                text = EXCLUDED.text,
                embedding = EXCLUDED.embedding,
                metadata = EXCLUDED.metadata,
                owner_id = EXCLUDED.owner_id
            RETURNING created_at
            """,
            (doc.doc_id, doc.text, embedding, Jsonb(doc.metadata), doc.owner_id, doc.created_at),
        ).fetchone()
        return replace(doc, created_at=row[0]) if row else doc

    def find_all(self) -> list[Document]:
        rows = self._execute(
            f"""
            SELECT doc_id, text, embedding, metadata, owner_id, created_at
            FROM {self.config.table_name}
            ORDER BY created_at
            """
        ).fetchall()
        return [self._row_to_document(row) for row in rows]

    def find_by_owner(self, owner_id: str) -> list[Document]:
        rows = self._execute(
            f"""
            SELECT doc_id, text, embedding, metadata, owner_id, created_at
            FROM {self.config.table_name}
            WHERE owner_id = %s
            ORDER BY created_at
            """,
            (owner_id,),
        ).fetchall()
        return [self._row_to_document(row) for row in rows]

    def delete_by_id(self, doc_id: str) -> bool:
        cursor = self._execute(
            f"DELETE FROM {self.config.table_name} WHERE doc_id = %s",
            (doc_id,),
        )
        return cursor.rowcount > 0

    def delete_all(self) -> None:
        self._execute(f"DELETE FROM {self.config.table_name}")

    def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            row = self._execute(f"SELECT count(*) FROM {self.config.table_name}").fetchone()
        else:
            row = self._execute(
                f"SELECT count(*) FROM {self.config.table_name} WHERE owner_id = %s",
                (owner_id,),
            ).fetchone()
        return int(row[0]) if row else 0

    @staticmethod
    def _row_to_document(row) -> Document:
        doc_id, text, embedding, metadata, owner_id, created_at = row
        cls = PersonalDocument if owner_id else Document
        return cls(
            doc_id=doc_id,
            text=text,
            embedding=embedding,
            metadata=metadata or {},
            owner_id=owner_id,
            created_at=created_at,
        )


# ---------------------------------------------------------------------------
# IN-MEMORY STORE (Testing/Development)
# ---------------------------------------------------------------------------


class InMemoryDocumentStore:
    """
    In-memory document store for development/testing.

    Implements the same interface as PgDocumentStore but doesn't require
    Postgres. Iteration order is insertion order; an upsert keeps the
    document's original position and created_at.
    """

    def __init__(self):
        self._documents: dict[str, Document] = {}

    def connect(self) -> None:
        """No-op for in-memory store."""
        pass

    def close(self) -> None:
        """No-op for in-memory store."""
        pass

    def create_schema(self) -> None:
        """No-op for in-memory store."""
        pass

    def upsert(self, doc: Document) -> Document:
        existing = self._documents.get(doc.doc_id)
        if existing is not None:
            doc = replace(doc, created_at=existing.created_at)
        self._documents[doc.doc_id] = doc
        return doc

    def find_all(self) -> list[Document]:
        return list(self._documents.values())

    def find_by_owner(self, owner_id: str) -> list[Document]:
        return [doc for doc in self._documents.values() if doc.owner_id == owner_id]

    def delete_by_id(self, doc_id: str) -> bool:
        return self._documents.pop(doc_id, None) is not None

    def delete_all(self) -> None:
        self._documents.clear()

    def count(self, owner_id: str | None = None) -> int:
        if owner_id is None:
            return len(self._documents)
        return len(self.find_by_owner(owner_id))


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


def get_document_store(
    use_postgres: bool = False,
    config: DocumentStoreConfig | None = None,
) -> PgDocumentStore | InMemoryDocumentStore:
    """
    Factory function to get the appropriate document store.

    Args:
        use_postgres: Use PostgreSQL store (default: False for dev)
        config: Store configuration (uses defaults if not provided)

    Returns:
        DocumentStore implementation
    """
    if use_postgres and PSYCOPG_AVAILABLE:
        store = PgDocumentStore(config or DocumentStoreConfig())
        store.create_schema()
        return store

    if use_postgres:
        logger.warning("psycopg not installed; falling back to in-memory document store")
    return InMemoryDocumentStore()
