"""
Document models for the retrieval system.

Document / PersonalDocument are what stores persist.
RetrievalResult is the transient, scored view handed to the pipeline.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from numbers import Real
from typing import Any

import numpy as np

from crag_engine.core.errors import MalformedRecord


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Document:
    """
    A stored unit of retrievable knowledge.

    text is never truncated here; only the embedding path truncates.
    created_at is set on first insert and kept across upserts.
    """
    doc_id: str
    text: str
    embedding: Any = None  # ndarray when well-formed; stores may hand back anything
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=utcnow)
    owner_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization (embedding omitted)."""
        return {
            "docId": self.doc_id,
            "text": self.text,
            "metadata": self.metadata,
            "createdAt": self.created_at.isoformat(),
            "ownerId": self.owner_id,
        }


@dataclass
class PersonalDocument(Document):
    """A Document that belongs to exactly one owner."""

    def __post_init__(self):
        if not self.owner_id:
            raise ValueError("PersonalDocument requires an owner_id")

    @property
    def title(self) -> str:
        return self.metadata.get("title", "Session Summary")


@dataclass
class RetrievalResult:
    """A retrieved document with its similarity to the query."""
    doc_id: str
    text: str
    metadata: dict[str, Any]
    similarity: float

    def to_dict(self) -> dict:
        return {
            "docId": self.doc_id,
            "text": self.text,
            "metadata": self.metadata,
            "similarity": self.similarity,
        }


@dataclass
class DocumentPreview:
    """Listing entry: first 200 characters of a document."""
    doc_id: str
    text: str
    metadata: dict[str, Any]

    PREVIEW_CHARS = 200

    @classmethod
    def from_document(cls, doc: Document) -> "DocumentPreview":
        preview = doc.text[: cls.PREVIEW_CHARS] + "..." if doc.text else ""
        return cls(doc_id=doc.doc_id, text=preview, metadata=doc.metadata or {})


def coerce_embedding(value: Any) -> np.ndarray | None:
    """
    Return value as a 1-D float array, or None if it is not a usable embedding.

    Usable means: a non-empty flat sequence (or array) of real numbers.
    Booleans, strings, nested lists and None are all rejected.
    """
    if value is None:
        return None

    if isinstance(value, np.ndarray):
        if value.ndim != 1 or value.size == 0 or value.dtype.kind not in "iuf":
            return None
        return value.astype(np.float64, copy=False)

    if not isinstance(value, (list, tuple)) or not value:
        return None
    if not all(isinstance(v, Real) and not isinstance(v, bool) for v in value):
        return None
    return np.asarray(value, dtype=np.float64)


def require_embedding(doc: Document) -> np.ndarray:
    """
    The document's embedding as a float array.

    Raises:
        MalformedRecord: embedding missing or not a usable vector
    """
    vector = coerce_embedding(doc.embedding)
    if vector is None:
        raise MalformedRecord(f"Document {doc.doc_id} has no usable embedding")
    return vector
