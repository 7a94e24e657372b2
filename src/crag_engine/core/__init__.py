"""
Core module - shared protocols and errors for the engine.

USAGE:
------
from crag_engine.core import DocumentStore, EmbeddingProvider

class MyStore:
    '''Implements DocumentStore protocol.'''
    ...
"""

from crag_engine.core.errors import (
    CragError,
    InputError,
    EmptyInputError,
    UpstreamUnavailable,
    MalformedEmbeddingResponse,
    MalformedRecord,
    DimensionMismatchError,
    StoreError,
    DocumentNotFoundError,
)
from crag_engine.core.protocols import (
    EmbeddingProvider,
    EmbeddingBackend,
    CompletionBackend,
    DocumentStore,
)

__all__ = [
    # Protocols
    "EmbeddingProvider",
    "EmbeddingBackend",
    "CompletionBackend",
    "DocumentStore",
    # Errors
    "CragError",
    "InputError",
    "EmptyInputError",
    "UpstreamUnavailable",
    "MalformedEmbeddingResponse",
    "MalformedRecord",
    "DimensionMismatchError",
    "StoreError",
    "DocumentNotFoundError",
]
