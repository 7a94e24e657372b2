"""
Embeddings module - text embedding generation.

1. Protocol (EmbeddingProvider, in core) defines the interface
2. Production implementation (CachedEmbeddings + OpenRouterEmbeddingBackend)
3. Deterministic local implementation (HashEmbeddings), also the fallback
4. Factory function (get_embedding_provider)
"""

from crag_engine.embeddings.cache import (
    EmbeddingCache,
    get_embedding_cache,
    prefix_key,
    sha256_key,
)
from crag_engine.embeddings.decoding import ResponseShape, decode_embedding, detect_shape
from crag_engine.embeddings.hashing import FALLBACK_DIMENSIONS, HashEmbeddings, hash_embedding
from crag_engine.embeddings.openrouter_embeddings import (
    CachedEmbeddings,
    OpenRouterEmbeddingBackend,
    get_embedding_provider,
)

__all__ = [
    # Cache
    "EmbeddingCache",
    "get_embedding_cache",
    "prefix_key",
    "sha256_key",
    # Decoding
    "ResponseShape",
    "decode_embedding",
    "detect_shape",
    # Providers
    "FALLBACK_DIMENSIONS",
    "HashEmbeddings",
    "hash_embedding",
    "CachedEmbeddings",
    "OpenRouterEmbeddingBackend",
    "get_embedding_provider",
]
