"""
Deterministic local embeddings - the offline fallback.

Used when no embedding backend is configured or every remote model id
failed. Each whitespace token lands in a bucket (sum of its code points
modulo 384) weighted by 1/(position+1); the vector is then L2-normalized.
Crude, but identical text always yields the identical vector and texts
with no shared tokens score low against each other.
"""

import numpy as np

FALLBACK_DIMENSIONS = 384


def hash_embedding(text: str, dimensions: int = FALLBACK_DIMENSIONS) -> np.ndarray:
    """Build the bag-of-buckets vector for text. Zero vector stays zero."""
    vector = np.zeros(dimensions, dtype=np.float64)

    for position, token in enumerate(text.lower().split()):
        bucket = sum(ord(char) for char in token) % dimensions
        vector[bucket] += 1.0 / (position + 1)

    magnitude = np.linalg.norm(vector)
    if magnitude > 0:
        vector = vector / magnitude
    return vector


class HashEmbeddings:
    """
    EmbeddingProvider backed only by hash_embedding.

    No API calls. Good for tests, local development and as the
    fallback inside CachedEmbeddings.
    """

    def __init__(self, dimensions: int = FALLBACK_DIMENSIONS):
        self._dimensions = dimensions

    @property
    def dimensions(self) -> int:
        return self._dimensions

    def embed(self, text: str) -> np.ndarray:
        return hash_embedding(text, self._dimensions)

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        return [self.embed(text) for text in texts]
