"""
Embedding cache - avoids repeated remote calls for repeated inputs.

The cache is an explicit instance injected into CachedEmbeddings rather
than module-level state. Its key function is pluggable:

- sha256_key (default): hashes the full text, collision-free in practice.
- prefix_key: first 100 characters of the text. Two long texts sharing the
  same first 100 characters collide and get the same vector back. Kept only
  for compatibility with collections built under that scheme.

No locking: concurrent writers on one key store equivalent vectors, so the
last writer wins harmlessly. LRU bookkeeping tolerates an entry vanishing
between lookup and reordering.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from typing import Callable

import numpy as np

PREFIX_KEY_LENGTH = 100

KeyFunction = Callable[[str], str]


def sha256_key(text: str) -> str:
    """Cache key from a hash of the full text."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def prefix_key(text: str) -> str:
    """Cache key from the first 100 characters. Collision-prone."""
    return text[:PREFIX_KEY_LENGTH]


KEY_FUNCTIONS: dict[str, KeyFunction] = {
    "sha256": sha256_key,
    "prefix": prefix_key,
}


class EmbeddingCache:
    """
    Key -> vector cache with an optional LRU bound.

    Args:
        key_fn: Maps text to a cache key
        max_entries: Evict least recently used entries beyond this size;
            0 means unbounded (lives as long as the process)
    """

    def __init__(self, key_fn: KeyFunction = sha256_key, max_entries: int = 0):
        self._key_fn = key_fn
        self._max_entries = max_entries
        self._entries: OrderedDict[str, np.ndarray] = OrderedDict()

    def key_for(self, text: str) -> str:
        return self._key_fn(text)

    def get(self, text: str) -> np.ndarray | None:
        key = self._key_fn(text)
        vector = self._entries.get(key)
        if vector is not None and self._max_entries:
            self._touch(key)
        return vector

    def put(self, text: str, vector: np.ndarray) -> None:
        key = self._key_fn(text)
        self._entries[key] = vector
        if self._max_entries:
            self._touch(key)
            self._evict()

    def _touch(self, key: str) -> None:
        try:
            self._entries.move_to_end(key)
        except KeyError:
            # evicted by a concurrent put since the lookup
            pass

    def _evict(self) -> None:
        while len(self._entries) > self._max_entries:
            try:
                self._entries.popitem(last=False)
            except KeyError:
                return

    def clear(self) -> None:
        """Drop every entry. Called when the knowledge base is cleared."""
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, text: str) -> bool:
        return self._key_fn(text) in self._entries


def get_embedding_cache(key: str = "sha256", max_entries: int = 0) -> EmbeddingCache:
    """
    Factory function for a cache with a named key strategy.

    Args:
        key: "sha256" or "prefix"
        max_entries: LRU bound (0 = unbounded)
    """
    try:
        key_fn = KEY_FUNCTIONS[key]
    except KeyError:
        raise ValueError(f"Unknown cache key strategy: {key!r}") from None
    return EmbeddingCache(key_fn=key_fn, max_entries=max_entries)
