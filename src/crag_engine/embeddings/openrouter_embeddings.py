"""
Embeddings Module - Single Responsibility: Generate text embeddings.

Layers, outermost first:
1. CachedEmbeddings - the EmbeddingProvider the rest of the engine uses.
   Validates input, consults the cache, walks the model id list, falls
   back to hash embeddings, caches whatever it returns.
2. OpenRouterEmbeddingBackend - one remote call for one model id.
3. decode_embedding - turns the raw reply into a vector.

The provider never raises for upstream trouble; only empty input escapes.
"""

from __future__ import annotations

import logging
from typing import Sequence

import numpy as np
from openai import OpenAI, OpenAIError

from crag_engine.config import DEFAULT_EMBEDDING_MODELS, CragConfig
from crag_engine.core.errors import EmptyInputError, UpstreamUnavailable
from crag_engine.core.protocols import EmbeddingBackend, EmbeddingProvider
from crag_engine.embeddings.cache import EmbeddingCache, get_embedding_cache
from crag_engine.embeddings.decoding import decode_embedding
from crag_engine.embeddings.hashing import HashEmbeddings

logger = logging.getLogger(__name__)

DEFAULT_MAX_INPUT_CHARS = 8000


class OpenRouterEmbeddingBackend:
    """
    Remote embedding backend using the OpenAI SDK against OpenRouter.

    The raw HTTP body is decoded by decode_embedding instead of the SDK's
    typed model, because gateways return more than one reply shape.
    """

    def __init__(self, client: OpenAI):
        self._client = client

    def embed(self, text: str, model_id: str) -> np.ndarray:
        try:
            raw = self._client.embeddings.with_raw_response.create(
                model=model_id,
                input=text,
                encoding_format="float",
            )
            payload = raw.http_response.json()
        except (OpenAIError, ValueError) as e:
            raise UpstreamUnavailable(f"Embedding call failed ({model_id}): {e}") from e

        return decode_embedding(payload)


class CachedEmbeddings:
    """
    Production embedding provider: cache, ordered model ids, hash fallback.

    Args:
        backend: Remote backend, or None to always use the fallback
        cache: Injected cache instance (shared across requests)
        model_ids: Model ids tried once each, in order
        max_input_chars: Text is truncated to this length before the remote
            call; the caller's text is never modified
        fallback: Local provider used when the backend is unusable
    """

    def __init__(
        self,
        backend: EmbeddingBackend | None,
        cache: EmbeddingCache | None = None,
        model_ids: Sequence[str] = DEFAULT_EMBEDDING_MODELS,
        max_input_chars: int = DEFAULT_MAX_INPUT_CHARS,
        fallback: EmbeddingProvider | None = None,
    ):
        self._backend = backend
        self.cache = cache if cache is not None else EmbeddingCache()
        self._model_ids = tuple(model_ids)
        self._max_input_chars = max_input_chars
        self._fallback = fallback or HashEmbeddings()

    def embed(self, text: str) -> np.ndarray:
        """
        Generate embedding for a single text.

        Raises:
            EmptyInputError: text is empty or whitespace only
        """
        if not text or not text.strip():
            raise EmptyInputError()

        cached = self.cache.get(text)
        if cached is not None:
            logger.debug("Embedding cache hit")
            return cached

        vector = self._embed_remote(text)
        if vector is None:
            vector = self._fallback.embed(text)

        self.cache.put(text, vector)
        return vector

    def embed_batch(self, texts: list[str]) -> list[np.ndarray]:
        """Generate embeddings for multiple texts."""
        return [self.embed(text) for text in texts]

    def _embed_remote(self, text: str) -> np.ndarray | None:
        if self._backend is None:
            logger.debug("No embedding backend configured, using fallback")
            return None

        truncated = text[: self._max_input_chars]
        for model_id in self._model_ids:
            try:
                vector = self._backend.embed(truncated, model_id)
            except Exception as e:
                logger.info("Embedding model %s failed: %s", model_id, e)
                continue
            logger.info("Generated embedding using model: %s", model_id)
            return np.asarray(vector, dtype=np.float64)

        logger.warning("All embedding models failed, using fallback embedding")
        return None


def get_embedding_provider(
    config: CragConfig | None = None,
    cache: EmbeddingCache | None = None,
    use_mock: bool = False,
) -> EmbeddingProvider:
    """
    Factory function to get the appropriate embedding provider.

    Args:
        config: Engine config (loaded from env if not provided)
        cache: Cache to inject (built from config if not provided)
        use_mock: If True, return HashEmbeddings (no API calls, no cache)
    """
    if use_mock:
        return HashEmbeddings()

    if config is None:
        from crag_engine.config import get_config

        config = get_config()

    backend = None
    if config.llm_enabled:
        from crag_engine.llm import build_openai_client

        backend = OpenRouterEmbeddingBackend(build_openai_client(config))
    else:
        logger.warning("OPENROUTER_API_KEY is not set; using local fallback embeddings")

    return CachedEmbeddings(
        backend=backend,
        cache=cache if cache is not None else get_embedding_cache(
            config.cache_key, config.cache_max_entries
        ),
        model_ids=config.embedding_models,
        max_input_chars=config.max_embedding_chars,
    )
