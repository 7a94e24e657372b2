"""
Unit Tests for the Embeddings Module

Tests embedding generation without any network access.

STAFF ENGINEER PATTERNS:
------------------------
1. Remote backend replaced by MagicMock
2. Fallback path verified to be deterministic
3. Cache behavior verified through backend call counts
"""

from collections import OrderedDict

import pytest
from unittest.mock import MagicMock
import numpy as np

from crag_engine.core.errors import (
    EmptyInputError,
    MalformedEmbeddingResponse,
    UpstreamUnavailable,
)
from crag_engine.config import CragConfig
from crag_engine.embeddings import (
    FALLBACK_DIMENSIONS,
    CachedEmbeddings,
    EmbeddingCache,
    HashEmbeddings,
    OpenRouterEmbeddingBackend,
    ResponseShape,
    decode_embedding,
    detect_shape,
    get_embedding_cache,
    get_embedding_provider,
    hash_embedding,
    prefix_key,
    sha256_key,
)
from crag_engine.retrieval.similarity import cosine_similarity


# ---------------------------------------------------------------------------
# FIXTURES
# ---------------------------------------------------------------------------


@pytest.fixture
def backend():
    """Remote backend that succeeds with a 3-d vector."""
    backend = MagicMock()
    backend.embed.return_value = [0.1, 0.2, 0.3]
    return backend


@pytest.fixture
def failing_backend():
    """Remote backend where every model id fails."""
    backend = MagicMock()
    backend.embed.side_effect = UpstreamUnavailable("503")
    return backend


# ---------------------------------------------------------------------------
# HASH (FALLBACK) EMBEDDINGS
# ---------------------------------------------------------------------------


class TestHashEmbedding:
    """Test the deterministic local embedding."""

    def test_dimension_is_384(self):
        assert hash_embedding("hello world").shape == (FALLBACK_DIMENSIONS,)

    def test_deterministic(self):
        a = hash_embedding("The quick brown fox")
        b = hash_embedding("The quick brown fox")
        assert np.array_equal(a, b)

    def test_unit_length(self):
        vector = hash_embedding("cats are mammals")
        assert np.linalg.norm(vector) == pytest.approx(1.0)

    def test_case_insensitive(self):
        assert np.array_equal(hash_embedding("Cats"), hash_embedding("cats"))

    def test_whitespace_only_is_zero_vector(self):
        vector = hash_embedding("   ")
        assert not vector.any()

    def test_position_weighting(self):
        """First token weighs 1, second 1/2."""
        vector = hash_embedding("ab cd", dimensions=1000)
        # "ab" = 97+98 = 195, "cd" = 99+100 = 199
        assert vector[195] == pytest.approx(2 * vector[199])

    def test_disjoint_texts_have_low_similarity(self):
        a = hash_embedding("cats are mammals")
        b = hash_embedding("stock market rose today")
        assert cosine_similarity(a, b) < 0.2

    def test_hash_embeddings_provider(self):
        provider = HashEmbeddings()
        assert provider.dimensions == 384
        batch = provider.embed_batch(["a b", "c d"])
        assert len(batch) == 2
        assert np.array_equal(batch[0], provider.embed("a b"))


# ---------------------------------------------------------------------------
# CACHE
# ---------------------------------------------------------------------------


class TestEmbeddingCache:
    """Test the injected key -> vector cache."""

    def test_put_and_get(self):
        cache = EmbeddingCache()
        vector = np.array([1.0, 2.0])
        cache.put("hello", vector)

        assert cache.get("hello") is vector
        assert "hello" in cache
        assert len(cache) == 1

    def test_miss_returns_none(self):
        assert EmbeddingCache().get("missing") is None

    def test_sha256_key_distinguishes_shared_prefix(self):
        shared = "x" * 100
        cache = EmbeddingCache(key_fn=sha256_key)
        cache.put(shared + "first", np.array([1.0]))

        assert cache.get(shared + "second") is None

    def test_prefix_key_collides_on_shared_prefix(self):
        """Known hazard of the prefix key: same first 100 chars, same entry."""
        shared = "x" * 100
        cache = EmbeddingCache(key_fn=prefix_key)
        cache.put(shared + "first", np.array([1.0]))

        assert cache.get(shared + "second") is not None

    def test_clear(self):
        cache = EmbeddingCache()
        cache.put("a", np.array([1.0]))
        cache.clear()
        assert len(cache) == 0

    def test_lru_bound_evicts_oldest(self):
        cache = EmbeddingCache(max_entries=2)
        cache.put("a", np.array([1.0]))
        cache.put("b", np.array([2.0]))
        cache.get("a")  # a is now most recent
        cache.put("c", np.array([3.0]))

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache

    def test_entry_evicted_between_lookup_and_reorder(self):
        class VanishingEntries(OrderedDict):
            def get(self, key, default=None):
                value = super().get(key, default)
                self.pop(key, None)
                return value

        cache = EmbeddingCache(max_entries=2)
        cache._entries = VanishingEntries()
        cache.put("a", np.array([1.0]))

        assert cache.get("a").tolist() == [1.0]
        assert "a" not in cache

    def test_eviction_stops_when_entries_already_gone(self):
        class StaleLength(OrderedDict):
            def __len__(self):
                return 5

        cache = EmbeddingCache(max_entries=2)
        cache._entries = StaleLength()

        cache.put("a", np.array([1.0]))

    def test_factory_key_strategies(self):
        assert get_embedding_cache("prefix").key_for("y" * 150) == "y" * 100
        assert get_embedding_cache("sha256").key_for("abc") == sha256_key("abc")

    def test_factory_rejects_unknown_strategy(self):
        with pytest.raises(ValueError):
            get_embedding_cache("md5")


# ---------------------------------------------------------------------------
# RESPONSE DECODING
# ---------------------------------------------------------------------------


class TestDecodeEmbedding:
    """Test the tagged-variant response decoder."""

    def test_data_list_shape(self):
        payload = {"data": [{"embedding": [0.1, 0.2]}]}
        assert detect_shape(payload) is ResponseShape.DATA_LIST
        assert decode_embedding(payload).tolist() == [0.1, 0.2]

    def test_embedding_field_shape(self):
        payload = {"embedding": [1, 2, 3]}
        assert detect_shape(payload) is ResponseShape.EMBEDDING_FIELD
        assert decode_embedding(payload).tolist() == [1.0, 2.0, 3.0]

    def test_bare_vector_shape(self):
        assert detect_shape([0.5, 0.5]) is ResponseShape.BARE_VECTOR
        assert decode_embedding([0.5, 0.5]).tolist() == [0.5, 0.5]

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"data": []},
            {"error": {"message": "model not found"}},
            "not json object",
            None,
        ],
    )
    def test_unknown_shapes_rejected(self, payload):
        with pytest.raises(MalformedEmbeddingResponse):
            decode_embedding(payload)

    @pytest.mark.parametrize(
        "payload",
        [
            [],
            {"embedding": []},
            {"data": [{"embedding": None}]},
            {"data": [{"embedding": ["a", "b"]}]},
            [True, False],
        ],
    )
    def test_empty_or_non_numeric_vectors_rejected(self, payload):
        with pytest.raises(MalformedEmbeddingResponse):
            decode_embedding(payload)

    def test_malformed_is_upstream_unavailable(self):
        assert issubclass(MalformedEmbeddingResponse, UpstreamUnavailable)


# ---------------------------------------------------------------------------
# CACHED EMBEDDINGS (PROVIDER)
# ---------------------------------------------------------------------------


class TestCachedEmbeddings:
    """Test the production provider: cache, model list, fallback."""

    def test_empty_text_raises(self, backend):
        provider = CachedEmbeddings(backend)
        with pytest.raises(EmptyInputError):
            provider.embed("")

    def test_blank_text_raises(self, backend):
        provider = CachedEmbeddings(backend)
        with pytest.raises(EmptyInputError):
            provider.embed("   \n")
        backend.embed.assert_not_called()

    def test_uses_first_model_on_success(self, backend):
        provider = CachedEmbeddings(backend, model_ids=["m1", "m2"])

        vector = provider.embed("hello")

        assert vector.tolist() == [0.1, 0.2, 0.3]
        backend.embed.assert_called_once_with("hello", "m1")

    def test_tries_models_in_order(self):
        backend = MagicMock()
        backend.embed.side_effect = [
            UpstreamUnavailable("404"),
            UpstreamUnavailable("429"),
            [1.0, 0.0],
        ]
        provider = CachedEmbeddings(backend, model_ids=["m1", "m2", "m3", "m4"])

        vector = provider.embed("hello")

        assert vector.tolist() == [1.0, 0.0]
        assert [c.args[1] for c in backend.embed.call_args_list] == ["m1", "m2", "m3"]

    def test_all_models_fail_uses_fallback(self, failing_backend):
        provider = CachedEmbeddings(failing_backend, model_ids=["m1", "m2"])

        vector = provider.embed("cats are mammals")

        assert failing_backend.embed.call_count == 2
        assert vector.shape == (384,)
        assert np.array_equal(vector, hash_embedding("cats are mammals"))

    def test_unexpected_backend_error_uses_fallback(self):
        backend = MagicMock()
        backend.embed.side_effect = [RuntimeError("boom"), TypeError("bad payload")]
        provider = CachedEmbeddings(backend, model_ids=["m1", "m2"])

        vector = provider.embed("cats are mammals")

        assert backend.embed.call_count == 2
        assert np.array_equal(vector, hash_embedding("cats are mammals"))

    def test_no_backend_uses_fallback(self):
        provider = CachedEmbeddings(None)
        assert np.array_equal(provider.embed("hello world"), hash_embedding("hello world"))

    def test_cache_hit_skips_backend(self, backend):
        provider = CachedEmbeddings(backend)

        first = provider.embed("repeat me")
        second = provider.embed("repeat me")

        assert backend.embed.call_count == 1
        assert np.array_equal(first, second)

    def test_fallback_vectors_are_cached(self, failing_backend):
        provider = CachedEmbeddings(failing_backend, model_ids=["m1"])

        provider.embed("text")
        provider.embed("text")

        assert failing_backend.embed.call_count == 1
        assert "text" in provider.cache

    def test_injected_cache_is_used(self, backend):
        cache = EmbeddingCache()
        cache.put("known", np.array([9.0]))
        provider = CachedEmbeddings(backend, cache=cache)

        assert provider.embed("known").tolist() == [9.0]
        backend.embed.assert_not_called()

    def test_truncates_before_remote_call(self, backend):
        provider = CachedEmbeddings(backend, model_ids=["m1"], max_input_chars=10)

        provider.embed("a" * 50)

        sent_text = backend.embed.call_args.args[0]
        assert sent_text == "a" * 10

    def test_embed_batch(self, backend):
        provider = CachedEmbeddings(backend)
        assert len(provider.embed_batch(["one", "two"])) == 2


# ---------------------------------------------------------------------------
# OPENROUTER BACKEND
# ---------------------------------------------------------------------------


class TestOpenRouterEmbeddingBackend:
    """Test the OpenAI SDK adapter with a mocked client."""

    def _client_returning(self, payload):
        client = MagicMock()
        raw = MagicMock()
        raw.http_response.json.return_value = payload
        client.embeddings.with_raw_response.create.return_value = raw
        return client

    def test_decodes_openai_shape(self):
        client = self._client_returning({"data": [{"embedding": [0.3, 0.4]}]})
        backend = OpenRouterEmbeddingBackend(client)

        vector = backend.embed("hello", "openai/text-embedding-3-small")

        assert vector.tolist() == [0.3, 0.4]
        kwargs = client.embeddings.with_raw_response.create.call_args.kwargs
        assert kwargs["model"] == "openai/text-embedding-3-small"
        assert kwargs["input"] == "hello"
        assert kwargs["encoding_format"] == "float"

    def test_invalid_json_is_upstream_error(self):
        client = MagicMock()
        raw = MagicMock()
        raw.http_response.json.side_effect = ValueError("Expecting value")
        client.embeddings.with_raw_response.create.return_value = raw

        with pytest.raises(UpstreamUnavailable):
            OpenRouterEmbeddingBackend(client).embed("hello", "m1")

    def test_sdk_error_is_upstream_error(self):
        from openai import OpenAIError

        client = MagicMock()
        client.embeddings.with_raw_response.create.side_effect = OpenAIError("boom")

        with pytest.raises(UpstreamUnavailable):
            OpenRouterEmbeddingBackend(client).embed("hello", "m1")


# ---------------------------------------------------------------------------
# FACTORY FUNCTION
# ---------------------------------------------------------------------------


class TestGetEmbeddingProvider:
    """Test the get_embedding_provider factory."""

    def test_mock_returns_hash_embeddings(self):
        assert isinstance(get_embedding_provider(use_mock=True), HashEmbeddings)

    def test_without_api_key_has_no_backend(self):
        provider = get_embedding_provider(config=CragConfig(api_key=None))

        assert isinstance(provider, CachedEmbeddings)
        assert provider._backend is None

    def test_with_api_key_builds_backend(self):
        provider = get_embedding_provider(config=CragConfig(api_key="sk-test"))

        assert isinstance(provider._backend, OpenRouterEmbeddingBackend)

    def test_cache_strategy_from_config(self):
        provider = get_embedding_provider(config=CragConfig(cache_key="prefix"))
        assert provider.cache.key_for("z" * 120) == "z" * 100
