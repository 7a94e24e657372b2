"""
Embedding response decoder.

OpenAI-compatible gateways do not agree on one reply shape. The decoder
recognizes a closed set of shapes, tried in order:

    DATA_LIST        {"data": [{"embedding": [...]}, ...]}
    EMBEDDING_FIELD  {"embedding": [...]}
    BARE_VECTOR      [...]

Anything else, or a vector that is empty or not numeric, is a
MalformedEmbeddingResponse. No partial guesses.
"""

from __future__ import annotations

from enum import Enum
from numbers import Real
from typing import Any

import numpy as np

from crag_engine.core.errors import MalformedEmbeddingResponse


class ResponseShape(str, Enum):
    DATA_LIST = "data_list"
    EMBEDDING_FIELD = "embedding_field"
    BARE_VECTOR = "bare_vector"


def detect_shape(payload: Any) -> ResponseShape:
    """Classify a decoded JSON payload. Raises if no shape matches."""
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(data, list) and data and isinstance(data[0], dict):
            return ResponseShape.DATA_LIST
        if isinstance(payload.get("embedding"), list):
            return ResponseShape.EMBEDDING_FIELD
    elif isinstance(payload, list):
        return ResponseShape.BARE_VECTOR
    raise MalformedEmbeddingResponse("Invalid embedding response format")


def _extract(payload: Any, shape: ResponseShape) -> Any:
    if shape is ResponseShape.DATA_LIST:
        return payload["data"][0].get("embedding")
    if shape is ResponseShape.EMBEDDING_FIELD:
        return payload["embedding"]
    return payload


def _is_number(value: Any) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def decode_embedding(payload: Any) -> np.ndarray:
    """
    Decode an embedding reply into a float vector.

    Args:
        payload: JSON-decoded response body

    Returns:
        1-D float64 array

    Raises:
        MalformedEmbeddingResponse: unknown shape, empty or non-numeric vector
    """
    shape = detect_shape(payload)
    vector = _extract(payload, shape)

    if not isinstance(vector, list) or not vector:
        raise MalformedEmbeddingResponse("Invalid embedding: not an array or empty")
    if not all(_is_number(value) for value in vector):
        raise MalformedEmbeddingResponse("Invalid embedding: non-numeric values")

    return np.asarray(vector, dtype=np.float64)
