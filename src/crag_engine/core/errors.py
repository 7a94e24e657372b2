"""
Exception hierarchy for the CRAG engine.

Which errors escape and which are absorbed:
- InputError: raised to the immediate caller (bad text for embedding).
- UpstreamUnavailable: always absorbed by a fallback (hash embedding,
  similarity-based evaluation, unchanged documents).
- MalformedRecord: stored record without a usable embedding. Skipped
  during scoring.
- DimensionMismatchError: vectors of unequal length compared.
- StoreError: persistence failure, propagated from management operations.
"""


class CragError(Exception):
    """Base class for all engine errors."""


# ---------------------------------------------------------------------------
# INPUT
# ---------------------------------------------------------------------------


class InputError(CragError):
    """Caller supplied invalid input."""


class EmptyInputError(InputError):
    """Text for embedding was empty or blank."""

    def __init__(self, message: str = "Text cannot be empty"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# UPSTREAM
# ---------------------------------------------------------------------------


class UpstreamUnavailable(CragError):
    """Embedding or completion backend failed, timed out or misbehaved."""


class MalformedEmbeddingResponse(UpstreamUnavailable):
    """Embedding backend replied with a payload no decoder understands."""


# ---------------------------------------------------------------------------
# RECORDS
# ---------------------------------------------------------------------------


class MalformedRecord(CragError):
    """Stored document whose embedding is missing or not numeric."""


class DimensionMismatchError(CragError):
    """Two vectors of different lengths were compared."""

    def __init__(self, left: int, right: int):
        self.left = left
        self.right = right
        super().__init__(f"Vectors must have the same length ({left} != {right})")


# ---------------------------------------------------------------------------
# STORE
# ---------------------------------------------------------------------------


class StoreError(CragError):
    """Document store write/delete/read failure."""


class DocumentNotFoundError(StoreError):
    """Requested document does not exist in the caller's scope."""
