"""
Exception hierarchy for example ingestion and retrieval.

- ValidationError: the call itself is wrong, never retried
- TransientError subclasses: provider or store unavailable, safe to retry
Not-found conditions are never raised; they surface as empty results.
"""


class VoiceRetrievalError(Exception):
    """Base error for the retrieval pipeline."""


class ValidationError(VoiceRetrievalError, ValueError):
    """Invalid input (missing user id, wrong vector dimensionality, bad limit)."""


class VectorDimensionError(ValidationError):
    """Vector length does not match the index dimensionality."""

    def __init__(self, expected: int, actual: int) -> None:
        """
        Initialize dimension error.

        Args:
            expected: Dimensionality configured on the index
            actual: Length of the offending vector
        """
        super().__init__(f"Vector dimension mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class TransientError(VoiceRetrievalError):
    """Retryable I/O failure."""


class EmbeddingError(TransientError):
    """Embedding provider failed to produce a vector."""


class TransientStoreError(TransientError):
    """Vector index backend unavailable or failed mid-operation."""
