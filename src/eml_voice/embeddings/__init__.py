"""
Embedding providers (text -> vector).

The sentence-transformers provider lives in `.sentence_transformer` and is
imported explicitly, so loading the base class never pulls in the model stack.
"""

from .base import EmbeddingProvider

__all__ = ["EmbeddingProvider"]
