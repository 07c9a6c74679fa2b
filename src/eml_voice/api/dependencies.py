"""
FastAPI dependencies for the index, embedding provider and services.

The index and provider are process-wide singletons built on first use.
Services are cheap wrappers built per request on top of them, so tests only
override `get_index` and `get_embedding_provider` through
`app.dependency_overrides`.
"""

from typing import Optional

import structlog
from fastapi import Depends

from ..embeddings.base import EmbeddingProvider
from ..index.base import VectorIndex
from ..index.sql_index import SqlVectorIndex
from ..retrieval.selector import ExampleSelector
from ..retrieval.service import RetrievalService
from ..usage.tracker import UsageTracker

logger = structlog.get_logger(__name__)

# Global singletons
_index: Optional[VectorIndex] = None
_provider: Optional[EmbeddingProvider] = None


def get_index() -> VectorIndex:
    global _index

    if _index is None:
        _index = SqlVectorIndex()
        logger.info("vector_index_initialized", dimensions=_index.dimensions)

    return _index


def get_embedding_provider() -> EmbeddingProvider:
    """Sentence-transformers provider; the model itself loads on first encode."""
    global _provider

    if _provider is None:
        from ..embeddings.sentence_transformer import SentenceTransformerProvider

        _provider = SentenceTransformerProvider()

    return _provider


def get_retrieval_service(
    index: VectorIndex = Depends(get_index),
    provider: EmbeddingProvider = Depends(get_embedding_provider),
) -> RetrievalService:
    return RetrievalService(index=index, provider=provider)


def get_usage_tracker(index: VectorIndex = Depends(get_index)) -> UsageTracker:
    return UsageTracker(index)


def get_example_selector(
    service: RetrievalService = Depends(get_retrieval_service),
) -> ExampleSelector:
    return ExampleSelector(service=service)
