"""
sentence-transformers embedding provider.

Uses all-MiniLM-L6-v2 (384 dimensions) by default; vectors are L2-normalized
so cosine similarity equals the dot product.
"""

from typing import Dict, List, Optional

import structlog
from sentence_transformers import SentenceTransformer

from ..config import settings
from .base import EmbeddingProvider


logger = structlog.get_logger(__name__)


# Singleton model instances (lazy-loaded), keyed by model name
_models: Dict[str, SentenceTransformer] = {}


def get_sentence_transformer(model_name: Optional[str] = None) -> SentenceTransformer:
    """
    Get or initialize a sentence-transformers model (singleton pattern).

    all-MiniLM-L6-v2 is loaded once and cached for performance
    (~90MB download on first use).

    Args:
        model_name: Model identifier (default from settings)

    Returns:
        Initialized SentenceTransformer instance
    """
    model_name = model_name or settings.embedding_model_name
    if model_name not in _models:
        logger.info("loading_embedding_model", model_name=model_name)
        _models[model_name] = SentenceTransformer(model_name)
    return _models[model_name]


class SentenceTransformerProvider(EmbeddingProvider):
    """Local sentence-transformers model producing normalized vectors."""

    def __init__(self, model_name: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.model_name = model_name or settings.embedding_model_name

    @property
    def model_version(self) -> str:
        return self.model_name

    def _encode(self, texts: List[str]) -> List[List[float]]:
        model = get_sentence_transformer(self.model_name)
        vectors = model.encode(
            texts,
            batch_size=len(texts),
            normalize_embeddings=True,
            convert_to_numpy=True,
            show_progress_bar=False,
        )
        return vectors.tolist()
