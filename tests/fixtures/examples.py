"""
Test helpers: deterministic embedding provider, vectors and stored examples.
"""

import hashlib
import re
from datetime import datetime
from typing import Iterable, List, Optional

import numpy as np

from eml_voice.embeddings.base import EmbeddingProvider
from eml_voice.models.examples import ExampleMetadata, RelationshipTag, StoredExample


TEST_DIMENSIONS = 64


# ============================================================================
# FAKE EMBEDDING PROVIDER
# ============================================================================

class HashEmbeddingProvider(EmbeddingProvider):
    """
    Bag-of-words hashing embedder.

    Identical texts get identical unit vectors; texts sharing words get
    similar ones. Texts containing a `fail_on` marker raise, to exercise
    per-item error isolation.
    """

    def __init__(self, dimensions: int = TEST_DIMENSIONS, fail_on: Iterable[str] = (), **kwargs):
        super().__init__(dimensions=dimensions, **kwargs)
        self.fail_on = tuple(fail_on)
        self.encoded_texts: List[str] = []

    @property
    def model_version(self) -> str:
        return "hash-bow-test"

    def _encode(self, texts: List[str]) -> List[List[float]]:
        vectors = []
        for text in texts:
            if any(marker in text for marker in self.fail_on):
                raise RuntimeError(f"cannot encode: {text[:20]}")
            self.encoded_texts.append(text)
            vectors.append(hash_vector(text, self.dimensions))
        return vectors


def hash_vector(text: str, dimensions: int = TEST_DIMENSIONS) -> List[float]:
    vector = np.zeros(dimensions)
    for token in re.findall(r"\w+", text.lower()):
        bucket = int(hashlib.md5(token.encode("utf-8")).hexdigest(), 16) % dimensions
        vector[bucket] += 1.0
    norm = np.linalg.norm(vector)
    if norm == 0:
        vector[0] = 1.0
        norm = 1.0
    return (vector / norm).tolist()


def unit_vector(index: int, dimensions: int = TEST_DIMENSIONS, other: Optional[int] = None, mix: float = 0.0) -> List[float]:
    """
    Unit vector along axis `index`, optionally tilted towards axis `other`.

    cos(unit_vector(i), unit_vector(i, other=j, mix=m)) == 1 / sqrt(1 + m^2)
    """
    vector = np.zeros(dimensions)
    vector[index] = 1.0
    if other is not None:
        vector[other] = mix
    return (vector / np.linalg.norm(vector)).tolist()


def make_example(
    example_id: str,
    user_id: str = "user-1",
    vector: Optional[List[float]] = None,
    relationship: str = "colleagues",
    recipient_email: str = "sam@acme.io",
    sent_date: Optional[datetime] = None,
    text: str = "Sample text",
    features: Optional[dict] = None,
    word_count: int = 2,
) -> StoredExample:
    return StoredExample(
        id=example_id,
        user_id=user_id,
        vector=vector or unit_vector(0),
        metadata=ExampleMetadata(
            extracted_text=text,
            recipient_email=recipient_email,
            subject="Subject",
            sent_date=sent_date or datetime(2025, 3, 1, 12, 0, 0),
            features=features or {},
            relationship=RelationshipTag(type=relationship),
            word_count=word_count,
        ),
    )


