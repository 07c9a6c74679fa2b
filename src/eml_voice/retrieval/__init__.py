"""
Relationship-aware example retrieval: ingestion, search and example selection.
"""

from .relationship import RelationshipDetector, get_adjacent_relationships
from .retry import with_retry
from .selector import ExampleSelector, diversity_score
from .service import RetrievalService, rerank_by_effectiveness

__all__ = [
    "ExampleSelector",
    "RelationshipDetector",
    "RetrievalService",
    "diversity_score",
    "get_adjacent_relationships",
    "rerank_by_effectiveness",
    "with_retry",
]
