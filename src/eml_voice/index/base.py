"""
VectorIndex interface.

Per-user store of (vector, metadata) pairs with filtered similarity search.
Calls are blocking; async callers run them in worker threads.

Similarity convention: raw cosine similarity in [-1, 1], shared by `search`
and `find_near_duplicates` (a vector matched against itself scores 1.0).
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Optional, Sequence

from ..models.examples import SearchParams, SearchResult, StoredExample, UsageUpdate

# Relationship type that matches every relationship in get_by_relationship
AGGREGATE_RELATIONSHIP = "aggregate"


class VectorIndex(ABC):
    """Storage contract used by RetrievalService and UsageTracker."""

    dimensions: int

    @abstractmethod
    def upsert(self, example: StoredExample) -> None:
        """Insert or replace one example (idempotent by id)."""

    @abstractmethod
    def upsert_batch(self, examples: Sequence[StoredExample]) -> int:
        """Insert or replace many examples; an empty batch is a no-op. Returns the count written."""

    @abstractmethod
    def search(self, params: SearchParams) -> List[SearchResult]:
        """Descending-similarity search with all supplied filters ANDed."""

    @abstractmethod
    def find_near_duplicates(
        self, user_id: str, vector: Sequence[float], threshold: Optional[float] = None
    ) -> List[SearchResult]:
        """Examples of the user at or above the near-duplicate threshold."""

    @abstractmethod
    def get_by_relationship(
        self, user_id: str, relationship_type: str, limit: Optional[int] = None
    ) -> List[StoredExample]:
        """Most recent examples of one relationship type ("aggregate" for all)."""

    @abstractmethod
    def get_relationship_stats(self, user_id: str) -> Dict[str, int]:
        """Example count per relationship type; values sum to count(user_id)."""

    @abstractmethod
    def delete_user_data(self, user_id: str) -> int:
        """Atomically remove every example (and usage) of the user. Returns the count removed."""

    @abstractmethod
    def update_usage_stats(self, updates: Sequence[UsageUpdate]) -> int:
        """Merge usage updates, each scoped to its user; unknown ids are ignored. Returns the count applied."""

    @abstractmethod
    def get(self, user_id: str, example_id: str) -> Optional[StoredExample]:
        """One example, or None."""

    @abstractmethod
    def count(self, user_id: str) -> int:
        """Number of examples stored for the user."""

    @abstractmethod
    def get_effectiveness(self, user_id: str, example_ids: Sequence[str]) -> Dict[str, Optional[float]]:
        """Effectiveness per id of one user; None when the example is unknown or unrated."""

    @abstractmethod
    def record_draft_examples(self, user_id: str, draft_id: str, example_ids: Sequence[str]) -> None:
        """Remember which examples were offered for a draft of the user."""

    @abstractmethod
    def get_draft_examples(self, user_id: str, draft_id: str) -> List[str]:
        """Example ids recorded for a draft of the user."""

    @abstractmethod
    def health_check(self) -> bool:
        """Whether the backend answers."""
