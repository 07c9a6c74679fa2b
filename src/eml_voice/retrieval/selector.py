"""
Example selection for draft generation.

Picks the stored emails a generator should imitate for one reply:

1. Detect the recipient's relationship category
2. Search that category first; expand to adjacent categories when it has
   too few examples
3. Select either by pure similarity (diversity weight 0) or round-robin over
   formality / sentiment / length / urgency buckets so the examples cover
   the range of how the user writes to this relationship
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Mapping, Optional

import structlog

from ..config import settings
from ..errors import TransientError
from ..models.examples import ExampleSelection, SearchResult
from .relationship import RelationshipDetector, get_adjacent_relationships
from .service import RetrievalService


logger = structlog.get_logger(__name__)

PRIMARY_SEARCH_LIMIT = 100
ADJACENT_SEARCH_LIMIT = 50


# ============================================================================
# FEATURE BUCKETS
# ============================================================================

def _feature(result: SearchResult, *path, default=None):
    """Read a nested value from the stored feature snapshot."""
    value = result.metadata.features
    for key in path:
        if not isinstance(value, dict) or key not in value:
            return default
        value = value[key]
    return value


def formality_bucket(result: SearchResult) -> str:
    score = _feature(result, "stats", "formality_score", default=0.5)
    if score >= 0.8:
        return "very_formal"
    if score >= 0.6:
        return "formal"
    if score >= 0.4:
        return "neutral"
    if score >= 0.2:
        return "casual"
    return "very_casual"


def sentiment_bucket(result: SearchResult) -> str:
    return _feature(result, "sentiment", "primary", default="neutral")


def length_bucket(result: SearchResult) -> str:
    word_count = result.metadata.word_count
    if word_count < 25:
        return "very_short"
    if word_count < 50:
        return "short"
    if word_count < 150:
        return "medium"
    if word_count < 300:
        return "long"
    return "very_long"


def urgency_bucket(result: SearchResult) -> str:
    urgency = _feature(result, "tonal_qualities", "urgency", default=0.0)
    if urgency >= 0.6:
        return "high"
    if urgency >= 0.3:
        return "medium"
    return "low"


BUCKETERS: List[Callable[[SearchResult], str]] = [
    formality_bucket,
    sentiment_bucket,
    length_bucket,
    urgency_bucket,
]


def group_by(candidates: List[SearchResult], bucketer: Callable[[SearchResult], str]) -> Dict[str, List[SearchResult]]:
    """Group candidates by bucket, preserving rank order inside each bucket."""
    groups: Dict[str, List[SearchResult]] = {}
    for candidate in candidates:
        groups.setdefault(bucketer(candidate), []).append(candidate)
    return groups


def diversity_score(examples: List[SearchResult]) -> float:
    """
    Coverage of the feature space by a set of examples, in [0, 1].

    Mean over four dimensions of distinct values seen relative to the
    number of values that dimension can take. Fewer than two examples score 0.
    """
    if len(examples) < 2:
        return 0.0

    formality = len({round(_feature(e, "stats", "formality_score", default=0.5) * 10) for e in examples}) / 10
    sentiment = len({sentiment_bucket(e) for e in examples}) / 5
    length = len({min(e.metadata.word_count // 50, 4) for e in examples}) / 5
    urgency = len({urgency_bucket(e) for e in examples}) / 3

    return min(1.0, (formality + sentiment + length + urgency) / 4)


@dataclass
class ExampleSelector:
    """
    Relationship-first example selector.

    Attributes:
        service: Retrieval service used for embedding and search
        detector: Relationship detector for the recipient
        diversity_weight: 0 selects by similarity only, > 0 selects diversely
        example_count: Default number of examples to return
        min_relationship_matches: Below this many matches, adjacent categories are searched
    """

    service: RetrievalService
    detector: Optional[RelationshipDetector] = None
    diversity_weight: Optional[float] = None
    example_count: Optional[int] = None
    min_relationship_matches: Optional[int] = None

    def __post_init__(self):
        if self.detector is None:
            self.detector = self.service.detector
        if self.diversity_weight is None:
            self.diversity_weight = settings.diversity_weight
        if self.example_count is None:
            self.example_count = settings.example_count
        if self.min_relationship_matches is None:
            self.min_relationship_matches = settings.example_min_relationship_matches

    async def select_examples(
        self,
        user_id: str,
        incoming_text: str,
        recipient_email: str,
        desired_count: Optional[int] = None,
        overrides: Optional[Mapping[str, str]] = None,
    ) -> ExampleSelection:
        """
        Select examples for a reply to `recipient_email`.

        Args:
            user_id: Owner of the examples
            incoming_text: Text the reply answers (query for similarity)
            recipient_email: Who the reply goes to
            desired_count: Number of examples (default: example_count)
            overrides: User-defined recipient -> relationship mapping

        Returns:
            ExampleSelection with the relationship, chosen examples and stats;
            no examples when the provider or index keeps failing
        """
        count = desired_count or self.example_count
        relationship = self.detector.detect(recipient_email, overrides=overrides)
        try:
            query_vector = await self.service.embed_query(incoming_text)
        except TransientError as e:
            logger.error(
                "example_selection_degraded_to_empty",
                user_id=user_id,
                relationship=relationship.type,
                error=str(e),
                error_type=type(e).__name__,
            )
            return ExampleSelection(relationship=relationship)

        candidates = await self.service.search(
            user_id,
            query_vector=query_vector,
            relationship=relationship.type,
            limit=PRIMARY_SEARCH_LIMIT,
        )

        if len(candidates) < self.min_relationship_matches:
            logger.info(
                "example_search_expanded",
                user_id=user_id,
                relationship=relationship.type,
                matches=len(candidates),
            )
            seen = {c.id for c in candidates}
            for adjacent in get_adjacent_relationships(relationship.type):
                more = await self.service.search(
                    user_id,
                    query_vector=query_vector,
                    relationship=adjacent,
                    limit=ADJACENT_SEARCH_LIMIT,
                )
                candidates.extend(c for c in more if c.id not in seen)
                seen.update(c.id for c in more)
                if len(candidates) >= self.min_relationship_matches:
                    break

        if self.diversity_weight > 0:
            selected = self.select_diverse(candidates, count)
        else:
            selected = candidates[:count]

        selection = ExampleSelection(
            relationship=relationship,
            examples=selected,
            total_candidates=len(candidates),
            relationship_matches=sum(
                1 for e in selected if e.metadata.relationship.type == relationship.type
            ),
            diversity_score=diversity_score(selected),
        )

        logger.info(
            "examples_selected",
            user_id=user_id,
            relationship=relationship.type,
            candidates=selection.total_candidates,
            selected=len(selected),
            relationship_matches=selection.relationship_matches,
            diversity_score=selection.diversity_score,
        )
        return selection

    @staticmethod
    def select_diverse(candidates: List[SearchResult], count: int) -> List[SearchResult]:
        """
        Round-robin over feature buckets, taking the best unused candidate of each bucket.

        Stops when `count` examples are chosen or a full pass over every
        grouping adds nothing.
        """
        if len(candidates) <= count:
            return list(candidates)

        groupings = [group_by(candidates, bucketer) for bucketer in BUCKETERS]
        selected: List[SearchResult] = []
        used = set()

        progress = True
        while len(selected) < count and progress:
            progress = False
            for groups in groupings:
                for group in groups.values():
                    if len(selected) >= count:
                        break
                    best = next((c for c in group if c.id not in used), None)
                    if best is not None:
                        selected.append(best)
                        used.add(best.id)
                        progress = True

        return selected
