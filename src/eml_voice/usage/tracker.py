"""
Usage and feedback tracking for stored examples.

Records which examples were offered for each draft and folds user feedback
on the draft into a per-example effectiveness score (running mean of the
ratings received), which the retrieval service uses to bias ranking.
"""

import asyncio
from typing import Dict, List, Optional, Sequence

import numpy as np
import structlog

from ..errors import ValidationError
from ..index.base import VectorIndex
from ..models.examples import ExampleFeedback, FeedbackSignal, UsageUpdate
from ..retrieval.retry import with_retry


logger = structlog.get_logger(__name__)

# Effectiveness reported for unknown or never-rated examples
NO_DATA = None


# ============================================================================
# RATING MODEL
# ============================================================================

RATING_NO_EDIT = 1.0
RATING_NOT_ACCEPTED = 0.2

# (edit distance, rating) anchors; interpolated linearly in between,
# flat outside
EDIT_DISTANCE_ANCHORS = (0.1, 0.4)
EDIT_RATING_ANCHORS = (0.9, 0.4)


def calculate_rating(feedback: FeedbackSignal) -> float:
    """
    Derive a [0, 1] rating from draft feedback.

    Rules, first match wins:
    - explicit user_rating: used as is, clamped to [0, 1]
    - not accepted: 0.2
    - accepted without edit: 1.0
    - accepted with edit: 0.9 below distance 0.1, 0.4 above 0.4,
      linear in between

    Examples:
        >>> calculate_rating(FeedbackSignal(edited=False, accepted=True))
        1.0
        >>> calculate_rating(FeedbackSignal(edited=True, edit_distance=0.25))
        0.65
    """
    if feedback.user_rating is not None:
        return float(np.clip(feedback.user_rating, 0.0, 1.0))
    if not feedback.accepted:
        return RATING_NOT_ACCEPTED
    if not feedback.edited:
        return RATING_NO_EDIT
    return float(np.interp(feedback.edit_distance, EDIT_DISTANCE_ANCHORS, EDIT_RATING_ANCHORS))


class UsageTracker:
    """
    Async usage/feedback recorder on top of a VectorIndex.

    Examples:
        >>> tracker = UsageTracker(index)
        >>> await tracker.track_example_usage("draft-1", ["u1:m1", "u1:m2"], user_id="u1")
        True
    """

    def __init__(self, index: VectorIndex):
        self.index = index

        self.logger = logger.bind(component="usage_tracker")

    async def track_example_usage(self, draft_id: str, example_ids: Sequence[str], user_id: str) -> bool:
        """
        Record that examples were offered for a draft and bump their usage.

        Fire-and-forget: failures are logged and reported as False, never
        raised, so draft generation is not affected.
        """
        if not example_ids:
            return True

        try:
            updates = [UsageUpdate(vector_id=i, user_id=user_id, was_used=True) for i in example_ids]
            await with_retry(
                lambda: asyncio.to_thread(
                    self.index.record_draft_examples, user_id, draft_id, list(example_ids)
                ),
                operation_name="record_draft_examples",
            )
            applied = await with_retry(
                lambda: asyncio.to_thread(self.index.update_usage_stats, updates),
                operation_name="update_usage_stats",
            )
        except Exception as e:
            self.logger.warning(
                "example_usage_tracking_failed",
                draft_id=draft_id,
                example_count=len(example_ids),
                error=str(e),
                error_type=type(e).__name__,
            )
            return False

        self.logger.info(
            "example_usage_tracked",
            draft_id=draft_id,
            example_count=len(example_ids),
            applied=applied,
        )
        return True

    async def track_example_feedback(self, feedback: ExampleFeedback) -> int:
        """
        Fold feedback on a draft into the effectiveness of its examples.

        When `example_ids` is empty, the examples recorded for the draft by
        track_example_usage are used. Unknown ids are ignored.

        Returns:
            Number of example usage records updated

        Raises:
            TransientError: Index still failing after retries
        """
        targets: List[str] = list(feedback.example_ids)
        if not targets:
            targets = await asyncio.to_thread(
                self.index.get_draft_examples, feedback.user_id, feedback.draft_id
            )

        if not targets:
            self.logger.info("feedback_without_examples", draft_id=feedback.draft_id)
            return 0

        rating = calculate_rating(feedback.feedback)
        signal = feedback.feedback
        updates = [
            UsageUpdate(
                vector_id=example_id,
                user_id=feedback.user_id,
                was_edited=signal.edited,
                edit_distance=signal.edit_distance if signal.edited else None,
                user_rating=rating,
            )
            for example_id in targets
        ]

        applied = await with_retry(
            lambda: asyncio.to_thread(self.index.update_usage_stats, updates),
            operation_name="update_usage_stats",
        )

        self.logger.info(
            "example_feedback_tracked",
            draft_id=feedback.draft_id,
            example_count=len(updates),
            applied=applied,
            rating=rating,
            accepted=signal.accepted,
            edited=signal.edited,
        )
        return applied

    async def get_example_effectiveness(
        self, example_ids: Sequence[str], user_id: str
    ) -> Dict[str, Optional[float]]:
        """
        Current effectiveness per id.

        Every requested id is present in the result; unknown or unrated
        examples map to NO_DATA.
        """
        if any(not example_id for example_id in example_ids):
            raise ValidationError("example ids must be non-empty")
        return await with_retry(
            lambda: asyncio.to_thread(self.index.get_effectiveness, user_id, list(example_ids)),
            operation_name="get_effectiveness",
        )
