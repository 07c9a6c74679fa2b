"""
Usage and feedback endpoints.
"""

from fastapi import APIRouter, BackgroundTasks, Depends, status

from ...models.api_models import (
    AcceptedResponse,
    EffectivenessRequest,
    EffectivenessResponse,
    TrackFeedbackRequest,
    TrackUsageRequest,
)
from ...models.examples import ExampleFeedback
from ...usage.tracker import UsageTracker
from ..dependencies import get_usage_tracker

router = APIRouter()


@router.post("/track", response_model=AcceptedResponse, status_code=status.HTTP_202_ACCEPTED)
async def track_usage(
    request: TrackUsageRequest,
    background_tasks: BackgroundTasks,
    tracker: UsageTracker = Depends(get_usage_tracker),
) -> AcceptedResponse:
    """
    Record which examples were offered for a draft.

    Runs after the response is sent; failures are logged only.
    """
    background_tasks.add_task(
        tracker.track_example_usage, request.draft_id, request.example_ids, request.user_id
    )
    return AcceptedResponse()


@router.post("/feedback", response_model=AcceptedResponse)
async def track_feedback(
    request: TrackFeedbackRequest,
    tracker: UsageTracker = Depends(get_usage_tracker),
) -> AcceptedResponse:
    """Fold edit/acceptance feedback on a draft into example effectiveness."""
    applied = await tracker.track_example_feedback(
        ExampleFeedback(
            draft_id=request.draft_id,
            example_ids=request.example_ids,
            user_id=request.user_id,
            feedback=request.feedback,
        )
    )
    return AcceptedResponse(applied=applied)


@router.post("/effectiveness", response_model=EffectivenessResponse)
async def example_effectiveness(
    request: EffectivenessRequest,
    tracker: UsageTracker = Depends(get_usage_tracker),
) -> EffectivenessResponse:
    """Effectiveness per example id; null for unknown or unrated examples."""
    scores = await tracker.get_example_effectiveness(request.example_ids, request.user_id)
    return EffectivenessResponse(scores=scores)
