"""
Style example endpoints: ingestion, search, selection, relationship views, deletion.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query

from ...models.api_models import (
    DeleteUserDataResponse,
    ExampleView,
    IngestRequest,
    IngestResponse,
    RelationshipExamplesResponse,
    RelationshipStatsResponse,
    SearchRequest,
    SearchResponse,
    SelectExamplesRequest,
)
from ...models.examples import ExampleSelection
from ...retrieval.selector import ExampleSelector
from ...retrieval.service import RetrievalService
from ..dependencies import get_example_selector, get_retrieval_service

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/ingest", response_model=IngestResponse)
async def ingest_examples(
    request: IngestRequest,
    service: RetrievalService = Depends(get_retrieval_service),
) -> IngestResponse:
    """
    Store a batch of sent emails as style examples.

    Partial failures are reported per item in `result.errors`; the call
    itself succeeds. `result.incomplete` is set when the deadline expired.
    """
    logger.info("ingest_request_received", email_count=len(request.emails))
    result = await service.ingest_batch(
        request.emails,
        overrides=request.relationship_overrides,
        deadline_seconds=request.deadline_seconds,
    )
    return IngestResponse(result=result)


@router.post("/search", response_model=SearchResponse)
async def search_examples(
    request: SearchRequest,
    service: RetrievalService = Depends(get_retrieval_service),
) -> SearchResponse:
    """
    Similarity search over one user's examples.

    Backend failures degrade to an empty result list.
    """
    results = await service.search(
        request.user_id,
        query_text=request.query_text,
        relationship=request.relationship,
        recipient_email=request.recipient_email,
        date_range=request.date_range,
        exclude_ids=request.exclude_ids,
        score_threshold=request.score_threshold,
        limit=request.limit,
    )
    return SearchResponse(results=results, count=len(results))


@router.post("/select", response_model=ExampleSelection)
async def select_examples(
    request: SelectExamplesRequest,
    selector: ExampleSelector = Depends(get_example_selector),
) -> ExampleSelection:
    """Pick relationship-matched, diverse examples for a reply."""
    return await selector.select_examples(
        request.user_id,
        request.incoming_text,
        request.recipient_email,
        desired_count=request.desired_count,
        overrides=request.relationship_overrides,
    )


@router.get("/{user_id}/relationships", response_model=RelationshipStatsResponse)
async def relationship_stats(
    user_id: str,
    service: RetrievalService = Depends(get_retrieval_service),
) -> RelationshipStatsResponse:
    stats = await service.get_relationship_stats(user_id)
    return RelationshipStatsResponse(user_id=user_id, stats=stats, total=sum(stats.values()))


@router.get("/{user_id}/relationships/{relationship_type}", response_model=RelationshipExamplesResponse)
async def relationship_examples(
    user_id: str,
    relationship_type: str,
    limit: Optional[int] = Query(default=None, gt=0),
    service: RetrievalService = Depends(get_retrieval_service),
) -> RelationshipExamplesResponse:
    """Most recent examples of one relationship type ("aggregate" for all types)."""
    examples = await service.get_by_relationship(user_id, relationship_type, limit)
    return RelationshipExamplesResponse(
        user_id=user_id,
        relationship_type=relationship_type,
        examples=[ExampleView(id=e.id, metadata=e.metadata) for e in examples],
    )


@router.delete("/{user_id}", response_model=DeleteUserDataResponse)
async def delete_user_examples(
    user_id: str,
    service: RetrievalService = Depends(get_retrieval_service),
) -> DeleteUserDataResponse:
    """Remove every stored example and usage record of the user."""
    deleted = await service.delete_user_data(user_id)
    return DeleteUserDataResponse(user_id=user_id, deleted=deleted)
