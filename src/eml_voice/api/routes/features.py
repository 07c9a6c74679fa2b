"""
Feature extraction endpoint.
"""

from time import time

import structlog
from fastapi import APIRouter

from ...features import extract_email_features
from ...models.api_models import ExtractFeaturesRequest, ExtractFeaturesResponse

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post("/extract", response_model=ExtractFeaturesResponse)
async def extract_features(request: ExtractFeaturesRequest) -> ExtractFeaturesResponse:
    """
    Extract EmailFeatures from the text a user wrote.

    Never fails on content: empty or garbage text yields the neutral,
    zero-count feature set.

    Examples:
        POST /api/v1/features/extract
        {"text": "Hey honey! Love you!", "recipient_hint": "Lisa"}
    """
    start_time = time()
    features = extract_email_features(request.text, recipient_hint=request.recipient_hint)
    processing_time_ms = (time() - start_time) * 1000

    logger.info(
        "features_extract_request_completed",
        word_count=features.stats.word_count,
        familiarity=features.relationship_hints.familiarity_level.value,
        processing_time_ms=processing_time_ms,
    )
    return ExtractFeaturesResponse(features=features, processing_time_ms=processing_time_ms)
