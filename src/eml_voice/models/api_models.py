"""
API request and response models for FastAPI endpoints.

This module defines the Pydantic models used for API request/response validation.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, Field

from .examples import (
    DateRange,
    EmailRecord,
    ExampleMetadata,
    FeedbackSignal,
    IngestResult,
    SearchResult,
)
from .features import EmailFeatures, RecipientHint
from .pipeline_version import PipelineVersion


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(description="Service status", examples=["healthy"])
    version: str = Field(description="API version", examples=["1.0.0"])
    uptime_seconds: float = Field(description="Service uptime")
    index_healthy: bool = Field(default=True, description="Whether the vector index answered")


class VersionResponse(BaseModel):
    """Version information response."""

    api_version: str = Field(description="API version")
    pipeline_version: PipelineVersion = Field(
        description="Current pipeline version"
    )


# ============================================================================
# FEATURES
# ============================================================================

class ExtractFeaturesRequest(BaseModel):
    text: str = Field(default="", description="Email body written by the user")
    recipient_hint: Optional[Union[str, RecipientHint]] = Field(
        default=None, description="Recipient display name or address, or {name, email}"
    )


class ExtractFeaturesResponse(BaseModel):
    features: EmailFeatures
    processing_time_ms: float = Field(ge=0.0)


# ============================================================================
# EXAMPLES
# ============================================================================

class IngestRequest(BaseModel):
    """Batch of sent emails to store as style examples."""

    emails: List[EmailRecord] = Field(default_factory=list)
    relationship_overrides: Dict[str, str] = Field(
        default_factory=dict,
        description="recipient_email -> relationship type (user-defined tags)",
    )
    deadline_seconds: Optional[float] = Field(
        default=None, gt=0.0, description="Stop cleanly after this many seconds"
    )


class IngestResponse(BaseModel):
    result: IngestResult


class SearchRequest(BaseModel):
    """Search by raw text (embedded server-side)."""

    user_id: str = Field(min_length=1)
    query_text: str = Field(min_length=1)
    relationship: Optional[str] = None
    recipient_email: Optional[str] = None
    date_range: Optional[DateRange] = None
    exclude_ids: List[str] = Field(default_factory=list)
    score_threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    limit: Optional[int] = Field(default=None, gt=0)


class SearchResponse(BaseModel):
    results: List[SearchResult] = Field(default_factory=list)
    count: int = Field(ge=0)


class RelationshipStatsResponse(BaseModel):
    user_id: str
    stats: Dict[str, int] = Field(default_factory=dict, description="relationship type -> example count")
    total: int = Field(ge=0)


class ExampleView(BaseModel):
    """Stored example without its vector."""

    id: str
    metadata: ExampleMetadata


class RelationshipExamplesResponse(BaseModel):
    user_id: str
    relationship_type: str
    examples: List[ExampleView] = Field(default_factory=list)


class SelectExamplesRequest(BaseModel):
    """Pick examples for a reply to one recipient."""

    user_id: str = Field(min_length=1)
    incoming_text: str = Field(min_length=1, description="Email being replied to")
    recipient_email: str = Field(min_length=1)
    desired_count: Optional[int] = Field(default=None, gt=0)
    relationship_overrides: Dict[str, str] = Field(default_factory=dict)


class DeleteUserDataResponse(BaseModel):
    user_id: str
    deleted: int = Field(ge=0, description="Number of examples removed")


# ============================================================================
# USAGE
# ============================================================================

class TrackUsageRequest(BaseModel):
    draft_id: str = Field(min_length=1)
    example_ids: List[str] = Field(default_factory=list)
    user_id: str = Field(min_length=1)


class TrackFeedbackRequest(BaseModel):
    draft_id: str = Field(min_length=1)
    example_ids: List[str] = Field(default_factory=list)
    user_id: str = Field(min_length=1)
    feedback: FeedbackSignal


class EffectivenessRequest(BaseModel):
    example_ids: List[str] = Field(default_factory=list)
    user_id: str = Field(min_length=1)


class EffectivenessResponse(BaseModel):
    scores: Dict[str, Optional[float]] = Field(
        default_factory=dict, description="example id -> effectiveness, null when no data"
    )


class AcceptedResponse(BaseModel):
    accepted: bool = True
    applied: Optional[int] = Field(default=None, description="Usage records updated, when known")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
