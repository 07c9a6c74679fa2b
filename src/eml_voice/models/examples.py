"""
Data models for stored examples, search and usage feedback.

A StoredExample is the unit persisted in the vector index: an immutable core
(vector, text, features, relationship) plus a usage sub-record that only the
index's update_usage_stats may change.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


# ============================================================================
# INPUT BOUNDARY
# ============================================================================

class EmailRecord(BaseModel):
    """Normalized sent email handed over by the ingestion pipeline."""

    id: str = Field(min_length=1, description="Stable example id (account + message id)")
    user_id: str = Field(min_length=1)
    recipient_email: str = Field(default="")
    recipient_name: Optional[str] = Field(default=None)
    subject: str = Field(default="")
    sent_date: datetime
    extracted_text: str = Field(default="", description="User-written reply text only")


# ============================================================================
# STORED EXAMPLE
# ============================================================================

class RelationshipTag(BaseModel):
    """Relationship category attached to a stored example (e.g. spouse, colleagues)."""

    type: str = Field(min_length=1, description="Free-form relationship category")
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)
    detection_method: str = Field(default="user_defined")

    model_config = {"frozen": True}


class UsageStats(BaseModel):
    """Mutable usage/effectiveness record for one example."""

    times_used: int = Field(default=0, ge=0)
    times_edited: int = Field(default=0, ge=0)
    average_edit_distance: Optional[float] = Field(default=None, ge=0.0)
    rating_count: int = Field(default=0, ge=0)
    user_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0, description="Last rating received")
    last_used_at: Optional[datetime] = None
    effectiveness_score: Optional[float] = Field(
        default=None, ge=0.0, le=1.0, description="Mean of all ratings, None until rated"
    )


class ExampleMetadata(BaseModel):
    """Write-once metadata of a stored example (usage lives in `usage`)."""

    extracted_text: str
    recipient_email: str = ""
    subject: str = ""
    sent_date: datetime
    features: Dict[str, Any] = Field(default_factory=dict, description="Reduced EmailFeatures snapshot")
    relationship: RelationshipTag
    frequency_score: float = Field(default=1.0, ge=0.0)
    word_count: int = Field(default=0, ge=0)
    pipeline_version: Optional[str] = Field(default=None, description="PipelineVersion.to_repr()")
    usage: UsageStats = Field(default_factory=UsageStats)


class StoredExample(BaseModel):
    """Persisted (vector, metadata) pair keyed by (user_id, id)."""

    id: str = Field(min_length=1)
    user_id: str = Field(min_length=1)
    vector: List[float]
    metadata: ExampleMetadata

    @field_validator("vector")
    @classmethod
    def validate_vector(cls, v):
        """Reject empty vectors; dimensionality is checked by the index."""
        if not v:
            raise ValueError("vector must not be empty")
        return v


# ============================================================================
# SEARCH
# ============================================================================

class DateRange(BaseModel):
    """Inclusive sent-date range."""

    start: datetime
    end: datetime

    @model_validator(mode="after")
    def validate_order(self):
        if self.start > self.end:
            raise ValueError("date_range.start must be <= date_range.end")
        return self


class SearchParams(BaseModel):
    """Filtered similarity query; all supplied filters are ANDed."""

    user_id: str = Field(min_length=1)
    query_vector: List[float]
    relationship: Optional[str] = None
    recipient_email: Optional[str] = None
    date_range: Optional[DateRange] = None
    exclude_ids: List[str] = Field(default_factory=list)
    score_threshold: Optional[float] = Field(default=None, ge=-1.0, le=1.0)
    limit: Optional[int] = Field(default=None, gt=0)


class SearchResult(BaseModel):
    """One ranked example returned to the draft generator."""

    id: str
    score: float = Field(description="Raw cosine similarity in [-1, 1]")
    metadata: ExampleMetadata
    rank_score: Optional[float] = Field(
        default=None, description="Similarity blended with effectiveness, when re-ranked"
    )


# ============================================================================
# USAGE / FEEDBACK
# ============================================================================

class UsageUpdate(BaseModel):
    """Single usage merge applied by VectorIndex.update_usage_stats."""

    vector_id: str
    user_id: str = Field(min_length=1, description="Owner of the example; ids are unique per user only")
    was_used: bool = False
    was_edited: bool = False
    edit_distance: Optional[float] = Field(default=None, ge=0.0)
    user_rating: Optional[float] = Field(default=None, ge=0.0, le=1.0)


class FeedbackSignal(BaseModel):
    """What the user did with a generated draft."""

    edited: bool = False
    edit_distance: float = Field(default=0.0, ge=0.0, description="Normalized 0-1 edit distance")
    accepted: bool = True
    user_rating: Optional[float] = Field(default=None, description="Explicit rating, clamped to [0, 1]")


class ExampleFeedback(BaseModel):
    draft_id: str = Field(min_length=1)
    example_ids: List[str] = Field(
        default_factory=list, description="Empty: use the examples recorded for the draft"
    )
    user_id: str = Field(min_length=1)
    feedback: FeedbackSignal


# ============================================================================
# BATCH RESULTS
# ============================================================================

class ItemError(BaseModel):
    """Per-item failure inside a batch call."""

    index: int = Field(ge=0)
    reason: str
    item_id: Optional[str] = None


class BatchEmbeddingResult(BaseModel):
    """
    Result of EmbeddingProvider.embed_batch.

    `embeddings` is aligned with the input: failed or unprocessed positions are None.
    """

    embeddings: List[Optional[List[float]]] = Field(default_factory=list)
    errors: List[ItemError] = Field(default_factory=list)
    incomplete: bool = False
    total_time_ms: float = Field(default=0.0, ge=0.0)


class IngestResult(BaseModel):
    """Outcome of RetrievalService.ingest_batch."""

    ingested_ids: List[str] = Field(default_factory=list)
    skipped_duplicates: List[str] = Field(default_factory=list)
    errors: List[ItemError] = Field(default_factory=list)
    incomplete: bool = False
    processing_time_ms: float = Field(default=0.0, ge=0.0)


class ExampleSelection(BaseModel):
    """Examples chosen by ExampleSelector for one draft."""

    relationship: RelationshipTag
    examples: List[SearchResult] = Field(default_factory=list)
    total_candidates: int = Field(default=0, ge=0)
    relationship_matches: int = Field(default=0, ge=0)
    diversity_score: float = Field(default=0.0, ge=0.0, le=1.0)
