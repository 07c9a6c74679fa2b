# Data models for the writing-style example retrieval pipeline

from .pipeline_version import PipelineVersion
from .features import EmailFeatures
from .examples import (
    BatchEmbeddingResult,
    DateRange,
    EmailRecord,
    ExampleFeedback,
    ExampleMetadata,
    ExampleSelection,
    FeedbackSignal,
    IngestResult,
    ItemError,
    RelationshipTag,
    SearchParams,
    SearchResult,
    StoredExample,
    UsageStats,
    UsageUpdate,
)
from .api_models import HealthResponse, VersionResponse

__all__ = [
    "PipelineVersion",
    "EmailFeatures",
    "BatchEmbeddingResult",
    "DateRange",
    "EmailRecord",
    "ExampleFeedback",
    "ExampleMetadata",
    "ExampleSelection",
    "FeedbackSignal",
    "IngestResult",
    "ItemError",
    "RelationshipTag",
    "SearchParams",
    "SearchResult",
    "StoredExample",
    "UsageStats",
    "UsageUpdate",
    "HealthResponse",
    "VersionResponse",
]
