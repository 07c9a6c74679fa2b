"""
Version constants for the example retrieval pipeline.

This module defines all version constants used throughout the pipeline to ensure
deterministic processing and a complete audit trail on stored examples.
"""

from typing import Optional

from .config import settings
from .models.pipeline_version import PipelineVersion

# API Version
API_VERSION = "1.0.0"

# Component versions (update these when implementations change)
FEATURE_EXTRACTOR_VERSION = "features-1.0.0"
LEXICON_VERSION = "lexicon-en-2025.1"
INDEX_SCHEMA_VERSION = "index-1.0.0"


def get_current_pipeline_version(
    embedding_model_version: Optional[str] = None,
    embedding_dimensions: Optional[int] = None,
) -> PipelineVersion:
    """
    Get current pipeline version configuration.

    Args:
        embedding_model_version: Model of the provider actually in use
            (default: settings.embedding_model_name)
        embedding_dimensions: Its vector size (default: settings.embedding_dimensions)

    Returns:
        PipelineVersion instance with current versions
    """
    return PipelineVersion(
        feature_extractor_version=FEATURE_EXTRACTOR_VERSION,
        lexicon_version=LEXICON_VERSION,
        embedding_model_version=embedding_model_version or settings.embedding_model_name,
        embedding_dimensions=embedding_dimensions or settings.embedding_dimensions,
        index_schema_version=INDEX_SCHEMA_VERSION,
    )
