"""
Pipeline version model for deterministic processing.

Every stored example carries the versions of the components that produced it,
so examples built by an older extractor or embedding model can be found and
re-ingested.
"""

from pydantic import BaseModel, Field


class PipelineVersion(BaseModel):
    """
    Immutable version contract for the ingestion pipeline.

    Same version parameters guarantee the same features and vector for the same text.
    """

    feature_extractor_version: str = Field(
        description="Feature extractor rule set version", examples=["features-1.0.0"]
    )
    lexicon_version: str = Field(
        description="Marker/polarity lexicon version", examples=["lexicon-en-2025.1"]
    )
    embedding_model_version: str = Field(
        description="Embedding model identifier", examples=["all-MiniLM-L6-v2"]
    )
    embedding_dimensions: int = Field(description="Vector dimensionality", examples=[384], gt=0)
    index_schema_version: str = Field(
        description="Vector index storage schema version", examples=["index-1.0.0"]
    )

    model_config = {
        "frozen": True,  # Immutable
        "json_schema_extra": {
            "example": {
                "feature_extractor_version": "features-1.0.0",
                "lexicon_version": "lexicon-en-2025.1",
                "embedding_model_version": "all-MiniLM-L6-v2",
                "embedding_dimensions": 384,
                "index_schema_version": "index-1.0.0",
            }
        },
    }

    def to_repr(self) -> str:
        """
        Short representation for logging and metrics.

        Returns:
            Compact string representation with key version components.
        """
        return (
            f"Pipeline-{self.feature_extractor_version}-"
            f"{self.embedding_model_version}-{self.embedding_dimensions}"
        )
