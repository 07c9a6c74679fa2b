"""
Application configuration management.

This module handles configuration from environment variables using Pydantic Settings.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """
    Application configuration from environment variables.

    All settings can be overridden via environment variables with the same name.
    """

    # API settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_workers: int = 4

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    # Vector index database
    index_db_url: str = "sqlite:///data/eml_voice.db"
    index_db_pool_size: int = 10
    index_db_echo_sql: bool = False

    # Embedding provider
    embedding_model_name: str = "all-MiniLM-L6-v2"
    embedding_dimensions: int = 384
    embedding_max_text_length: int = 512  # Characters, model has token limits
    embedding_batch_size: int = 32
    embedding_max_concurrency: int = 4

    # Search
    search_default_limit: int = 50
    search_score_threshold: float = 0.3  # Raw cosine, see DESIGN.md
    near_duplicate_threshold: float = 0.95
    skip_near_duplicates: bool = True
    effectiveness_rank_weight: float = 0.1  # 0.0 = rank purely by similarity

    # Example selection
    example_count: int = 25
    example_min_relationship_matches: int = 10
    diversity_weight: float = 0.3

    # Retry (transient I/O errors)
    retry_max_attempts: int = 3
    retry_delay_seconds: float = 0.5
    retry_backoff_factor: float = 2.0

    # Batch ingestion
    ingest_batch_size: int = 100
    ingest_deadline_seconds: float = 0.0  # 0 = no deadline

    # Feature extraction cut points
    sentence_length_concise: float = 10.0
    sentence_length_elaborate: float = 20.0

    # Relationship detection (comma-separated domains)
    relationship_colleague_domains: str = ""
    relationship_personal_domains: str = "gmail.com,yahoo.com,hotmail.com,outlook.com,icloud.com"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


# Global settings instance
settings = Settings()
