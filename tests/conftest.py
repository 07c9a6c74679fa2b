"""
Global pytest fixtures and configuration for test suite.

This module provides reusable fixtures for:
- A deterministic embedding provider (no model download)
- An in-memory SQLite vector index
- Retrieval service and usage tracker wired to both
- HTTP client with the index/provider dependencies overridden
- Sample sent emails
"""

import os
from datetime import datetime, timedelta
from typing import AsyncGenerator, List

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from eml_voice.config import Settings, settings
from eml_voice.index.database import create_index_engine
from eml_voice.index.sql_index import SqlVectorIndex
from eml_voice.models.examples import EmailRecord
from eml_voice.retrieval.relationship import RelationshipDetector
from eml_voice.retrieval.service import RetrievalService
from eml_voice.usage.tracker import UsageTracker

from tests.fixtures.examples import TEST_DIMENSIONS, HashEmbeddingProvider


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def fast_retries(monkeypatch):
    """No backoff sleeps in tests."""
    monkeypatch.setattr(settings, "retry_delay_seconds", 0.0)


@pytest.fixture
def index() -> SqlVectorIndex:
    """Fresh in-memory vector index."""
    return SqlVectorIndex(engine=create_index_engine("sqlite://"), dimensions=TEST_DIMENSIONS)


@pytest.fixture
def provider() -> HashEmbeddingProvider:
    return HashEmbeddingProvider()


@pytest.fixture
def detector() -> RelationshipDetector:
    return RelationshipDetector(
        colleague_domains=frozenset(["acme.io"]),
        personal_domains=frozenset(["gmail.com"]),
    )


@pytest.fixture
def service(index, provider, detector) -> RetrievalService:
    return RetrievalService(
        index=index,
        provider=provider,
        detector=detector,
        skip_near_duplicates=True,
        effectiveness_weight=0.0,
    )


@pytest.fixture
def tracker(index) -> UsageTracker:
    return UsageTracker(index)


@pytest_asyncio.fixture
async def async_client(index, provider) -> AsyncGenerator[AsyncClient, None]:
    """
    Create async HTTP client for testing FastAPI endpoints.

    The app uses the in-memory index and the hashing provider.

    Yields:
        AsyncClient instance
    """
    from eml_voice.api.app import app
    from eml_voice.api.dependencies import get_embedding_provider, get_index

    app.dependency_overrides[get_index] = lambda: index
    app.dependency_overrides[get_embedding_provider] = lambda: provider

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_settings() -> Settings:
    """
    Create mock settings for testing with safe defaults.

    Returns:
        Settings instance with test configuration
    """
    return Settings(
        index_db_url="sqlite://",
        embedding_dimensions=TEST_DIMENSIONS,
        log_level="INFO",
        log_json=False,  # Easier to read in tests
    )


@pytest.fixture
def sample_emails() -> List[EmailRecord]:
    """Three sent emails of one user to different kinds of recipients."""
    base = datetime(2025, 3, 1, 9, 0, 0)
    return [
        EmailRecord(
            id="acct-1:msg-1",
            user_id="user-1",
            recipient_email="lisa@gmail.com",
            recipient_name="Lisa",
            subject="Tonight",
            sent_date=base,
            extracted_text="Hey honey! Just wanted to let you know I'll be home late tonight. Love you! 💕",
        ),
        EmailRecord(
            id="acct-1:msg-2",
            user_id="user-1",
            recipient_email="sarah@acme.io",
            recipient_name="Sarah Connor",
            subject="Quarterly report",
            sent_date=base + timedelta(days=1),
            extracted_text="Hi Sarah, the quarterly report is attached. Could you review the budget section by Friday?",
        ),
        EmailRecord(
            id="acct-1:msg-3",
            user_id="user-1",
            recipient_email="dr.johnson@clinic.org",
            recipient_name="Dr. Johnson",
            subject="Appointment",
            sent_date=base + timedelta(days=2),
            extracted_text=(
                "Dear Dr. Johnson, I hope this email finds you well. Pursuant to our "
                "conversation last week, I am writing to request an appointment."
            ),
        ),
    ]


@pytest.fixture
def fixed_timestamp() -> datetime:
    """
    Provide fixed timestamp for deterministic testing.

    Returns:
        Fixed datetime for reproducible tests
    """
    return datetime(2026, 2, 12, 10, 30, 0)


@pytest.fixture(autouse=True)
def reset_env_vars():
    """
    Reset environment variables before each test.

    This prevents test pollution from env var changes.
    """
    original_env = os.environ.copy()
    yield
    os.environ.clear()
    os.environ.update(original_env)


# Configuration for pytest-asyncio
def pytest_configure(config):
    """
    Configure pytest with custom markers and settings.
    """
    config.addinivalue_line(
        "markers", "unit: Unit tests (fast, no external dependencies)"
    )
    config.addinivalue_line(
        "markers", "integration: Integration tests (API, end-to-end)"
    )
    config.addinivalue_line(
        "markers", "slow: Slow tests that may take longer to run"
    )
