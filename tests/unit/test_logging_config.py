"""
Unit tests for the structlog configuration.
"""

from unittest.mock import MagicMock

import pytest
import structlog

from eml_voice.logging_config import SERVICE_NAME, add_service_context, setup_logging
from eml_voice.version import get_current_pipeline_version


@pytest.mark.unit
class TestAddServiceContext:
    """Processor stamping service and pipeline version."""

    def test_adds_service_and_version(self):
        """Both fields are added to a plain event."""
        result = add_service_context(MagicMock(), "info", {"event": "test"})

        assert result["service"] == SERVICE_NAME
        assert result["pipeline_version"] == get_current_pipeline_version().to_repr()

    def test_keeps_existing_values(self):
        """Values bound by the caller win."""
        event = {"event": "test", "service": "worker", "pipeline_version": "custom"}

        result = add_service_context(MagicMock(), "info", event)

        assert result["service"] == "worker"
        assert result["pipeline_version"] == "custom"


@pytest.mark.unit
class TestSetupLogging:
    def test_explicit_arguments_override_settings(self):
        """Level names are case-insensitive and the processor chain includes the stamp."""
        setup_logging(log_level="debug", log_json=True)

        config = structlog.get_config()
        assert add_service_context in config["processors"]
        assert isinstance(config["processors"][-1], structlog.processors.JSONRenderer)
        setup_logging()

    def test_console_rendering(self):
        """log_json=False renders for humans."""
        setup_logging(log_json=False)

        assert isinstance(structlog.get_config()["processors"][-1], structlog.dev.ConsoleRenderer)
        setup_logging()
