"""
Structured logging configuration using structlog.

Every event carries the service name and the pipeline version that produced
it, so log lines can be matched with the `pipeline_version` stamped on
stored examples.
"""

import logging
from typing import Optional

import structlog

from .config import settings
from .version import get_current_pipeline_version


SERVICE_NAME = "eml-voice"


def add_service_context(
    _logger: structlog.types.WrappedLogger,
    _method_name: str,
    event_dict: structlog.types.EventDict,
) -> structlog.types.EventDict:
    """Stamp service name and pipeline version unless the event already has them."""
    event_dict.setdefault("service", SERVICE_NAME)
    event_dict.setdefault("pipeline_version", get_current_pipeline_version().to_repr())
    return event_dict


def setup_logging(log_level: Optional[str] = None, log_json: Optional[bool] = None) -> None:
    """
    Configure structlog for structured logging.

    Args:
        log_level: Minimum level name (default: settings.log_level)
        log_json: JSON lines when True, console rendering otherwise
            (default: settings.log_json)
    """
    level = (log_level or settings.log_level).upper()
    json_output = settings.log_json if log_json is None else log_json

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            add_service_context,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            (
                structlog.processors.JSONRenderer()
                if json_output
                else structlog.dev.ConsoleRenderer()
            ),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(logging.getLevelName(level)),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
