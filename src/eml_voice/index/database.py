"""
Database connection and session management for the vector index.

Any SQLAlchemy URL works; SQLite is the default. In-memory SQLite uses a
single shared connection so every thread sees the same database.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Generator, Optional

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import settings

logger = structlog.get_logger(__name__)

# Global singleton
_engine: Optional[Engine] = None


def is_memory_url(url: str) -> bool:
    """
    Whether the URL points at an in-memory SQLite database.

    Examples:
        >>> is_memory_url("sqlite://")
        True
        >>> is_memory_url("sqlite:///data/eml_voice.db")
        False
    """
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return False
    return parsed.database in (None, "", ":memory:") or parsed.query.get("mode") == "memory"


def is_single_connection(engine: Engine) -> bool:
    """Whether every session of this engine shares one DBAPI connection."""
    return isinstance(engine.pool, StaticPool)


def create_index_engine(url: Optional[str] = None, echo: Optional[bool] = None) -> Engine:
    """
    Create an engine for the vector index.

    Args:
        url: SQLAlchemy URL (default: settings.index_db_url)
        echo: Log SQL statements (default: settings.index_db_echo_sql)

    Returns:
        SQLAlchemy Engine instance

    Examples:
        >>> engine = create_index_engine("sqlite://")
        >>> engine.url.get_backend_name()
        'sqlite'
    """
    url = url or settings.index_db_url
    echo = settings.index_db_echo_sql if echo is None else echo
    parsed = make_url(url)

    if is_memory_url(url):
        engine = create_engine(
            url,
            echo=echo,
            poolclass=StaticPool,
            connect_args={"check_same_thread": False},
        )
    elif parsed.get_backend_name() == "sqlite":
        Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
        engine = create_engine(
            url,
            echo=echo,
            pool_size=settings.index_db_pool_size,
            pool_pre_ping=True,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            echo=echo,
            pool_size=settings.index_db_pool_size,
            pool_pre_ping=True,  # Verify connections before using
        )

    logger.info(
        "index_db_engine_created",
        backend=parsed.get_backend_name(),
        database=parsed.database,
        single_connection=is_single_connection(engine),
    )
    return engine


def get_engine() -> Engine:
    """
    Get or create the application-wide index engine (singleton).

    Returns:
        SQLAlchemy Engine instance
    """
    global _engine

    if _engine is None:
        _engine = create_index_engine()

    return _engine


@contextmanager
def get_db_session(factory: sessionmaker) -> Generator[Session, None, None]:
    """
    Context manager for database sessions with automatic commit/rollback.

    Usage:
        >>> with get_db_session(factory) as session:
        ...     session.add(record)
        ...     # Automatically commits on success, rolls back on exception

    Args:
        factory: Session factory of the index

    Yields:
        SQLAlchemy Session instance

    Raises:
        Exception: Any database exception (after rollback)
    """
    session = factory()

    try:
        yield session
        session.commit()
    except Exception as e:
        session.rollback()
        logger.error("index_db_session_rollback", error=str(e), error_type=type(e).__name__)
        raise
    finally:
        session.close()
