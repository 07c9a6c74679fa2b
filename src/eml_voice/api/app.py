"""
FastAPI application for the writing-style example service.

Wires feature extraction, example ingestion/search and usage tracking
endpoints with logging and error-handling middleware.
"""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ..config import settings
from ..logging_config import setup_logging
from ..version import API_VERSION
from .middleware import setup_error_handling_middleware, setup_logging_middleware
from .routes import examples, features, health, usage, version

# Setup logging on module import
setup_logging()
logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Handles startup and shutdown events.
    """
    logger.info(
        "api_starting",
        version=API_VERSION,
        log_level=settings.log_level,
        embedding_model=settings.embedding_model_name,
    )
    yield
    logger.info("api_shutting_down")


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI app instance
    """
    app = FastAPI(
        title="EML Voice - Writing Style Example Retrieval",
        description="Deterministic email feature extraction and relationship-aware retrieval of a user's past emails",
        version=API_VERSION,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Custom middleware (order matters - last added = outermost)
    setup_error_handling_middleware(app)
    setup_logging_middleware(app)

    app.include_router(health.router, tags=["Health"])
    app.include_router(version.router, prefix="/api/v1", tags=["Version"])
    app.include_router(features.router, prefix="/api/v1/features", tags=["Features"])
    app.include_router(examples.router, prefix="/api/v1/examples", tags=["Examples"])
    app.include_router(usage.router, prefix="/api/v1/usage", tags=["Usage"])

    return app


# Create app instance
app = create_app()


def main() -> None:
    """
    Entry point for running the API server directly.

    For development use. In production, use uvicorn directly.
    """
    import uvicorn

    uvicorn.run(
        "eml_voice.api.app:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=True,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
