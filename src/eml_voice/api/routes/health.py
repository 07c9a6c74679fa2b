"""
Health check endpoint for monitoring.
"""

import asyncio
import time

from fastapi import APIRouter, Depends

from ...index.base import VectorIndex
from ...models.api_models import HealthResponse
from ...version import API_VERSION
from ..dependencies import get_index

router = APIRouter()

# Track start time for uptime calculation
_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(index: VectorIndex = Depends(get_index)) -> HealthResponse:
    """
    Health check endpoint for monitoring.

    Returns:
        Health status, uptime and whether the vector index answers
    """
    index_healthy = await asyncio.to_thread(index.health_check)
    return HealthResponse(
        status="healthy" if index_healthy else "degraded",
        version=API_VERSION,
        uptime_seconds=time.time() - _start_time,
        index_healthy=index_healthy,
    )
