"""
Health check endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from app.api.deps import get_service
from app.models.schemas import HealthResponse
from domains.file_source.service import FileSourceService

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
def health_check(service: FileSourceService = Depends(get_service)):
    """
    Health check endpoint.

    Verifies:
    - API is running
    - Metadata store is reachable
    - Poll trigger is scheduled
    """
    store_connected = service.store_connected()

    return HealthResponse(
        status="healthy" if store_connected else "degraded",
        timestamp=datetime.now(timezone.utc),
        store_connected=store_connected,
        trigger_running=service.trigger.running,
        last_poll=service.pipeline.stats.last_poll,
    )
