"""
Admin endpoints for the file source.

Includes:
- Manual poll trigger
- Pipeline statistics
- Seen-file reset
"""

from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query
from loguru import logger

from app.api.deps import get_service
from app.models.schemas import OperationStatus, PollResponse, StatsResponse
from app.utils.helpers import normalise_path
from domains.file_source.errors import MetadataStoreError
from domains.file_source.service import FileSourceService

router = APIRouter()


@router.post("/poll", response_model=PollResponse)
def trigger_poll(service: FileSourceService = Depends(get_service)):
    """
    Run one poll immediately.

    Returns:
        Poll outcome; 409 if a poll is already running, 503 if the
        metadata store failed
    """
    logger.info("Manual poll triggered")
    result = service.poll()

    if result.skipped:
        raise HTTPException(status_code=409, detail="A poll is already running")
    if result.store_error:
        raise HTTPException(status_code=503, detail=result.store_error)

    return PollResponse.from_result(result)


@router.get("/stats", response_model=StatsResponse)
def get_stats(service: FileSourceService = Depends(get_service)):
    """
    Get pipeline statistics.

    Returns:
        Poll counters and the number of seen-file records
    """
    stats = service.pipeline.stats

    seen_files = None
    if service.store is not None:
        try:
            seen_files = service.store.count()
        except MetadataStoreError as e:
            logger.warning(f"Could not count seen files: {e}")

    return StatsResponse(
        polls=stats.polls,
        files_emitted=stats.files_emitted,
        messages_emitted=stats.messages_emitted,
        file_errors=stats.file_errors,
        store_errors=stats.store_errors,
        last_poll=stats.last_poll,
        seen_files=seen_files,
    )


@router.delete("/seen", response_model=OperationStatus)
def reset_seen_file(
    path: str = Query(..., description="File path, absolute or relative to the source directory"),
    service: FileSourceService = Depends(get_service),
):
    """
    Forget a file so the next poll emits it again.

    Args:
        path: File to forget
    """
    target = Path(path)
    if not target.is_absolute():
        target = service.pipeline.root / target
    target = normalise_path(target)

    try:
        removed = service.reset(target)
    except MetadataStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))

    if not removed:
        raise HTTPException(status_code=404, detail=f"No seen-record for {target}")

    logger.info(f"Seen-record reset: {target}")
    return OperationStatus(status="removed", message=f"{target} will be emitted on the next poll")
