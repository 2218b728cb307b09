"""
Pydantic models for the File Source API.
"""

from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from domains.file_source.pipeline import PollResult


# =====================================================
# Health Models
# =====================================================

class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    store_connected: bool
    trigger_running: bool
    last_poll: Optional[datetime] = None


# =====================================================
# Poll Models
# =====================================================

class FileErrorModel(BaseModel):
    """File that failed to emit."""
    path: str
    error: str
    messages_sent: int = 0


class PollResponse(BaseModel):
    """Outcome of a manual poll."""
    started_at: datetime
    files_accepted: int
    files_emitted: int
    messages_emitted: int
    file_errors: List[FileErrorModel] = []

    @classmethod
    def from_result(cls, result: PollResult) -> "PollResponse":
        return cls(
            started_at=result.started_at,
            files_accepted=result.files_accepted,
            files_emitted=result.files_emitted,
            messages_emitted=result.messages_emitted,
            file_errors=[
                FileErrorModel(path=e.path, error=e.error, messages_sent=e.messages_sent)
                for e in result.file_errors
            ],
        )


class StatsResponse(BaseModel):
    """Pipeline counters."""
    polls: int
    files_emitted: int
    messages_emitted: int
    file_errors: int
    store_errors: int
    last_poll: Optional[datetime] = None
    seen_files: Optional[int] = None  # None when no store or store unreachable


# =====================================================
# Response Models
# =====================================================

class OperationStatus(BaseModel):
    """Generic operation status."""
    status: str
    message: str
