"""
Shared FastAPI dependencies.
"""

from fastapi import HTTPException, Request

from domains.file_source.service import FileSourceService


def get_service(request: Request) -> FileSourceService:
    """Return the service started by the application lifespan."""
    service = request.app.state.service
    if service is None:
        raise HTTPException(status_code=503, detail="File source not initialised")
    return service
