"""
Health check endpoint.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from datetime import datetime

from app.services import PhotoboothServices, get_services

router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    timestamp: datetime
    watcher_running: bool
    ledger_initialized: bool
    version: str


@router.get("/health", response_model=HealthResponse)
async def health_check(services: PhotoboothServices = Depends(get_services)):
    """
    Health check endpoint.

    Verifies:
    - API is running
    - Photo watcher is polling
    - Ledger was loaded
    """
    watcher_running = services.watcher.is_running
    ledger_initialized = services.ledger.is_initialized

    return HealthResponse(
        status="healthy" if watcher_running and ledger_initialized else "degraded",
        timestamp=datetime.now(),
        watcher_running=watcher_running,
        ledger_initialized=ledger_initialized,
        version=services.settings.api_version
    )
