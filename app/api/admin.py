"""
Admin endpoints for photobooth management.

Includes:
- Processing status and process stats
- Processing history reset
- Manual scan trigger
"""

import platform
import sys
import time
from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException
from loguru import logger

from app.models.schemas import OperationStatus, StatsResponse, StatusResponse
from app.services import PhotoboothServices, get_services
from app.utils.helpers import format_uptime
from domains.photobooth.errors import LedgerError

router = APIRouter()


@router.get("/status", response_model=StatusResponse)
async def get_status(services: PhotoboothServices = Depends(get_services)):
    """
    Processing status.

    Returns:
        Watcher running flag, ledger count and folder state
    """
    return StatusResponse(
        status="running",
        file_watcher=services.watcher.get_status(),
        ledger=services.ledger.get_status(),
        storage=services.storage.get_status(),
        timestamp=datetime.now(),
    )


@router.get("/stats", response_model=StatsResponse)
async def get_stats(services: PhotoboothServices = Depends(get_services)):
    """Process statistics for the admin panel."""
    return StatsResponse(
        status="running",
        uptime=format_uptime(time.monotonic() - services.started_at),
        python_version=sys.version.split()[0],
        platform=platform.platform(),
        output_videos=len(services.storage.list_output_videos()),
        screensaver_videos=len(services.storage.list_screensaver_videos()),
        timestamp=datetime.now(),
    )


@router.post("/admin/reset-input", response_model=OperationStatus)
async def reset_input(services: PhotoboothServices = Depends(get_services)):
    """
    Clear all processing history.

    Every photo in the input folder is treated as new (and sent to the
    paid APIs again) on the next check.
    """
    logger.info("Reset input request received")

    try:
        removed = services.ledger.reset_all()
    except LedgerError as e:
        logger.error(f"Error resetting input: {e}")
        raise HTTPException(status_code=500, detail="Failed to reset input processing history")

    return OperationStatus(
        success=True,
        message="Input processing history cleared. All images in input folder will be treated as new.",
        details={"removed": removed},
    )


@router.post("/admin/scan", response_model=OperationStatus)
async def trigger_scan(services: PhotoboothServices = Depends(get_services)):
    """Check the input folder now instead of waiting for the next interval."""
    if not services.watcher.is_running:
        return OperationStatus(success=False, message="Photo watcher is not running")

    logger.info("Manual scan triggered")
    services.watcher.trigger_check()
    return OperationStatus(success=True, message="Input folder scan queued")
