"""
Pydantic models for the Halloween Photobooth API.

Shared response models across the routers.
"""

from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict, Field


# =====================================================
# Gallery Models
# =====================================================

class MediaFileOut(BaseModel):
    """Video (or photo) listed by the gallery."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    path: str
    created_time: datetime = Field(alias="createdTime")
    mime_type: str = Field(alias="mimeType")
    size: int


# =====================================================
# Status Models
# =====================================================

class LedgerStatus(BaseModel):
    """Processed-file ledger summary."""
    is_initialized: bool
    total_processed: int
    tracking_file: str
    tracking_file_exists: bool


class WatcherStatus(BaseModel):
    """Photo watcher summary."""
    is_running: bool
    processed_count: int
    last_check: Optional[str] = None
    poll_interval: float


class StorageStatus(BaseModel):
    """Folder summary."""
    is_initialized: bool
    folders: Dict[str, str]
    folder_exists: Dict[str, bool]


class StatusResponse(BaseModel):
    """Combined processing status."""
    status: str
    file_watcher: WatcherStatus
    ledger: LedgerStatus
    storage: StorageStatus
    timestamp: datetime


class StatsResponse(BaseModel):
    """Process statistics for the admin panel."""
    status: str
    uptime: str
    python_version: str
    platform: str
    output_videos: int
    screensaver_videos: int
    timestamp: datetime


# =====================================================
# Response Models
# =====================================================

class OperationStatus(BaseModel):
    """Generic operation status."""
    success: bool
    message: str
    details: Optional[Dict[str, Any]] = None

