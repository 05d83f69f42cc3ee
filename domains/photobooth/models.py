"""Data models for the photobooth pipeline."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ProcessingStatus(str, Enum):
    """Ledger state of a fingerprint. Absence from the ledger means "new"."""

    PROCESSING = "processing"
    COMPLETED = "completed"


class FileRecord(BaseModel):
    """
    One ledger entry per distinct fingerprint.

    Field aliases match the keys of the tracking file written by earlier
    photobooth releases, so an existing ``processed-files.json`` loads as is.
    """

    model_config = ConfigDict(populate_by_name=True)

    fingerprint: str = Field(alias="fileHash")
    file_name: str = Field(alias="fileName")
    file_path: str = Field(alias="filePath")
    file_size: Optional[int] = Field(default=None, alias="fileSize")
    file_modified: Optional[datetime] = Field(default=None, alias="fileModified")
    status: ProcessingStatus
    recorded_at: datetime = Field(alias="processedAt")
    output_reference: Optional[str] = Field(default=None, alias="videoOutput")

    @field_validator("recorded_at", "file_modified")
    @classmethod
    def _assume_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def short_hash(self) -> str:
        return self.fingerprint[:8]

    def as_json_ready(self) -> Dict[str, Any]:
        """Return the on-disk representation."""
        return self.model_dump(mode="json", by_alias=True)


@dataclass(slots=True)
class MediaFile:
    """A photo or video found in one of the storage folders."""

    id: str
    name: str
    path: Path
    created_at: datetime
    mime_type: str
    size: int

    def as_json_ready(self) -> Dict[str, object]:
        """Return a JSON serialisable payload for API responses."""

        return {
            "id": self.id,
            "name": self.name,
            "path": str(self.path),
            "createdTime": self.created_at.isoformat(),
            "mimeType": self.mime_type,
            "size": self.size,
        }
