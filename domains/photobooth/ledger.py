"""
Processed-file ledger.

Durable map from fingerprint to ``FileRecord``, persisted as one JSON
document and rewritten in full on every mutation. The ledger is the single
source of truth for whether a photo was already sent to the generation
services.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from loguru import logger
from pydantic import ValidationError

from app.utils.helpers import now_utc
from domains.photobooth.errors import LedgerPersistenceError
from domains.photobooth.hasher import fingerprint_file
from domains.photobooth.models import FileRecord, ProcessingStatus

DEFAULT_STALE_LOCK_TIMEOUT = timedelta(minutes=10)


class ProcessedFileLedger:
    """Tracks which input photos are in flight or already handled."""

    def __init__(
        self,
        tracking_file: str | Path = "./processed-files.json",
        stale_lock_timeout: timedelta = DEFAULT_STALE_LOCK_TIMEOUT,
        clock: Callable[[], datetime] = now_utc,
    ):
        """
        Initialize ledger.

        Args:
            tracking_file: JSON file holding the ledger
            stale_lock_timeout: age after which a PROCESSING record is abandoned
            clock: source of aware "now" timestamps
        """
        self.tracking_file = Path(tracking_file)
        self.stale_lock_timeout = stale_lock_timeout
        self.clock = clock
        self.is_initialized = False

        self._records: Dict[str, FileRecord] = {}
        self._lock = threading.RLock()

    # Loading / saving ----------------------------------------------------------------

    def initialize(self) -> bool:
        """Load the ledger from disk. A missing or corrupt file starts empty."""
        with self._lock:
            self._records = self._load()
            self.is_initialized = True

        logger.success(f"Processed file ledger initialized - {len(self._records)} files tracked")
        return True

    def _load(self) -> Dict[str, FileRecord]:
        if not self.tracking_file.exists():
            logger.info("No existing tracking file found - starting fresh")
            return {}

        try:
            raw = json.loads(self.tracking_file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Could not load processed files tracking - starting fresh: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning("Tracking file is not a JSON object - starting fresh")
            return {}

        records: Dict[str, FileRecord] = {}
        for key, payload in raw.items():
            try:
                record = FileRecord.model_validate(payload)
            except ValidationError as e:
                logger.warning(f"Skipping malformed ledger entry {key[:8]}: {e.error_count()} errors")
                continue
            records[record.fingerprint] = record

        logger.info(f"Loaded {len(records)} processed files from tracking file")
        return records

    def _save(self) -> None:
        """Rewrite the whole ledger atomically."""
        payload = {key: record.as_json_ready() for key, record in self._records.items()}

        tmp_path = self.tracking_file.with_name(self.tracking_file.name + ".tmp")
        try:
            tmp_path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
            tmp_path.replace(self.tracking_file)
        except OSError as e:
            logger.error(f"Failed to save processed files tracking: {e}")
            raise LedgerPersistenceError(f"Cannot write {self.tracking_file}: {e}") from e

    # Queries -------------------------------------------------------------------------

    def is_processed(self, file_path: str | Path, file_name: str, fingerprint: Optional[str] = None) -> bool:
        """
        Check whether a photo already reached COMPLETED.

        The fingerprint match is authoritative. A record with the same name,
        path and byte size is accepted as a fallback for files whose
        fingerprint shifted (creation time rewritten by a copy tool, or records
        written by earlier releases, which hashed a different timestamp format).
        Paths are compared after normalisation.

        Raises:
            HashFailure: the file cannot be fingerprinted
        """
        fingerprint = fingerprint or fingerprint_file(file_path)

        with self._lock:
            record = self._records.get(fingerprint)
            if record is not None and record.status is ProcessingStatus.COMPLETED:
                logger.debug(f"File already processed: {file_name} (processed: {record.recorded_at.isoformat()})")
                return True

            size = _file_size(file_path)
            if size is None:
                return False

            for candidate in self._records.values():
                if (
                    candidate.status is ProcessingStatus.COMPLETED
                    and candidate.file_name == file_name
                    and _same_path(candidate.file_path, file_path)
                    and candidate.file_size == size
                ):
                    logger.debug(f"File already processed (by name): {file_name}")
                    return True

        return False

    def is_currently_processing(
        self, file_path: str | Path, file_name: str, fingerprint: Optional[str] = None
    ) -> bool:
        """
        Check whether a live PROCESSING lock exists for a photo.

        Locks older than ``stale_lock_timeout`` are treated as abandoned by a
        crashed earlier run and do not count.

        Raises:
            HashFailure: the file cannot be fingerprinted
        """
        fingerprint = fingerprint or fingerprint_file(file_path)

        with self._lock:
            record = self._records.get(fingerprint)

        if record is None or record.status is not ProcessingStatus.PROCESSING:
            return False

        if self.clock() - record.recorded_at > self.stale_lock_timeout:
            logger.warning(f"Processing timeout detected for {file_name} - will retry")
            return False

        logger.debug(f"File currently being processed: {file_name}")
        return True

    def get_record(self, fingerprint: str) -> Optional[FileRecord]:
        with self._lock:
            return self._records.get(fingerprint)

    def records(self) -> List[FileRecord]:
        with self._lock:
            return list(self._records.values())

    def count(self) -> int:
        """Number of tracked records, any status."""
        with self._lock:
            return len(self._records)

    # Mutations -----------------------------------------------------------------------

    def mark_processing(
        self, file_path: str | Path, file_name: str, fingerprint: Optional[str] = None
    ) -> FileRecord:
        """Take the PROCESSING lock for a photo and persist it before returning."""
        record = self._upsert(file_path, file_name, ProcessingStatus.PROCESSING, None, fingerprint)
        logger.info(f"Marked as processing: {file_name} (hash: {record.short_hash}...)")
        return record

    def mark_processed(
        self,
        file_path: str | Path,
        file_name: str,
        output_reference: Optional[str] = None,
        fingerprint: Optional[str] = None,
    ) -> FileRecord:
        """
        Move a photo to COMPLETED and persist it before returning.

        ``output_reference`` stays None when generation or publishing failed;
        the photo is still never retried automatically.
        """
        record = self._upsert(file_path, file_name, ProcessingStatus.COMPLETED, output_reference, fingerprint)
        logger.success(f"Marked as processed: {file_name} (hash: {record.short_hash}...)")
        return record

    def _upsert(
        self,
        file_path: str | Path,
        file_name: str,
        status: ProcessingStatus,
        output_reference: Optional[str],
        fingerprint: Optional[str],
    ) -> FileRecord:
        fingerprint = fingerprint or fingerprint_file(file_path)

        with self._lock:
            previous = self._records.get(fingerprint)

            try:
                stats = os.stat(file_path)
                file_size: Optional[int] = stats.st_size
                file_modified: Optional[datetime] = datetime.fromtimestamp(stats.st_mtime, tz=timezone.utc)
            except OSError:
                # Photo removed mid-pipeline; keep what the lock recorded.
                file_size = previous.file_size if previous else None
                file_modified = previous.file_modified if previous else None

            record = FileRecord(
                fingerprint=fingerprint,
                file_name=file_name,
                file_path=str(file_path),
                file_size=file_size,
                file_modified=file_modified,
                status=status,
                recorded_at=self.clock(),
                output_reference=output_reference,
            )
            self._records[fingerprint] = record
            try:
                self._save()
            except LedgerPersistenceError:
                if previous is None:
                    del self._records[fingerprint]
                else:
                    self._records[fingerprint] = previous
                raise

        return record

    def reset_all(self) -> int:
        """
        Forget every record and delete the tracking file.

        Every photo in the input folder is treated as new afterwards.

        Returns:
            Number of records removed
        """
        with self._lock:
            removed = len(self._records)
            logger.info(f"Resetting all processed files ({removed} files)")
            self._records.clear()

            try:
                self.tracking_file.unlink(missing_ok=True)
            except OSError as e:
                raise LedgerPersistenceError(f"Cannot delete {self.tracking_file}: {e}") from e

        logger.success("All processed files reset - input folder will be treated as new")
        return removed

    def get_status(self) -> Dict[str, Any]:
        """Summary used by the status endpoint."""
        return {
            "is_initialized": self.is_initialized,
            "total_processed": self.count(),
            "tracking_file": str(self.tracking_file),
            "tracking_file_exists": self.tracking_file.exists(),
        }


def _same_path(stored: str | Path, queried: str | Path) -> bool:
    """Compare paths after normalisation (`./input/a.jpg` equals `input/a.jpg`)."""
    return os.path.normcase(os.path.abspath(stored)) == os.path.normcase(os.path.abspath(queried))


def _file_size(file_path: str | Path) -> Optional[int]:
    try:
        return os.stat(file_path).st_size
    except OSError:
        return None
