"""
Content + metadata fingerprinting for input photos.

A fingerprint survives renames and process restarts but changes when the
file's bytes, size or creation time change.
"""

from __future__ import annotations

import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path

from domains.photobooth.errors import HashFailure

_READ_CHUNK = 1024 * 1024


def file_created_at(stats: os.stat_result) -> datetime:
    """
    Creation time of a file as an aware UTC datetime.

    Uses the birth time where the platform records one. Elsewhere falls back
    to the modification time, which (unlike ``st_ctime`` on Linux) is left
    alone by renames.
    """
    created = getattr(stats, "st_birthtime", None)
    if created is None:
        created = stats.st_mtime
    return datetime.fromtimestamp(created, tz=timezone.utc)


def fingerprint_file(path: str | Path) -> str:
    """
    Compute the SHA-256 fingerprint of a file.

    The digest covers the full content, the byte size and the creation
    timestamp.

    Raises:
        HashFailure: the file was removed or cannot be read
    """
    path = Path(path)
    digest = hashlib.sha256()

    try:
        with path.open("rb") as handle:
            stats = os.fstat(handle.fileno())
            for chunk in iter(lambda: handle.read(_READ_CHUNK), b""):
                digest.update(chunk)
    except OSError as e:
        raise HashFailure(str(path), e.strerror or str(e)) from e

    digest.update(str(stats.st_size).encode())
    digest.update(file_created_at(stats).isoformat().encode())

    return digest.hexdigest()
