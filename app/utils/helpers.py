"""
Helper utilities for the Halloween Photobooth.

Common functions used across the API and the photobooth domain.
"""

import re
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional


IMAGE_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.gif', '.bmp', '.webp', '.raw', '.cr2', '.nef'}
VIDEO_EXTENSIONS = {'.mp4', '.mov', '.avi', '.mkv', '.webm'}

MIME_TYPES = {
    '.mp4': 'video/mp4',
    '.mov': 'video/quicktime',
    '.avi': 'video/x-msvideo',
    '.mkv': 'video/x-matroska',
    '.webm': 'video/webm',
    '.jpg': 'image/jpeg',
    '.jpeg': 'image/jpeg',
    '.png': 'image/png',
    '.gif': 'image/gif',
    '.bmp': 'image/bmp',
    '.webp': 'image/webp',
}


def now_utc() -> datetime:
    """Get current timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current timestamp as ISO string."""
    return now_utc().isoformat()


def epoch_millis() -> int:
    """Milliseconds since the epoch, used to build unique file names."""
    return int(time.time() * 1000)


def sanitize_filename(filename: str) -> str:
    """Sanitize filename by removing invalid characters."""
    # Remove invalid filename characters
    sanitized = re.sub(r'[<>:"/\\|?*\s]', '_', filename)
    # Remove leading/trailing spaces and dots
    sanitized = sanitized.strip('. ')
    # Limit length
    if len(sanitized) > 255:
        sanitized = sanitized[:255]
    return sanitized


def get_file_extension(path: Path) -> str:
    """Get lower-cased file extension including the dot."""
    return path.suffix.lower()


def is_image_file(name: str) -> bool:
    """Check whether a file name has a recognised photo extension."""
    return get_file_extension(Path(name)) in IMAGE_EXTENSIONS


def is_video_file(name: str) -> bool:
    """Check whether a file name has a recognised video extension."""
    return get_file_extension(Path(name)) in VIDEO_EXTENSIONS


def get_mime_type(name: str) -> str:
    """Guess MIME type from extension."""
    return MIME_TYPES.get(get_file_extension(Path(name)), 'application/octet-stream')


def is_hidden(path: Path) -> bool:
    """Check if path is hidden (starts with dot)."""
    return path.name.startswith('.')


def safe_child(folder: Path, name: str) -> Optional[Path]:
    """
    Resolve ``name`` inside ``folder``.

    Returns None when the name is empty or tries to leave the folder
    (path separators, ``..``).
    """
    if not name or Path(name).name != name or name in {'.', '..'}:
        return None
    return folder / name


def format_bytes(bytes_count: int) -> str:
    """Format bytes as human-readable string."""
    for unit in ['B', 'KB', 'MB', 'GB', 'TB']:
        if bytes_count < 1024.0:
            return f"{bytes_count:.1f} {unit}"
        bytes_count /= 1024.0
    return f"{bytes_count:.1f} PB"


def format_uptime(seconds: float) -> str:
    """Format elapsed seconds as ``1h 2m 3s``."""
    seconds = int(seconds)
    return f"{seconds // 3600}h {(seconds % 3600) // 60}m {seconds % 60}s"
