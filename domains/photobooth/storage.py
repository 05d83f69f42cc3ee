"""
Local folder storage for the photobooth.

Scans the input folder for new photos and lists the videos shown by the
gallery (output folder) and the idle screensaver (screensaver folder).
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional

from loguru import logger

from app.utils.helpers import get_mime_type, is_hidden, is_image_file, is_video_file, safe_child
from domains.photobooth.hasher import file_created_at
from domains.photobooth.models import MediaFile


def _is_gallery_file(name: str) -> bool:
    return is_video_file(name) or is_image_file(name)


class LocalStorage:
    """Input, output, screensaver and temp folders on the local disk."""

    def __init__(
        self,
        input_dir: Path = Path("./input"),
        output_dir: Path = Path("./output"),
        screensaver_dir: Path = Path("./screensaver"),
        temp_dir: Path = Path("./temp"),
    ):
        self.folders: Dict[str, Path] = {
            "input": Path(input_dir),
            "output": Path(output_dir),
            "screensaver": Path(screensaver_dir),
            "temp": Path(temp_dir),
        }
        self.is_initialized = False

    @property
    def input_dir(self) -> Path:
        return self.folders["input"]

    @property
    def output_dir(self) -> Path:
        return self.folders["output"]

    @property
    def screensaver_dir(self) -> Path:
        return self.folders["screensaver"]

    @property
    def temp_dir(self) -> Path:
        return self.folders["temp"]

    def initialize(self) -> bool:
        """Create every storage folder that does not exist yet."""
        logger.info("Initializing local storage...")

        for folder_type, folder in self.folders.items():
            if folder.is_dir():
                logger.debug(f"{folder_type} folder exists: {folder}")
                continue
            try:
                folder.mkdir(parents=True, exist_ok=True)
                logger.success(f"Created {folder_type} folder: {folder}")
            except OSError as e:
                logger.error(f"Failed to create {folder_type} folder {folder}: {e}")
                return False

        self.is_initialized = True
        return True

    # Listing -------------------------------------------------------------------------

    def list_input_files(self) -> List[MediaFile]:
        """
        List photos waiting in the input folder, newest first.

        Never raises: a missing or unreadable folder yields an empty list and
        files that disappear mid-scan are skipped.
        """
        files = self._scan(self.input_dir, is_image_file)
        files.sort(key=lambda item: item.created_at, reverse=True)
        return files

    def list_output_videos(self) -> List[MediaFile]:
        """
        Generated videos, newest first.

        Includes placeholder images published when video generation failed.
        """
        videos = self._scan(self.output_dir, _is_gallery_file)
        videos.sort(key=lambda item: item.created_at, reverse=True)
        return videos

    def list_screensaver_videos(self) -> List[MediaFile]:
        """Screensaver videos in name order."""
        videos = self._scan(self.screensaver_dir, is_video_file)
        videos.sort(key=lambda item: item.name)
        return videos

    def _scan(self, folder: Path, accept: Callable[[str], bool]) -> List[MediaFile]:
        try:
            entries = list(folder.iterdir())
        except OSError as e:
            logger.debug(f"Cannot list {folder}: {e}")
            return []

        found: List[MediaFile] = []
        for entry in entries:
            if is_hidden(entry) or not accept(entry.name):
                continue
            try:
                if not entry.is_file():
                    continue
                stats = entry.stat()
            except OSError:
                continue

            found.append(
                MediaFile(
                    id=entry.name,
                    name=entry.name,
                    path=entry,
                    created_at=file_created_at(stats),
                    mime_type=get_mime_type(entry.name),
                    size=stats.st_size,
                )
            )

        return found

    # Gallery access ------------------------------------------------------------------

    def resolve_video(self, file_name: str) -> Optional[Path]:
        """Find a video in the output folder, then the screensaver folder."""
        for folder in (self.output_dir, self.screensaver_dir):
            candidate = safe_child(folder, file_name)
            if candidate is not None and candidate.is_file():
                return candidate
        return None

    def delete_video(self, video_id: str) -> bool:
        """
        Delete a video from the output or screensaver folder.

        Returns:
            True if a file was deleted, False if none was found
        """
        path = self.resolve_video(video_id)
        if path is None:
            return False

        path.unlink()
        logger.info(f"Deleted video: {path.name}")
        return True

    def get_folder_paths(self) -> Dict[str, str]:
        return {key: str(folder) for key, folder in self.folders.items()}

    def get_status(self) -> Dict[str, object]:
        """Summary used by the status endpoint."""
        return {
            "is_initialized": self.is_initialized,
            "folders": self.get_folder_paths(),
            "folder_exists": {key: folder.is_dir() for key, folder in self.folders.items()},
        }
