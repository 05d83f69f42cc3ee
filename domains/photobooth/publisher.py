"""
Output publisher.

Moves a generated video and its ``.txt`` description from the temp folder
into the output folder. Copy then delete, since temp and output may live on
different volumes. Only files inside the temp folder are ever deleted.
"""

from __future__ import annotations

import os
import re
import shutil
from pathlib import Path
from typing import List, Optional

from loguru import logger

from app.utils.helpers import epoch_millis, sanitize_filename
from domains.photobooth.errors import PublishFailure

PLACEHOLDER_SUFFIX = "_placeholder"
COMPANION_EXTENSION = ".txt"

_VIDEO_FILE_LINE = re.compile(r"^Video file:.*$", re.MULTILINE)


def build_output_name(original_name: str, artifact_suffix: str, millis: Optional[int] = None) -> str:
    """
    Final file name for a published video.

    ``photo1.jpg`` with a ``.mp4`` artifact becomes ``<ms>_photo1_halloween.mp4``.
    """
    stem = sanitize_filename(Path(original_name).stem) or "photo"
    millis = epoch_millis() if millis is None else millis
    return f"{millis}_{stem}_halloween{artifact_suffix.lower()}"


def companion_candidates(artifact: Path) -> List[Path]:
    """
    Possible locations of the description file written next to an artifact.

    ``wan_video_1.mp4`` -> ``wan_video_1.txt``;
    ``video_1_photo_placeholder.jpg`` -> ``video_1_photo.txt`` as well.
    """
    candidates = [artifact.with_suffix(COMPANION_EXTENSION)]
    if artifact.stem.endswith(PLACEHOLDER_SUFFIX):
        base = artifact.stem[: -len(PLACEHOLDER_SUFFIX)]
        candidates.append(artifact.with_name(base + COMPANION_EXTENSION))
    return candidates


class OutputPublisher:
    """Relocates generated artifacts into the durable output folder."""

    def __init__(self, output_dir: Path, temp_dir: Path):
        self.output_dir = Path(output_dir)
        self.temp_dir = Path(temp_dir)

    def publish(self, scratch_path: Path, final_name: str, destination: Optional[Path] = None) -> Path:
        """
        Copy an artifact (and its description) into the output folder.

        Args:
            scratch_path: Artifact in the temp folder
            final_name: File name to use in the destination
            destination: Target folder, defaults to the output folder

        Returns:
            Path of the published artifact

        Raises:
            PublishFailure: the artifact itself could not be copied
        """
        scratch_path = Path(scratch_path)
        destination = Path(destination) if destination else self.output_dir
        final_path = destination / final_name

        try:
            destination.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(scratch_path, final_path)
        except OSError as e:
            raise PublishFailure(f"Failed to copy {scratch_path} to {final_path}: {e}") from e

        logger.success(f"Video saved to output folder: {final_name}")

        companion = next((c for c in companion_candidates(scratch_path) if c.is_file()), None)
        if companion is not None:
            self._publish_companion(companion, final_path)

        for leftover in (scratch_path, companion):
            if leftover is None:
                continue
            if not self._in_temp_dir(leftover):
                logger.warning(f"Not removing {leftover}: outside temp folder {self.temp_dir}")
                continue
            try:
                leftover.unlink(missing_ok=True)
            except OSError as e:
                logger.warning(f"Could not clean up temp file {leftover}: {e}")

        return final_path

    def _in_temp_dir(self, path: Path) -> bool:
        return Path(os.path.abspath(path)).is_relative_to(os.path.abspath(self.temp_dir))

    def _publish_companion(self, companion: Path, final_path: Path) -> None:
        """Copy the description file and point its ``Video file:`` line at the final name."""
        target = final_path.with_suffix(COMPANION_EXTENSION)

        try:
            content = companion.read_text(encoding="utf-8")
            content = _VIDEO_FILE_LINE.sub(lambda _: f"Video file: {final_path.name}", content)
            target.write_text(content, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Could not publish metadata file {companion.name}: {e}")
            return

        logger.info(f"Metadata file saved to output folder: {target.name}")
