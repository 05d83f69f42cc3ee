"""
External AI collaborators of the photobooth pipeline.

- gemini.py - photo analysis -> video prompt (Gemini generateContent)
- fal_wan.py - prompt + photo -> video (WAN 2.2 Turbo on fal.ai)

The watcher depends only on the two protocols below, so tests and other
vendors can plug in their own implementations.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Protocol


class PhotoAnalyzer(Protocol):
    """Turns a photo into a free-form video generation prompt."""

    async def generate_video_prompt(self, image_path: Path) -> str:
        ...


class VideoGenerator(Protocol):
    """Turns a prompt and its source photo into a video artifact on disk."""

    async def generate_video(self, prompt: str, image_path: Path, original_name: str) -> Optional[Path]:
        ...


__all__ = ["PhotoAnalyzer", "VideoGenerator"]
