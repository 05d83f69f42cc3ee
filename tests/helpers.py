"""Test doubles shared by the photobooth tests."""

from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Tuple


class FakeClock:
    """Settable clock for ledger timeouts."""

    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 10, 31, 20, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeAnalyzer:
    """Records calls and returns a fixed prompt, or raises per file name."""

    def __init__(self, prompt: str = "spooky prompt", errors: Optional[Dict[str, Exception]] = None):
        self.prompt = prompt
        self.errors = errors or {}
        self.calls: List[Path] = []
        self.on_call = None

    async def generate_video_prompt(self, image_path: Path) -> str:
        self.calls.append(Path(image_path))
        if self.on_call is not None:
            await self.on_call(Path(image_path))
        error = self.errors.get(Path(image_path).name)
        if error is not None:
            raise error
        return self.prompt


class FakeGenerator:
    """Writes a fake mp4 plus description into the temp folder."""

    def __init__(self, temp_dir: Path, errors: Optional[Dict[str, Exception]] = None):
        self.temp_dir = Path(temp_dir)
        self.errors = errors or {}
        self.calls: List[Tuple[str, Path, str]] = []

    async def generate_video(self, prompt: str, image_path: Path, original_name: str) -> Optional[Path]:
        self.calls.append((prompt, Path(image_path), original_name))
        error = self.errors.get(original_name)
        if error is not None:
            raise error

        self.temp_dir.mkdir(parents=True, exist_ok=True)
        artifact = self.temp_dir / f"wan_video_{len(self.calls)}.mp4"
        artifact.write_bytes(b"fake video for " + original_name.encode())
        artifact.with_suffix(".txt").write_text(
            f"# Halloween Video\nGenerated from: {original_name}\nPrompt: {prompt}\nVideo file: {artifact.name}\n",
            encoding="utf-8",
        )
        return artifact


class BlockingAnalyzer(FakeAnalyzer):
    """Analyzer that waits until released, to observe in-flight behaviour."""

    def __init__(self):
        super().__init__()
        self.entered = asyncio.Event()
        self.release = asyncio.Event()

        async def _block(_path: Path) -> None:
            self.entered.set()
            await self.release.wait()

        self.on_call = _block


def write_photo(folder: Path, name: str, content: bytes = b"\xff\xd8 photo bytes", age_seconds: float = 0) -> Path:
    """Write a photo and backdate its modification time by ``age_seconds``."""
    folder.mkdir(parents=True, exist_ok=True)
    path = folder / name
    path.write_bytes(content)
    if age_seconds:
        stamp = path.stat().st_mtime - age_seconds
        os.utime(path, (stamp, stamp))
    return path
