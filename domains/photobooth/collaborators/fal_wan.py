"""
Video generation with WAN 2.2 Turbo on fal.ai.

``FalWanClient`` talks to the fal.run endpoint and downloads the result into
the temp folder. ``VideoGenerationService`` wraps it and falls back to a
placeholder artifact (a copy of the photo) when generation fails, so the
gallery still gets something to show.
"""

from __future__ import annotations

import asyncio
import base64
import shutil
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.utils.helpers import epoch_millis, format_bytes, get_mime_type, sanitize_filename
from domains.photobooth.errors import (
    AuthenticationError,
    ExternalServiceFailure,
    ServiceUnavailableError,
    error_from_response,
)
from domains.photobooth.prompts import render_metadata

SERVICE = "fal-wan"
_DOWNLOAD_CHUNK = 64 * 1024


class FalWanClient:
    """Client for the WAN 2.2 Turbo image-to-video model."""

    def __init__(
        self,
        api_key: Optional[str],
        temp_dir: Path,
        model: str = "fal-ai/wan/v2.2-a14b/image-to-video/turbo",
        base_url: str = "https://fal.run",
        timeout: float = 600.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.temp_dir = Path(temp_dir)
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _build_input(self, prompt: str, image_path: Path, resolution: str, aspect_ratio: str) -> Dict[str, Any]:
        encoded = base64.b64encode(image_path.read_bytes()).decode("ascii")
        return {
            "image_url": f"data:{get_mime_type(image_path.name)};base64,{encoded}",
            "prompt": prompt,
            "resolution": resolution,
            "aspect_ratio": aspect_ratio,
            # Horror costumes trip the default checker
            "enable_safety_checker": False,
            "expand_prompt": True,
        }

    async def generate(
        self,
        prompt: str,
        image_path: Path,
        original_name: str,
        resolution: str = "720p",
        aspect_ratio: str = "16:9",
    ) -> Path:
        """
        Generate a video and download it into the temp folder.

        Returns:
            Path of ``wan_video_<ms>.mp4``; a ``.txt`` description is written next to it

        Raises:
            ExternalServiceFailure: missing key, API error, bad response or failed download
        """
        if not self.api_key:
            raise AuthenticationError("FAL key not configured", service=SERVICE)

        image_path = Path(image_path)
        logger.info(f"Generating video with {self.model} for {original_name}")
        logger.debug(f"Prompt: {prompt[:100]}...")

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport, follow_redirects=True
            ) as client:
                response = await client.post(
                    f"{self.base_url}/{self.model}",
                    headers={"Authorization": f"Key {self.api_key}"},
                    json=self._build_input(prompt, image_path, resolution, aspect_ratio),
                )
                if response.is_error:
                    raise error_from_response(SERVICE, response)

                video_url = self._extract_video_url(response.json())
                self.temp_dir.mkdir(parents=True, exist_ok=True)
                output_path = self.temp_dir / f"wan_video_{epoch_millis()}.mp4"
                await self._download(client, video_url, output_path)

        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"WAN request failed: {e}", service=SERVICE) from e

        output_path.with_suffix(".txt").write_text(
            render_metadata(
                title="WAN 2.2 Turbo Generated",
                original_name=original_name,
                prompt=prompt,
                model="WAN 2.2 Turbo via fal.ai",
                video_file=output_path.name,
                note="This video was generated using WAN 2.2 Turbo image-to-video AI.",
            ),
            encoding="utf-8",
        )

        logger.success(f"Video generated with WAN 2.2 Turbo: {output_path}")
        return output_path

    @staticmethod
    def _extract_video_url(data: Dict[str, Any]) -> str:
        video = data.get("video") or (data.get("data") or {}).get("video") or {}
        url = video.get("url") if isinstance(video, dict) else None
        if not url:
            raise ExternalServiceFailure("No video URL in WAN response", service=SERVICE, payload=data)
        return url

    async def _download(self, client: httpx.AsyncClient, url: str, output_path: Path) -> None:
        logger.info("Downloading video from WAN...")
        try:
            async with client.stream("GET", url) as response:
                if response.is_error:
                    raise ExternalServiceFailure(
                        f"Download failed with status: {response.status_code}",
                        service=SERVICE,
                        status_code=response.status_code,
                    )
                with output_path.open("wb") as handle:
                    async for chunk in response.aiter_bytes(_DOWNLOAD_CHUNK):
                        handle.write(chunk)
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise

        logger.info(f"Video downloaded: {output_path} ({format_bytes(output_path.stat().st_size)})")


class VideoGenerationService:
    """``VideoGenerator`` backed by WAN with a placeholder fallback."""

    def __init__(
        self,
        client: FalWanClient,
        temp_dir: Path,
        resolution: str = "720p",
        aspect_ratio: str = "16:9",
        placeholder_fallback: bool = True,
    ):
        self.client = client
        self.temp_dir = Path(temp_dir)
        self.resolution = resolution
        self.aspect_ratio = aspect_ratio
        self.placeholder_fallback = placeholder_fallback

    async def generate_video(self, prompt: str, image_path: Path, original_name: str) -> Optional[Path]:
        """Generate a video, or a placeholder artifact when WAN fails."""
        logger.info(f"Prompt length: {len(prompt)} characters")

        try:
            return await self.client.generate(
                prompt,
                Path(image_path),
                original_name,
                resolution=self.resolution,
                aspect_ratio=self.aspect_ratio,
            )
        except (ExternalServiceFailure, OSError) as e:
            if not self.placeholder_fallback:
                raise
            logger.warning(f"WAN generation failed: {e}")
            logger.info("Falling back to placeholder video...")

        return await asyncio.to_thread(self.create_placeholder, Path(image_path), original_name, prompt)

    def create_placeholder(self, image_path: Path, original_name: str, prompt: str) -> Path:
        """
        Copy the photo into the temp folder as a stand-in for the video.

        Writes ``video_<ms>_<stem>_placeholder<ext>`` and ``video_<ms>_<stem>.txt``.
        """
        self.temp_dir.mkdir(parents=True, exist_ok=True)
        base = f"video_{epoch_millis()}_{sanitize_filename(Path(original_name).stem) or 'photo'}"
        placeholder = self.temp_dir / f"{base}_placeholder{image_path.suffix.lower() or '.jpg'}"

        shutil.copyfile(image_path, placeholder)
        (self.temp_dir / f"{base}.txt").write_text(
            render_metadata(
                title="Placeholder",
                original_name=original_name,
                prompt=prompt,
                model="Placeholder (WAN 2.2 Turbo unavailable)",
                video_file=placeholder.name,
                note="This would be replaced by the actual WAN 2.2 Turbo generated video.",
            ),
            encoding="utf-8",
        )

        logger.warning(f"Created placeholder instead of actual video: {placeholder.name}")
        return placeholder
