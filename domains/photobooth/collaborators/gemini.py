"""
Photo analysis with Gemini.

Sends the photobooth picture and the master director prompt to the Gemini
``generateContent`` REST endpoint and returns the video prompt it writes.
"""

from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict, Optional

import httpx
from loguru import logger

from app.utils.helpers import get_mime_type
from domains.photobooth.errors import (
    AuthenticationError,
    ContentSafetyError,
    ExternalServiceFailure,
    ServiceUnavailableError,
    error_from_response,
)
from domains.photobooth.prompts import MASTER_PROMPT

SERVICE = "gemini"


class GeminiPromptAnalyzer:
    """Client generating video prompts from photos."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str = "gemini-2.5-flash",
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        master_prompt: str = MASTER_PROMPT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.master_prompt = master_prompt
        self._transport = transport

    def _build_request(self, image_path: Path) -> Dict[str, Any]:
        image_data = base64.b64encode(image_path.read_bytes()).decode("ascii")
        return {
            "contents": [
                {
                    "role": "user",
                    "parts": [
                        {"text": self.master_prompt},
                        {"inline_data": {"mime_type": get_mime_type(image_path.name), "data": image_data}},
                    ],
                }
            ]
        }

    async def generate_video_prompt(self, image_path: Path) -> str:
        """
        Analyze a photo and return a video generation prompt.

        Raises:
            AuthenticationError: no API key configured or key rejected
            ContentSafetyError: the photo or answer was blocked
            RateLimitError: Gemini throttled the request
            ExternalServiceFailure: any other API failure or an empty answer
        """
        if not self.api_key:
            raise AuthenticationError("Gemini API key not configured", service=SERVICE)

        image_path = Path(image_path)
        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.info(f"Generating video prompt with {self.model} for {image_path.name}")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    headers={"x-goog-api-key": self.api_key},
                    json=self._build_request(image_path),
                )
        except httpx.HTTPError as e:
            raise ServiceUnavailableError(f"Gemini request failed: {e}", service=SERVICE) from e

        if response.is_error:
            raise error_from_response(SERVICE, response)

        prompt = self._extract_text(response.json())
        logger.success(f"Video prompt generated ({len(prompt)} characters)")
        return prompt

    @staticmethod
    def _extract_text(data: Dict[str, Any]) -> str:
        block_reason = (data.get("promptFeedback") or {}).get("blockReason")
        if block_reason:
            raise ContentSafetyError(f"Gemini blocked the photo: {block_reason}", service=SERVICE, payload=data)

        candidates = data.get("candidates") or []
        if not candidates:
            raise ExternalServiceFailure("Gemini returned no candidates", service=SERVICE, payload=data)

        candidate = candidates[0]
        if candidate.get("finishReason") == "SAFETY":
            raise ContentSafetyError("Gemini answer stopped by safety filters", service=SERVICE, payload=data)

        parts = (candidate.get("content") or {}).get("parts") or []
        text = "\n".join(part["text"] for part in parts if part.get("text")).strip()
        if not text:
            raise ExternalServiceFailure("Gemini returned an empty prompt", service=SERVICE, payload=data)

        return text
