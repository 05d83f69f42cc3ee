"""
Configuration management for the Halloween Photobooth.

Uses pydantic-settings to load configuration from environment variables
and .env files.
"""

from functools import lru_cache
from pathlib import Path
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # API Configuration
    api_port: int = 3000
    log_level: str = "INFO"
    api_title: str = "Halloween Photobooth API"
    api_version: str = "1.0.0"

    # Folder Configuration
    input_dir: Path = Path("./input")
    output_dir: Path = Path("./output")
    screensaver_dir: Path = Path("./screensaver")
    temp_dir: Path = Path("./temp")
    ledger_path: Path = Path("./processed-files.json")

    # Watcher Configuration
    poll_interval: float = 15.0  # seconds
    stale_lock_minutes: float = 10.0
    watch_filesystem_events: bool = True
    watcher_autostart: bool = True

    # Gemini Configuration (photo analysis -> video prompt)
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    gemini_timeout: float = 60.0

    # fal.ai Configuration (WAN 2.2 Turbo image-to-video)
    fal_key: Optional[str] = None
    fal_model: str = "fal-ai/wan/v2.2-a14b/image-to-video/turbo"
    fal_base_url: str = "https://fal.run"
    fal_timeout: float = 600.0
    video_resolution: str = "720p"
    video_aspect_ratio: str = "16:9"
    placeholder_fallback: bool = True

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    def get_folders(self) -> dict[str, Path]:
        """Named storage folders."""
        return {
            "input": self.input_dir,
            "output": self.output_dir,
            "screensaver": self.screensaver_dir,
            "temp": self.temp_dir,
        }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
