"""
Service wiring for the Halloween Photobooth.

Builds the storage, ledger, publisher, collaborators and watcher once at
startup and hands them to the API through ``app.state``.
"""

from dataclasses import dataclass, field
from datetime import timedelta
import time

from fastapi import Request
from loguru import logger

from app.utils.config import Settings
from domains.photobooth.collaborators.fal_wan import FalWanClient, VideoGenerationService
from domains.photobooth.collaborators.gemini import GeminiPromptAnalyzer
from domains.photobooth.ledger import ProcessedFileLedger
from domains.photobooth.publisher import OutputPublisher
from domains.photobooth.storage import LocalStorage
from domains.photobooth.watcher import PhotoWatcher


@dataclass
class PhotoboothServices:
    """Everything the API and the CLI need, owned by one object."""
    settings: Settings
    storage: LocalStorage
    ledger: ProcessedFileLedger
    publisher: OutputPublisher
    watcher: PhotoWatcher
    started_at: float = field(default_factory=time.monotonic)


def build_services(settings: Settings) -> PhotoboothServices:
    """Construct and wire all photobooth services from settings."""
    folders = settings.get_folders()
    storage = LocalStorage(
        input_dir=folders["input"],
        output_dir=folders["output"],
        screensaver_dir=folders["screensaver"],
        temp_dir=folders["temp"],
    )
    ledger = ProcessedFileLedger(
        tracking_file=settings.ledger_path,
        stale_lock_timeout=timedelta(minutes=settings.stale_lock_minutes),
    )
    publisher = OutputPublisher(folders["output"], folders["temp"])

    if not settings.gemini_api_key:
        logger.warning("GEMINI_API_KEY not set - every new photo will fail analysis")
    if not settings.fal_key:
        logger.warning("FAL_KEY not set - videos will be placeholders")

    analyzer = GeminiPromptAnalyzer(
        api_key=settings.gemini_api_key,
        model=settings.gemini_model,
        base_url=settings.gemini_base_url,
        timeout=settings.gemini_timeout,
    )
    generator = VideoGenerationService(
        FalWanClient(
            api_key=settings.fal_key,
            temp_dir=settings.temp_dir,
            model=settings.fal_model,
            base_url=settings.fal_base_url,
            timeout=settings.fal_timeout,
        ),
        temp_dir=settings.temp_dir,
        resolution=settings.video_resolution,
        aspect_ratio=settings.video_aspect_ratio,
        placeholder_fallback=settings.placeholder_fallback,
    )

    watcher = PhotoWatcher(
        storage=storage,
        ledger=ledger,
        analyzer=analyzer,
        generator=generator,
        publisher=publisher,
        poll_interval=settings.poll_interval,
        watch_filesystem_events=settings.watch_filesystem_events,
    )

    return PhotoboothServices(
        settings=settings,
        storage=storage,
        ledger=ledger,
        publisher=publisher,
        watcher=watcher,
    )


def get_services(request: Request) -> PhotoboothServices:
    """FastAPI dependency returning the services built at startup."""
    return request.app.state.services
