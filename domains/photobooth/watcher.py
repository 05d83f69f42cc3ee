"""
Photo watcher for the photobooth domain.

Polls the input folder on a fixed interval (and on watchdog file events)
and drives every new photo through analysis -> video generation -> publish,
recording each step in the processed-file ledger.

Each photo is sent to the paid APIs at most once: the ledger lock is taken
before any external call, and the photo is marked completed whatever the
outcome.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from app.utils.helpers import is_image_file, now_iso
from domains.photobooth.collaborators import PhotoAnalyzer, VideoGenerator
from domains.photobooth.errors import HashFailure, LedgerError, PublishFailure
from domains.photobooth.hasher import fingerprint_file
from domains.photobooth.ledger import ProcessedFileLedger
from domains.photobooth.models import MediaFile
from domains.photobooth.publisher import OutputPublisher, build_output_name
from domains.photobooth.storage import LocalStorage


class InputFolderEventHandler(FileSystemEventHandler):
    """Watchdog handler that wakes the poll loop when a photo lands."""

    def __init__(self, watcher: "PhotoWatcher", loop: asyncio.AbstractEventLoop):
        super().__init__()
        self.watcher = watcher
        self.loop = loop

    def on_created(self, event: FileSystemEvent):
        """Handle photo creation."""
        if event.is_directory or not is_image_file(str(event.src_path)):
            return
        logger.debug(f"Created: {event.src_path}")
        self._wake()

    def on_moved(self, event: FileSystemEvent):
        """Handle a photo renamed into the folder (e.g. finished upload)."""
        dest = getattr(event, "dest_path", None)
        if event.is_directory or not dest or not is_image_file(str(dest)):
            return
        logger.debug(f"Moved: {event.src_path} -> {dest}")
        self._wake()

    def _wake(self):
        self.loop.call_soon_threadsafe(self.watcher.trigger_check)


class PhotoWatcher:
    """Poll loop orchestrating the single-use photo pipeline."""

    def __init__(
        self,
        storage: LocalStorage,
        ledger: ProcessedFileLedger,
        analyzer: PhotoAnalyzer,
        generator: VideoGenerator,
        publisher: OutputPublisher,
        poll_interval: float = 15.0,
        watch_filesystem_events: bool = False,
    ):
        """
        Initialize photo watcher.

        Args:
            storage: Folder access, used to scan the input folder
            ledger: Processed-file ledger
            analyzer: Photo -> prompt collaborator
            generator: Prompt + photo -> video collaborator
            publisher: Moves generated videos into the output folder
            poll_interval: Seconds between two checks
            watch_filesystem_events: Also check as soon as watchdog sees a new photo
        """
        self.storage = storage
        self.ledger = ledger
        self.analyzer = analyzer
        self.generator = generator
        self.publisher = publisher
        self.poll_interval = poll_interval
        self.watch_filesystem_events = watch_filesystem_events

        self.is_running = False
        self.last_check: Optional[str] = None

        self._task: Optional[asyncio.Task] = None
        self._wake: Optional[asyncio.Event] = None
        self._tick_lock: Optional[asyncio.Lock] = None
        self._observer: Optional[Observer] = None

    # Lifecycle -----------------------------------------------------------------------

    async def start(self):
        """Load the ledger and start the background poll loop."""
        if self.is_running:
            logger.warning("Photo watcher already running")
            return

        logger.info("Starting photo watcher...")

        if not self.ledger.is_initialized:
            await asyncio.to_thread(self.ledger.initialize)

        self._wake = asyncio.Event()
        self.is_running = True

        if self.watch_filesystem_events:
            self._start_observer()

        self._task = asyncio.create_task(self._run(), name="photo-watcher")
        logger.success(f"Photo watcher started (every {self.poll_interval:g}s on {self.storage.input_dir})")

    async def stop(self):
        """
        Stop polling.

        A photo already in the pipeline is allowed to finish so paid API work
        is not thrown away; no new photo is started.
        """
        if not self.is_running:
            return

        logger.info("Stopping photo watcher...")
        self.is_running = False
        self._stop_observer()

        if self._wake is not None:
            self._wake.set()
        if self._task is not None:
            await self._task
            self._task = None

        logger.info("Photo watcher stopped")

    def trigger_check(self):
        """Run the next check now instead of waiting for the interval."""
        if self._wake is not None:
            self._wake.set()

    async def _run(self):
        while self.is_running:
            await self.check_for_new_files()

            if not self.is_running:
                break
            try:
                await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
            self._wake.clear()

    def _start_observer(self):
        input_dir = self.storage.input_dir
        if not input_dir.is_dir():
            logger.warning(f"Input folder missing, file events disabled: {input_dir}")
            return

        try:
            observer = Observer()
            observer.schedule(
                InputFolderEventHandler(self, asyncio.get_running_loop()), str(input_dir), recursive=False
            )
            observer.daemon = True
            observer.start()
        except Exception as e:
            logger.error(f"Failed to watch {input_dir}: {e}")
            return

        self._observer = observer
        logger.info(f"Watching {input_dir} for file events")

    def _stop_observer(self):
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join()
        self._observer = None

    # Polling -------------------------------------------------------------------------

    async def check_for_new_files(self) -> int:
        """
        Run one tick: scan, filter through the ledger, process new photos.

        Never raises. Ticks never overlap.

        Returns:
            Number of photos that went through the pipeline
        """
        if self._tick_lock is None:
            self._tick_lock = asyncio.Lock()

        async with self._tick_lock:
            processed = 0
            try:
                input_files = await asyncio.to_thread(self.storage.list_input_files)

                for file in input_files:
                    if self._task is not None and not self.is_running:
                        break

                    fingerprint = await self._claimable_fingerprint(file)
                    if fingerprint is None:
                        continue

                    logger.info(f"New photo detected: {file.name}")
                    await self.process_new_photo(file, fingerprint)
                    processed += 1

            except Exception as e:
                logger.error(f"Error checking for new files: {e}")

            self.last_check = now_iso()
            return processed

    async def _claimable_fingerprint(self, file: MediaFile) -> Optional[str]:
        """Fingerprint of a photo that is neither done nor locked, else None."""
        try:
            fingerprint = await asyncio.to_thread(fingerprint_file, file.path)
        except HashFailure as e:
            logger.warning(f"Skipping {file.name} this round: {e}")
            return None

        if await asyncio.to_thread(self.ledger.is_processed, file.path, file.name, fingerprint):
            return None
        if await asyncio.to_thread(self.ledger.is_currently_processing, file.path, file.name, fingerprint):
            return None

        return fingerprint

    async def process_new_photo(self, file: MediaFile, fingerprint: Optional[str] = None) -> Optional[str]:
        """
        Send one photo through analysis -> generation -> publish.

        Returns:
            Final output path, or None if any step failed
        """
        started = asyncio.get_running_loop().time()
        logger.info(f"Processing photo: {file.name}")

        try:
            record = await asyncio.to_thread(
                self.ledger.mark_processing, file.path, file.name, fingerprint
            )
        except (HashFailure, LedgerError) as e:
            logger.error(f"Could not lock {file.name}, skipping this round: {e}")
            return None
        fingerprint = record.fingerprint

        output_reference: Optional[str] = None
        try:
            logger.info("Step 1: Generating video prompt...")
            prompt = await self.analyzer.generate_video_prompt(file.path)

            logger.info("Step 2: Generating video...")
            artifact = await self.generator.generate_video(prompt, file.path, file.name)

            if artifact is not None and Path(artifact).is_file():
                logger.info("Step 3: Moving video to output folder...")
                output_reference = await self._publish(Path(artifact), file)
            else:
                logger.warning(f"No video produced for {file.name}")

        except Exception as e:
            logger.error(f"Failed to process photo {file.name}: {e}")

        try:
            await asyncio.to_thread(
                self.ledger.mark_processed, file.path, file.name, output_reference, fingerprint
            )
        except LedgerError as e:
            logger.error(f"Could not persist completion of {file.name}: {e}")

        elapsed = asyncio.get_running_loop().time() - started
        if output_reference:
            logger.success(f"Single-use processing completed in {elapsed:.1f}s: {file.name} will never be processed again")
        else:
            logger.warning(f"{file.name} marked as processed despite failure to prevent costly retries")

        return output_reference

    async def _publish(self, artifact: Path, file: MediaFile) -> Optional[str]:
        final_name = build_output_name(file.name, artifact.suffix)
        try:
            final_path = await asyncio.to_thread(self.publisher.publish, artifact, final_name)
        except PublishFailure as e:
            logger.error(f"Publish failed for {file.name}: {e}")
            return None
        return str(final_path)

    def get_status(self) -> dict:
        """Summary used by the status endpoint."""
        return {
            "is_running": self.is_running,
            "processed_count": self.ledger.count(),
            "last_check": self.last_check,
            "poll_interval": self.poll_interval,
            "ledger": self.ledger.get_status(),
        }
