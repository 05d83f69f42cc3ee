import asyncio
import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from domains.photobooth.errors import HashFailure, LedgerPersistenceError
from domains.photobooth.hasher import fingerprint_file
from domains.photobooth.ledger import ProcessedFileLedger
from domains.photobooth.models import ProcessingStatus
from domains.photobooth.publisher import OutputPublisher
from domains.photobooth.storage import LocalStorage
from domains.photobooth.watcher import PhotoWatcher
from tests.helpers import FakeClock, write_photo


@pytest.fixture()
def photo(folders):
    return write_photo(folders["input"], "photo1.jpg", b"x" * 512)


def test_new_photo_is_neither_processed_nor_locked(ledger, photo):
    assert ledger.count() == 0
    assert ledger.is_processed(photo, "photo1.jpg") is False
    assert ledger.is_currently_processing(photo, "photo1.jpg") is False


def test_processing_then_completed(ledger, photo):
    ledger.mark_processing(photo, "photo1.jpg")

    assert ledger.is_currently_processing(photo, "photo1.jpg") is True
    assert ledger.is_processed(photo, "photo1.jpg") is False

    record = ledger.mark_processed(photo, "photo1.jpg", "./output/1_photo1_halloween.mp4")

    assert record.status is ProcessingStatus.COMPLETED
    assert ledger.is_processed(photo, "photo1.jpg") is True
    assert ledger.is_currently_processing(photo, "photo1.jpg") is False
    assert ledger.count() == 1


def test_persistence_round_trip(ledger, ledger_path, photo):
    ledger.mark_processing(photo, "photo1.jpg")
    ledger.mark_processed(photo, "photo1.jpg", "./output/1_photo1_halloween.mp4")

    reloaded = ProcessedFileLedger(ledger_path)
    reloaded.initialize()

    assert reloaded.is_processed(photo, "photo1.jpg") is True
    record = reloaded.get_record(fingerprint_file(photo))
    assert record.output_reference == "./output/1_photo1_halloween.mp4"
    assert record.file_size == 512


def test_tracking_file_uses_legacy_keys(ledger, ledger_path, photo):
    ledger.mark_processed(photo, "photo1.jpg", None)

    data = json.loads(ledger_path.read_text())
    (key, entry), = data.items()

    assert entry["fileHash"] == key
    assert entry["fileName"] == "photo1.jpg"
    assert entry["status"] == "completed"
    assert entry["videoOutput"] is None
    assert {"filePath", "fileSize", "fileModified", "processedAt"} <= entry.keys()


def test_failed_generation_completes_without_reference(ledger, photo):
    ledger.mark_processing(photo, "photo1.jpg")
    record = ledger.mark_processed(photo, "photo1.jpg", None)

    assert record.output_reference is None
    assert ledger.is_processed(photo, "photo1.jpg") is True


def test_stale_lock_is_not_live(ledger, clock, photo):
    ledger.mark_processing(photo, "photo1.jpg")

    clock.advance(minutes=9)
    assert ledger.is_currently_processing(photo, "photo1.jpg") is True

    clock.advance(minutes=2)
    assert ledger.is_currently_processing(photo, "photo1.jpg") is False


def test_stale_lock_loaded_from_disk(ledger_path, photo):
    fingerprint = fingerprint_file(photo)
    started = datetime.now(timezone.utc) - timedelta(minutes=30)
    ledger_path.write_text(json.dumps({
        fingerprint: {
            "fileHash": fingerprint,
            "fileName": "photo1.jpg",
            "filePath": str(photo),
            "fileSize": 512,
            "fileModified": started.isoformat(),
            "processedAt": started.isoformat().replace("+00:00", "Z"),
            "videoOutput": None,
            "status": "processing",
        }
    }))

    ledger = ProcessedFileLedger(ledger_path)
    ledger.initialize()

    assert ledger.count() == 1
    assert ledger.is_currently_processing(photo, "photo1.jpg") is False
    assert ledger.is_processed(photo, "photo1.jpg") is False


def test_reset_clears_everything(ledger, ledger_path, folders, photo):
    other = write_photo(folders["input"], "photo2.jpg", b"other")
    ledger.mark_processed(photo, "photo1.jpg", "./output/a.mp4")
    ledger.mark_processed(other, "photo2.jpg", None)
    assert ledger_path.exists()

    removed = ledger.reset_all()

    assert removed == 2
    assert ledger.count() == 0
    assert not ledger_path.exists()
    assert ledger.is_processed(photo, "photo1.jpg") is False
    assert ledger.is_processed(other, "photo2.jpg") is False


def test_reset_without_tracking_file(ledger):
    assert ledger.reset_all() == 0


@pytest.mark.parametrize("content", ["{not json", "[1, 2, 3]", ""])
def test_corrupt_tracking_file_starts_empty(ledger_path, content):
    ledger_path.write_text(content)

    ledger = ProcessedFileLedger(ledger_path)

    assert ledger.initialize() is True
    assert ledger.count() == 0


def test_malformed_entries_are_skipped(ledger, ledger_path, photo):
    ledger.mark_processed(photo, "photo1.jpg", None)
    data = json.loads(ledger_path.read_text())
    data["broken"] = {"fileName": "nothing else"}
    ledger_path.write_text(json.dumps(data))

    reloaded = ProcessedFileLedger(ledger_path)
    reloaded.initialize()

    assert reloaded.count() == 1
    assert reloaded.is_processed(photo, "photo1.jpg") is True


def _completed_entry(fingerprint, photo, size):
    return {
        "fileHash": fingerprint,
        "fileName": photo.name,
        "filePath": str(photo),
        "fileSize": size,
        "fileModified": "2024-10-31T20:00:00Z",
        "processedAt": "2024-10-31T20:01:00Z",
        "videoOutput": None,
        "status": "completed",
    }


def test_secondary_match_by_name_path_and_size(ledger_path, photo):
    ledger_path.write_text(json.dumps({"f" * 64: _completed_entry("f" * 64, photo, 512)}))
    ledger = ProcessedFileLedger(ledger_path)
    ledger.initialize()

    assert ledger.is_processed(photo, "photo1.jpg") is True


def test_secondary_match_rejects_overwritten_file(ledger_path, photo):
    ledger_path.write_text(json.dumps({"f" * 64: _completed_entry("f" * 64, photo, 999)}))
    ledger = ProcessedFileLedger(ledger_path)
    ledger.initialize()

    assert ledger.is_processed(photo, "photo1.jpg") is False


def test_queries_raise_hash_failure_for_unreadable_file(ledger, folders):
    missing = folders["input"] / "gone.jpg"

    with pytest.raises(HashFailure):
        ledger.is_processed(missing, "gone.jpg")
    with pytest.raises(HashFailure):
        ledger.is_currently_processing(missing, "gone.jpg")


def test_completion_after_photo_removed(ledger, photo):
    fingerprint = fingerprint_file(photo)
    ledger.mark_processing(photo, "photo1.jpg", fingerprint)
    photo.unlink()

    record = ledger.mark_processed(photo, "photo1.jpg", None, fingerprint)

    assert record.status is ProcessingStatus.COMPLETED
    assert record.file_size == 512


def test_persistence_failure_rolls_back(tmp_path, photo):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    ledger = ProcessedFileLedger(blocker / "ledger.json", clock=FakeClock())
    ledger.initialize()

    with pytest.raises(LedgerPersistenceError):
        ledger.mark_processing(photo, "photo1.jpg")

    assert ledger.count() == 0
    assert ledger.is_currently_processing(photo, "photo1.jpg") is False


def test_status_summary(ledger, ledger_path, photo):
    ledger.mark_processed(photo, "photo1.jpg", None)

    status = ledger.get_status()

    assert status == {
        "is_initialized": True,
        "total_processed": 1,
        "tracking_file": str(ledger_path),
        "tracking_file_exists": True,
    }


def _earlier_release_ledger(ledger_path):
    """Tracking file as written by the previous photobooth release."""
    ledger_path.write_text(json.dumps({
        "0c1f" * 16: {
            "fileName": "photo1.jpg",
            "filePath": "./input/photo1.jpg",
            "fileHash": "0c1f" * 16,
            "fileSize": 512,
            "fileModified": "2024-10-31T19:59:30.000Z",
            "processedAt": "2024-10-31T20:01:12.345Z",
            "videoOutput": "./output/1730404872345_photo1_halloween.mp4",
            "status": "completed",
        }
    }))


def test_records_from_earlier_release_match_relative_paths(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    ledger_path = tmp_path / "processed-files.json"
    _earlier_release_ledger(ledger_path)
    write_photo(tmp_path / "input", "photo1.jpg", b"x" * 512)

    ledger = ProcessedFileLedger(ledger_path)
    ledger.initialize()

    assert ledger.is_processed(Path("./input") / "photo1.jpg", "photo1.jpg") is True
    assert ledger.is_processed(tmp_path / "input" / "photo1.jpg", "photo1.jpg") is True


def test_records_from_earlier_release_are_not_resent(tmp_path, monkeypatch, analyzer, generator):
    monkeypatch.chdir(tmp_path)
    ledger_path = tmp_path / "processed-files.json"
    _earlier_release_ledger(ledger_path)
    write_photo(tmp_path / "input", "photo1.jpg", b"x" * 512)

    ledger = ProcessedFileLedger(ledger_path)
    ledger.initialize()
    watcher = PhotoWatcher(
        storage=LocalStorage(input_dir=Path("./input"), output_dir=Path("./output"), temp_dir=Path("./temp")),
        ledger=ledger,
        analyzer=analyzer,
        generator=generator,
        publisher=OutputPublisher(Path("./output"), Path("./temp")),
    )

    assert asyncio.run(watcher.check_for_new_files()) == 0
    assert analyzer.calls == []
    assert generator.calls == []
