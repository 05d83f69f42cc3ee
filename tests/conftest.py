from pathlib import Path

import pytest

from domains.photobooth.ledger import ProcessedFileLedger
from domains.photobooth.publisher import OutputPublisher
from domains.photobooth.storage import LocalStorage
from domains.photobooth.watcher import PhotoWatcher
from tests.helpers import FakeAnalyzer, FakeClock, FakeGenerator


@pytest.fixture()
def folders(tmp_path) -> dict[str, Path]:
    """Input/output/screensaver/temp folders under ``tmp_path``."""
    paths = {
        "input": tmp_path / "input",
        "output": tmp_path / "output",
        "screensaver": tmp_path / "screensaver",
        "temp": tmp_path / "temp",
    }
    for path in paths.values():
        path.mkdir()
    return paths


@pytest.fixture()
def ledger_path(tmp_path) -> Path:
    return tmp_path / "processed-files.json"


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def ledger(ledger_path, clock) -> ProcessedFileLedger:
    ledger = ProcessedFileLedger(ledger_path, clock=clock)
    ledger.initialize()
    return ledger


@pytest.fixture()
def storage(folders) -> LocalStorage:
    return LocalStorage(
        input_dir=folders["input"],
        output_dir=folders["output"],
        screensaver_dir=folders["screensaver"],
        temp_dir=folders["temp"],
    )


@pytest.fixture()
def analyzer() -> FakeAnalyzer:
    return FakeAnalyzer()


@pytest.fixture()
def generator(folders) -> FakeGenerator:
    return FakeGenerator(folders["temp"])


@pytest.fixture()
def make_watcher(storage, ledger, analyzer, generator, folders):
    """Build a watcher; any collaborator can be overridden by keyword."""

    def _make(**overrides) -> PhotoWatcher:
        options = {
            "storage": storage,
            "ledger": ledger,
            "analyzer": analyzer,
            "generator": generator,
            "publisher": OutputPublisher(folders["output"], folders["temp"]),
            "poll_interval": 60.0,
            "watch_filesystem_events": False,
        }
        options.update(overrides)
        return PhotoWatcher(**options)

    return _make
