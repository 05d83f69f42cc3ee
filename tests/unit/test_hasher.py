import os

import pytest

from domains.photobooth.errors import HashFailure
from domains.photobooth.hasher import file_created_at, fingerprint_file
from tests.helpers import write_photo


def test_fingerprint_is_stable_hex_digest(tmp_path):
    photo = write_photo(tmp_path, "photo1.jpg")

    first = fingerprint_file(photo)
    second = fingerprint_file(str(photo))

    assert first == second
    assert len(first) == 64
    int(first, 16)


def test_fingerprint_changes_with_content(tmp_path):
    one = write_photo(tmp_path, "one.jpg", b"pumpkin")
    two = write_photo(tmp_path, "two.jpg", b"skeleton")
    os.utime(two, (one.stat().st_atime, one.stat().st_mtime))

    assert fingerprint_file(one) != fingerprint_file(two)


def test_fingerprint_survives_rename(tmp_path):
    photo = write_photo(tmp_path, "before.jpg", age_seconds=120)
    before = fingerprint_file(photo)

    renamed = photo.rename(tmp_path / "after.jpg")

    assert fingerprint_file(renamed) == before


def test_missing_file_raises_hash_failure(tmp_path):
    with pytest.raises(HashFailure) as excinfo:
        fingerprint_file(tmp_path / "gone.jpg")

    assert excinfo.value.path.endswith("gone.jpg")


def test_directory_raises_hash_failure(tmp_path):
    with pytest.raises(HashFailure):
        fingerprint_file(tmp_path)


def test_file_created_at_is_timezone_aware(tmp_path):
    photo = write_photo(tmp_path, "photo.jpg")

    created = file_created_at(photo.stat())

    assert created.tzinfo is not None
