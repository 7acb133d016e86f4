"""Tests for the attachments mirror."""

from __future__ import annotations

from pathlib import Path

import pytest

from wikifiles_sync.file_handler import PathOutsideBaseError
from wikifiles_sync.sync.attachments import (
    attachments_dir,
    list_attachments,
    move_to_attachments,
    sync_to_fs,
)
from wikifiles_sync.sync.models import ProjectNode
from wikifiles_sync.sync.storage import FileStorage


@pytest.fixture
def storage(base_path: Path) -> FileStorage:
    storage = FileStorage(ProjectNode(identifier="proj", name="proj"), base_path)
    storage.ensure_project_dir()
    return storage


class TestSyncToFs:
    """Tests for mirroring attachment files."""

    def test_copies_into_title_folder(self, storage: FileStorage, tmp_path: Path) -> None:
        source = tmp_path / "spec.pdf"
        source.write_bytes(b"%PDF")
        written = sync_to_fs(storage, "Design Notes", [source])

        target = storage.project_path / "_attachments" / "Design_Notes" / "spec.pdf"
        assert written == [target]
        assert target.read_bytes() == b"%PDF"
        assert list_attachments(storage, "Design Notes") == [target]

    def test_unchanged_file_is_not_rewritten(self, storage: FileStorage, tmp_path: Path) -> None:
        source = tmp_path / "a.txt"
        source.write_text("same")
        sync_to_fs(storage, "Page", [source])
        assert sync_to_fs(storage, "Page", [source]) == []

    def test_missing_source_does_not_stop_others(
        self, storage: FileStorage, tmp_path: Path
    ) -> None:
        good = tmp_path / "good.txt"
        good.write_text("ok")
        written = sync_to_fs(storage, "Page", [tmp_path / "missing.txt", good])
        assert [p.name for p in written] == ["good.txt"]

    def test_nested_title_keeps_segments(self, storage: FileStorage) -> None:
        assert attachments_dir(storage, "Guide/Intro") == (
            storage.project_path / "_attachments" / "Guide" / "Intro"
        )

    def test_no_attachments(self, storage: FileStorage) -> None:
        assert list_attachments(storage, "Nothing") == []


class TestMoveToAttachments:
    """Tests for 'attach as file'."""

    def test_moves_loose_file(self, storage: FileStorage) -> None:
        loose = storage.project_path / "photo.jpg"
        loose.write_bytes(b"jpg")
        target = move_to_attachments(storage, "photo.jpg")
        assert target == storage.project_path / "_attachments" / "photo.jpg"
        assert target.read_bytes() == b"jpg"
        assert not loose.exists()

    def test_collision_gets_timestamp_suffix(self, storage: FileStorage) -> None:
        folder = storage.project_path / "_attachments"
        folder.mkdir()
        (folder / "photo.jpg").write_bytes(b"old")
        (storage.project_path / "photo.jpg").write_bytes(b"new")
        target = move_to_attachments(storage, "photo.jpg")
        assert target.name.startswith("photo_")
        assert target.suffix == ".jpg"
        assert (folder / "photo.jpg").read_bytes() == b"old"

    def test_missing_file(self, storage: FileStorage) -> None:
        with pytest.raises(FileNotFoundError):
            move_to_attachments(storage, "nope.bin")

    def test_escape_rejected(self, storage: FileStorage) -> None:
        with pytest.raises(PathOutsideBaseError):
            move_to_attachments(storage, "../../etc/passwd")
