"""Tests for the non-blocking file lock probe."""

from __future__ import annotations

import fcntl
from pathlib import Path

from wikifiles_sync.sync.locks import is_locked


class TestIsLocked:
    """Tests for is_locked()."""

    def test_unlocked_file(self, tmp_path: Path) -> None:
        f = tmp_path / "Page.md"
        f.write_text("x")
        assert is_locked(f) is False

    def test_missing_file_is_not_locked(self, tmp_path: Path) -> None:
        assert is_locked(tmp_path / "missing.md") is False

    def test_directory_is_not_locked(self, tmp_path: Path) -> None:
        assert is_locked(tmp_path) is False

    def test_file_held_by_other_descriptor(self, tmp_path: Path) -> None:
        """flock locks belong to the open file description, so a second
        open of the same file sees the lock even in this process."""
        f = tmp_path / "Page.md"
        f.write_text("x")
        with open(f, "rb") as holder:
            fcntl.flock(holder.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            try:
                assert is_locked(f) is True
            finally:
                fcntl.flock(holder.fileno(), fcntl.LOCK_UN)
        assert is_locked(f) is False

    def test_probe_releases_its_lock(self, tmp_path: Path) -> None:
        f = tmp_path / "Page.md"
        f.write_text("x")
        is_locked(f)
        with open(f, "rb") as fh:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        f = tmp_path / "Page.md"
        f.write_text("x")
        assert is_locked(str(f)) is False
