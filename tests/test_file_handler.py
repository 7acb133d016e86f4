"""Tests for file_handler module: base-directory guard, encoding-aware read/write."""

from pathlib import Path

import pytest

from wikifiles_sync.file_handler import (
    PathOutsideBaseError,
    atomic_write_text,
    ensure_within_base,
    read_file_with_encoding,
    write_file,
)

# =============================================================================
# ensure_within_base
# =============================================================================


class TestEnsureWithinBase:
    """Tests for ensure_within_base(path, base_dir)."""

    def test_path_inside_base(self, tmp_path):
        """A path under the base is returned resolved, even if missing."""
        result = ensure_within_base(tmp_path / "a" / "b.md", tmp_path)
        assert result == (tmp_path / "a" / "b.md").resolve()

    def test_dotdot_escape_raises(self, tmp_path):
        with pytest.raises(PathOutsideBaseError, match="outside base directory"):
            ensure_within_base(tmp_path / ".." / "etc", tmp_path)

    def test_symlink_escape_raises(self, tmp_path):
        """A link inside the base pointing outside is rejected."""
        outside = tmp_path / "outside"
        outside.mkdir()
        base = tmp_path / "base"
        base.mkdir()
        (base / "link").symlink_to(outside)
        with pytest.raises(PathOutsideBaseError):
            ensure_within_base(base / "link" / "file.md", base)

    def test_is_value_error(self):
        assert issubclass(PathOutsideBaseError, ValueError)


# =============================================================================
# read_file_with_encoding
# =============================================================================


class TestReadFileWithEncoding:
    """Tests for read_file_with_encoding(path)."""

    def test_utf8_file(self, tmp_path):
        f = tmp_path / "utf8.md"
        f.write_text("Hello, world! Ünïcode ✓", encoding="utf-8")
        content, encoding = read_file_with_encoding(f)
        assert content == "Hello, world! Ünïcode ✓"
        assert encoding == "utf-8"

    def test_bom_is_dropped(self, tmp_path):
        f = tmp_path / "bom.md"
        f.write_bytes(b"\xef\xbb\xbf---\nid: 1\n---\n")
        content, _ = read_file_with_encoding(f)
        assert content.startswith("---")

    def test_empty_file(self, tmp_path):
        f = tmp_path / "empty.md"
        f.write_bytes(b"")
        assert read_file_with_encoding(f) == ("", "utf-8")

    def test_latin1_file(self, tmp_path):
        """Non-UTF-8 bytes are decoded via detection."""
        f = tmp_path / "latin1.md"
        text = "Café crème brûlée, naïve résumé " * 5
        f.write_bytes(text.encode("latin-1"))
        content, encoding = read_file_with_encoding(f)
        assert encoding != "utf-8"
        assert "Caf" in content

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            read_file_with_encoding(tmp_path / "missing.md")


# =============================================================================
# write_file / atomic_write_text
# =============================================================================


class TestWriteFile:
    """Tests for write_file and atomic_write_text."""

    def test_write_creates_parents(self, tmp_path):
        target = tmp_path / "deep" / "nested" / "out.md"
        written = write_file(target, "héllo")
        assert target.read_text(encoding="utf-8") == "héllo"
        assert written == len("héllo".encode("utf-8"))

    def test_atomic_write_replaces(self, tmp_path):
        target = tmp_path / "data.json"
        target.write_text("old", encoding="utf-8")
        atomic_write_text(target, "new")
        assert target.read_text(encoding="utf-8") == "new"
        assert [p.name for p in tmp_path.iterdir()] == ["data.json"]

    def test_atomic_write_creates_parent(self, tmp_path: Path):
        target = tmp_path / "sub" / "marker"
        atomic_write_text(target, "x")
        assert target.read_text(encoding="utf-8") == "x"
