"""File handler module: base-directory guard and encoding-aware read/write.

Provides the low-level file I/O used by the storage layer and the JSON
document store.  Functions here raise; callers decide whether to degrade.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from charset_normalizer import from_bytes


class PathOutsideBaseError(ValueError):
    """Raised when a resolved path escapes the configured base directory."""


# =============================================================================
# Path Validation
# =============================================================================


def ensure_within_base(path: Path, base_dir: Path) -> Path:
    """Resolve *path* and check it lies under *base_dir*.

    Symlinks are resolved on both sides, so a link pointing out of the
    base directory is rejected too.

    Args:
        path: Candidate path (need not exist).
        base_dir: Directory that must contain it.

    Returns:
        The resolved path.

    Raises:
        PathOutsideBaseError: If the resolved path is outside *base_dir*.
    """
    resolved = Path(path).resolve()
    base_resolved = Path(base_dir).resolve()
    if not resolved.is_relative_to(base_resolved):
        raise PathOutsideBaseError(
            f"Path is outside base directory: {resolved} not under {base_resolved}"
        )
    return resolved


# =============================================================================
# File Read/Write
# =============================================================================


def read_file_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first, then uses charset-normalizer to detect encoding.
    Defaults to UTF-8 for empty files or when detection fails.  A UTF-8
    byte-order mark is dropped.

    Args:
        path: Path to the file to read.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = path.read_bytes()
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8").lstrip("\ufeff"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        content = str(result)
    return (content, encoding)


def write_file(
    path: Path, content: str, encoding: str = "utf-8"
) -> int:
    """Write content to a file, creating parent directories as needed.

    Args:
        path: Path to the output file.
        content: String content to write.
        encoding: Encoding to use (default: utf-8).

    Returns:
        Number of bytes written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    encoded = content.encode(encoding)
    path.write_bytes(encoded)
    return len(encoded)


def atomic_write_text(path: Path, content: str) -> None:
    """Write UTF-8 text so readers never see a partial file.

    Writes to a temporary file in the same directory then calls
    ``os.replace()``.  Creates the parent directory if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(path.parent), suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
