"""Mirror of document attachments under ``<project>/_attachments/``.

Attachments of a document live in ``_attachments/<sanitized title path>/``.
Files dropped loose into a project folder can be moved into
``_attachments/`` directly ("attach as file").
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Iterable
from datetime import datetime
from pathlib import Path

from .storage import ATTACHMENTS_DIR, FileStorage, sanitize_path

logger = logging.getLogger(__name__)


def attachments_dir(storage: FileStorage, title: str) -> Path:
    return storage.project_path / ATTACHMENTS_DIR / (sanitize_path(title) or "_")


def list_attachments(storage: FileStorage, title: str) -> list[Path]:
    folder = attachments_dir(storage, title)
    if not folder.is_dir():
        return []
    return sorted(p for p in folder.iterdir() if p.is_file())


def sync_to_fs(
    storage: FileStorage, title: str, sources: Iterable[Path]
) -> list[Path]:
    """Copy attachment files of *title* into its attachments folder.

    Files already present with the same size are left alone.  A failure
    on one file is logged and the rest are still copied.

    Returns:
        Paths that were written.
    """
    folder = attachments_dir(storage, title)
    written = []
    for source in sources:
        source = Path(source)
        target = folder / source.name
        try:
            storage.guard(target)
            if target.is_file() and target.stat().st_size == source.stat().st_size:
                continue
            folder.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, target)
            written.append(target)
        except (OSError, ValueError) as exc:
            logger.error("Failed to mirror attachment %s: %s", source, exc)
    if written:
        logger.info("Mirrored %d attachment(s) for %r", len(written), title)
    return written


def move_to_attachments(storage: FileStorage, filename: str) -> Path:
    """Move a loose file of the project folder into ``_attachments/``.

    A name collision gets a ``_<YYYYmmdd_HHMMSS>`` suffix.

    Raises:
        FileNotFoundError: If the file does not exist.
        PathOutsideBaseError: If *filename* escapes the base path.
    """
    source = storage.guard(storage.project_path / filename)
    if not source.is_file():
        raise FileNotFoundError(f"File not found: {filename}")
    folder = storage.project_path / ATTACHMENTS_DIR
    folder.mkdir(parents=True, exist_ok=True)
    target = folder / source.name
    if target.exists():
        stamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        target = folder / f"{source.stem}_{stamp}{source.suffix}"
    shutil.move(str(source), str(target))
    logger.info("Moved %s to %s", filename, target)
    return target
