"""On-disk storage for project folders and document files.

Layout under the configured base path::

    <base>/<project folder>/.project          marker (id, name, created)
    <base>/<project folder>/<Title>.md        one file per document
    <base>/<project folder>/<child folder>/   nested project
    <base>/<project folder>/_projects/<child> nested project, container layout

A project folder is found by its ``.project`` marker first, so folders and
projects can be renamed independently.  Document files are found by
trying a fixed list of historical naming variants.

Every path handed out by ``FileStorage`` is checked against the base path.
Read and write failures are logged and turned into ``None``.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import datetime, timezone
from pathlib import Path

from ..file_handler import (
    PathOutsideBaseError,
    atomic_write_text,
    ensure_within_base,
    read_file_with_encoding,
    write_file,
)
from . import frontmatter
from .models import ProjectNode

logger = logging.getLogger(__name__)

PROJECT_MARKER = ".project"
ATTACHMENTS_DIR = "_attachments"
ORPHANED_DIR = "_orphaned"
PROJECTS_CONTAINER = "_projects"
RESERVED_FOLDERS = frozenset({ATTACHMENTS_DIR, ORPHANED_DIR, PROJECTS_CONTAINER})

MARKDOWN_SUFFIX = ".md"

_UNSAFE_CHARS = re.compile(r"[^\w\-]")
_MINIMAL_UNSAFE_CHARS = re.compile(r"[^\w\s\-]")
_MARKER_ID = re.compile(
    r"^id:[ \t]*(?P<value>[^\s\x27\x22#][^\s#]*)[ \t]*$", re.MULTILINE
)


# ---------------------------------------------------------------------------
# Name helpers
# ---------------------------------------------------------------------------


def sanitize_filename(title: str) -> str:
    """Spaces become underscores; anything but word chars and ``-`` is dropped."""
    return _UNSAFE_CHARS.sub("", title.replace(" ", "_"))


def sanitize_path(title: str) -> str:
    """Like :func:`sanitize_filename` but keeps ``/`` between segments."""
    segments = (sanitize_filename(part) for part in title.split("/"))
    return "/".join(s for s in segments if s)


def filename_variants(title: str) -> list[str]:
    """File names a document may have been stored under, most likely first.

    1. sanitized (``My_Page.md``)
    2. as-is (``My Page.md``)
    3. hyphenated (``My-Page.md``)
    4. minimally sanitized, spaces kept
    5. sanitized, lower-cased
    6. hyphenated, lower-cased
    """
    stems = [
        sanitize_filename(title),
        title,
        title.replace(" ", "-"),
        _MINIMAL_UNSAFE_CHARS.sub("", title),
        sanitize_filename(title).lower(),
        title.lower().replace(" ", "-"),
    ]
    seen: set[str] = set()
    names = []
    for stem in stems:
        if not stem or stem in seen:
            continue
        seen.add(stem)
        names.append(f"{stem}{MARKDOWN_SUFFIX}")
    return names


def file_to_title(relative_path: str) -> str:
    """Map ``My_Page.md`` back to the title ``My Page``."""
    name = relative_path
    if name.endswith(MARKDOWN_SUFFIX):
        name = name[: -len(MARKDOWN_SUFFIX)]
    return name.replace("_", " ")


def is_document_path(relative_path: str) -> bool:
    """True for a ``.md`` file directly inside the project folder."""
    return (
        "/" not in relative_path
        and relative_path.endswith(MARKDOWN_SUFFIX)
        and not relative_path.startswith(".")
    )


def default_folder_name(project: ProjectNode) -> str:
    """Folder name used when a project has no folder yet."""
    name = project.name.strip()
    if not name or "/" in name or name.startswith("."):
        return project.identifier
    return name


# ---------------------------------------------------------------------------
# .project marker
# ---------------------------------------------------------------------------


def read_project_metadata(folder: Path) -> dict | None:
    """Return the marker values of *folder*, or ``None`` without a marker."""
    marker = folder / PROJECT_MARKER
    if not marker.is_file():
        return None
    try:
        text = marker.read_text(encoding="utf-8")
    except (OSError, UnicodeError) as exc:
        logger.warning("Cannot read project marker %s: %s", marker, exc)
        return None
    metadata = frontmatter.get_metadata(text)
    # Identifiers such as ``no`` or ``0755`` must not go through YAML typing.
    raw_id = _MARKER_ID.search(text)
    if raw_id is not None and "id" in metadata:
        metadata["id"] = raw_id.group("value")
    elif metadata.get("id") is not None:
        metadata["id"] = str(metadata["id"])
    return metadata


def write_project_metadata(folder: Path, project: ProjectNode) -> Path:
    """(Over)write the ``.project`` marker of *folder*.

    An existing ``created`` value is kept so repeated writes only change
    what actually changed.
    """
    existing = read_project_metadata(folder) or {}
    created = existing.get("created")
    if isinstance(created, datetime):
        created = created.isoformat()
    if not created:
        created = (project.created_on or datetime.now(timezone.utc)).isoformat()
    text = (
        f"{frontmatter.DELIMITER}\n"
        f"id: {project.identifier}\n"
        f"name: {json.dumps(project.name, ensure_ascii=False)}\n"
        f"created: {json.dumps(str(created))}\n"
        f"{frontmatter.DELIMITER}\n"
    )
    marker = folder / PROJECT_MARKER
    atomic_write_text(marker, text)
    return marker


def _candidate_folders(parent_dir: Path) -> list[Path]:
    """Child folders of *parent_dir* and of its ``_projects`` container."""
    dirs = []
    for root in (parent_dir, parent_dir / PROJECTS_CONTAINER):
        if not root.is_dir():
            continue
        for child in sorted(root.iterdir()):
            if not child.is_dir():
                continue
            if child.name.startswith(".") or child.name in RESERVED_FOLDERS:
                continue
            dirs.append(child)
    return dirs


def find_project_folder(parent_dir: Path, identifier: str) -> Path | None:
    """Find the folder under *parent_dir* whose marker names *identifier*."""
    for child in _candidate_folders(parent_dir):
        metadata = read_project_metadata(child)
        if metadata and metadata.get("id") == identifier:
            return child
    return None


def locate_project_folder(
    parent_dir: Path, identifier: str, name: str | None = None
) -> Path | None:
    """Locate an existing project folder under *parent_dir*.

    Tried in order: marker identifier, display name, sanitized display
    name, identifier as folder name.  Each step also looks inside the
    ``_projects`` container.
    """
    found = find_project_folder(parent_dir, identifier)
    if found is not None:
        logger.debug("Project %s found by marker: %s", identifier, found)
        return found

    names = []
    if name:
        names.extend([name, sanitize_filename(name)])
    names.append(identifier)
    for candidate in names:
        if not candidate or candidate.startswith(".") or "/" in candidate:
            continue
        for root in (parent_dir, parent_dir / PROJECTS_CONTAINER):
            path = root / candidate
            if path.is_dir():
                logger.debug(
                    "Project %s found by folder name %r: %s",
                    identifier,
                    candidate,
                    path,
                )
                return path
    return None


def resolve_project_path(project: ProjectNode, base_path: Path) -> Path:
    """Compute the folder of *project*, walking up its parent chain.

    Falls back to a new folder named after the project directly inside
    the parent's folder.
    """
    if project.parent is not None:
        parent_dir = resolve_project_path(project.parent, base_path)
    else:
        parent_dir = base_path
    found = locate_project_folder(parent_dir, project.identifier, project.name)
    if found is not None:
        return found
    return parent_dir / default_folder_name(project)


# ---------------------------------------------------------------------------
# FileStorage
# ---------------------------------------------------------------------------


class FileStorage:
    """Read and write the document files of one project.

    Args:
        project: The project whose folder is served.
        base_path: Root directory holding all project folders.
    """

    def __init__(self, project: ProjectNode, base_path: Path | str) -> None:
        self.project = project
        self.base_path = Path(base_path)
        self.project_path = resolve_project_path(project, self.base_path)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def path_for(self, title: str) -> Path:
        """Canonical path of the file for *title*."""
        return self.project_path / f"{sanitize_filename(title)}{MARKDOWN_SUFFIX}"

    def relative_path(self, path: Path) -> str:
        return path.relative_to(self.project_path).as_posix()

    def guard(self, path: Path) -> Path:
        return ensure_within_base(path, self.base_path)

    def resolve_existing(self, title: str) -> Path | None:
        """Return the first existing file among the naming variants."""
        for index, name in enumerate(filename_variants(title)):
            candidate = self.project_path / name
            try:
                self.guard(candidate)
            except PathOutsideBaseError:
                logger.warning("Ignoring unsafe file name %r", name)
                continue
            if candidate.is_file():
                if index:
                    logger.debug(
                        "Resolved %r via variant %d: %s", title, index, name
                    )
                return candidate
        return None

    def file_exists(self, title: str) -> bool:
        return self.resolve_existing(title) is not None

    def ensure_project_dir(self) -> Path:
        self.guard(self.project_path)
        self.project_path.mkdir(parents=True, exist_ok=True)
        return self.project_path

    # ------------------------------------------------------------------
    # File I/O
    # ------------------------------------------------------------------

    def read(self, title: str) -> tuple[str, float] | None:
        """Return ``(content, mtime)`` of the file for *title*, or ``None``."""
        path = self.resolve_existing(title)
        if path is None:
            return None
        return self.read_path(path)

    def read_path(self, path: Path) -> tuple[str, float] | None:
        try:
            self.guard(path)
            content, _encoding = read_file_with_encoding(path)
            return content, path.stat().st_mtime
        except (OSError, UnicodeError, PathOutsideBaseError) as exc:
            logger.error("Failed to read %s: %s", path, exc)
            return None

    def write(self, title: str, content: str) -> Path | None:
        """Write *content* for *title*, preferring the file that already exists.

        Returns the written path, or ``None`` if writing failed.
        """
        path = self.resolve_existing(title) or self.path_for(title)
        try:
            self.guard(path)
            self.ensure_project_dir()
            write_file(path, content)
        except (OSError, UnicodeError, PathOutsideBaseError) as exc:
            logger.error("Failed to write %s: %s", path, exc)
            return None
        return path

    def delete(self, title: str) -> Path | None:
        """Remove the file for *title*; returns the removed path."""
        path = self.resolve_existing(title)
        if path is None:
            return None
        try:
            path.unlink()
        except OSError as exc:
            logger.error("Failed to delete %s: %s", path, exc)
            return None
        return path

    def rename(self, old_title: str, new_title: str) -> tuple[Path, Path] | None:
        """Move the file of *old_title* to the canonical path of *new_title*.

        Returns ``(old_path, new_path)``, or ``None`` if there was nothing
        to move or the target is taken by another file.
        """
        source = self.resolve_existing(old_title)
        if source is None:
            return None
        return self.relocate(source, new_title)

    def relocate(self, source: Path, title: str) -> tuple[Path, Path] | None:
        """Move *source* to the canonical path of *title*."""
        target = self.path_for(title)
        if source == target:
            return None
        if target.exists() and not same_file(source, target):
            logger.warning(
                "Not moving %s: %s already exists", source.name, target.name
            )
            return None
        try:
            self.guard(target)
            source.rename(target)
        except (OSError, PathOutsideBaseError) as exc:
            logger.error("Failed to move %s to %s: %s", source, target, exc)
            return None
        return source, target

    # ------------------------------------------------------------------
    # Listing
    # ------------------------------------------------------------------

    def list_markdown_files(self) -> list[Path]:
        """Document files directly inside the project folder."""
        if not self.project_path.is_dir():
            return []
        return sorted(
            p
            for p in self.project_path.iterdir()
            if p.is_file() and is_document_path(p.name)
        )

    def list_other_files(self) -> list[Path]:
        """Non-Markdown, non-hidden files directly inside the project folder."""
        if not self.project_path.is_dir():
            return []
        return sorted(
            p
            for p in self.project_path.iterdir()
            if p.is_file()
            and not p.name.startswith(".")
            and p.suffix != MARKDOWN_SUFFIX
        )

    def write_metadata(self) -> Path | None:
        """Write this project's ``.project`` marker."""
        try:
            self.ensure_project_dir()
            return write_project_metadata(self.project_path, self.project)
        except (OSError, PathOutsideBaseError) as exc:
            logger.error(
                "Failed to write project marker in %s: %s",
                self.project_path,
                exc,
            )
            return None


def same_file(a: Path, b: Path) -> bool:
    try:
        return a.samefile(b)
    except OSError:
        return False
