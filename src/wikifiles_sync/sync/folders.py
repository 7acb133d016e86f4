"""Classification of project subfolders that no project claims.

A folder directly inside the base path (or inside a project folder) is
*assigned* when a project record matches it, either because its
``.project`` marker names the project's identifier or because its name
(or the slug of its name) equals the identifier.  Every other folder is
offered to the operator for one of two dispositions:

- adopt: create a project for the folder and make it a repository;
- quarantine: move it under ``<base>/_orphaned/`` with a manifest.
"""

from __future__ import annotations

import logging
import re
import shutil
from datetime import datetime
from pathlib import Path

from ..file_handler import ensure_within_base
from .context import SyncContext
from .git_backend import DEFAULT_IDENTITY_EMAIL, DEFAULT_IDENTITY_NAME, GitBackend
from .models import ProjectNode, UnassignedFolder
from .storage import (
    ORPHANED_DIR,
    PROJECTS_CONTAINER,
    RESERVED_FOLDERS,
    read_project_metadata,
    resolve_project_path,
    write_project_metadata,
)
from .store import DocumentStore

logger = logging.getLogger(__name__)

MANIFEST_NAME = "QUARANTINE_INFO.txt"
QUARANTINE_TIMESTAMP = "%Y-%m-%d_%H%M%S"

_SLUG_UNSAFE = re.compile(r"[^a-z0-9\-]")


def folder_slug(name: str) -> str:
    """Project identifier derived from a folder name."""
    return _SLUG_UNSAFE.sub("-", name.strip().lower())


class FolderClassifier:
    """Scan, adopt and quarantine unassigned folders.

    Args:
        store: The document store holding the project records.
        base_path: Root directory holding all project folders.
        commit_name: Committer name for repositories created on adopt.
        commit_email: Committer email for repositories created on adopt.
    """

    def __init__(
        self,
        store: DocumentStore,
        base_path: Path | str,
        commit_name: str = DEFAULT_IDENTITY_NAME,
        commit_email: str = DEFAULT_IDENTITY_EMAIL,
    ) -> None:
        self.store = store
        self.base_path = Path(base_path)
        self.commit_name = commit_name
        self.commit_email = commit_email

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def _folder_of(self, project: ProjectNode | None) -> Path:
        if project is None:
            return self.base_path
        return resolve_project_path(project, self.base_path)

    @staticmethod
    def _candidates(folder: Path) -> list[Path]:
        dirs = []
        for root in (folder, folder / PROJECTS_CONTAINER):
            if not root.is_dir():
                continue
            for child in sorted(root.iterdir()):
                if not child.is_dir() or child.name.startswith("."):
                    continue
                if child.name in RESERVED_FOLDERS:
                    continue
                dirs.append(child)
        return dirs

    @staticmethod
    def _match(folder: Path, children: list[ProjectNode]) -> ProjectNode | None:
        marker = read_project_metadata(folder) or {}
        marker_id = marker.get("id")
        slug = folder_slug(folder.name)
        for child in children:
            if marker_id and marker_id == child.identifier:
                return child
            if child.identifier in (folder.name, slug):
                return child
        return None

    def scan_all_folders(
        self, project: ProjectNode | None = None
    ) -> list[UnassignedFolder]:
        """List unassigned folders under *project* (or the base path).

        Assigned folders are descended into, so unassigned folders inside
        a child project are found too; their ``depth`` counts the levels.
        """
        found: list[UnassignedFolder] = []
        self._scan(project, self._folder_of(project), 0, found)
        logger.info(
            "Found %d unassigned folder(s) under %s",
            len(found),
            project.identifier if project else self.base_path,
        )
        return found

    def _scan(
        self,
        project: ProjectNode | None,
        folder: Path,
        depth: int,
        found: list[UnassignedFolder],
    ) -> None:
        children = self.store.child_projects(project)
        for candidate in self._candidates(folder):
            child = self._match(candidate, children)
            if child is not None:
                self._scan(child, candidate, depth + 1, found)
                continue
            found.append(
                UnassignedFolder(
                    path=str(candidate),
                    name=candidate.name,
                    parent_project=project.identifier if project else None,
                    depth=depth,
                )
            )

    # ------------------------------------------------------------------
    # Dispositions
    # ------------------------------------------------------------------

    def adopt(
        self,
        path: Path | str,
        context: SyncContext,
        parent: ProjectNode | None = None,
    ) -> ProjectNode:
        """Create a project for the folder at *path*.

        The folder stays where it is; it gets a ``.project`` marker and a
        git repository.

        Raises:
            FileNotFoundError: If *path* is not a directory.
            ValueError: If the derived identifier is empty or taken, or
                *path* lies outside the base path.
        """
        folder = ensure_within_base(Path(path), self.base_path)
        if not folder.is_dir():
            raise FileNotFoundError(f"Folder not found: {path}")
        identifier = folder_slug(folder.name).strip("-")
        if not identifier:
            raise ValueError(f"Cannot derive a project identifier from '{folder.name}'")
        if self.store.get_project(identifier) is not None:
            raise ValueError(f"Project '{identifier}' already exists")

        with context.suppress_write_back():
            project = self.store.create_project(
                identifier, folder.name, parent, context
            )
        write_project_metadata(folder, project)
        GitBackend(folder, self.commit_name, self.commit_email)
        logger.info(
            "Adopted folder %s as project %s by %s",
            folder,
            identifier,
            context.actor.login,
        )
        return project

    def quarantine(
        self,
        path: Path | str,
        context: SyncContext,
        project: ProjectNode | None = None,
    ) -> Path:
        """Move the folder at *path* into ``<base>/_orphaned/``.

        The target is ``<timestamp>_<name>``, with ``_<n>`` appended when
        taken.  A ``QUARANTINE_INFO.txt`` manifest is written inside.

        Returns:
            The new location of the folder.

        Raises:
            FileNotFoundError: If *path* is not a directory.
            ValueError: If *path* lies outside the base path or already
                sits in the quarantine area.
        """
        folder = ensure_within_base(Path(path), self.base_path)
        if not folder.is_dir():
            raise FileNotFoundError(f"Folder not found: {path}")
        orphaned = self.base_path / ORPHANED_DIR
        if folder.is_relative_to(orphaned.resolve()):
            raise ValueError(f"Folder is already quarantined: {path}")

        timestamp = datetime.now().strftime(QUARANTINE_TIMESTAMP)
        orphaned.mkdir(parents=True, exist_ok=True)
        target = orphaned / f"{timestamp}_{folder.name}"
        counter = 1
        while target.exists():
            target = orphaned / f"{timestamp}_{folder.name}_{counter}"
            counter += 1

        shutil.move(str(folder), str(target))
        manifest = "\n".join(
            [
                "Quarantined folder",
                f"Original path: {folder}",
                f"Folder name: {folder.name}",
                f"Quarantined at: {timestamp}",
                f"Quarantined by: {context.actor.login}",
                f"Project: {project.identifier if project else '-'}",
                "",
                "This folder had no matching project and was moved here by an",
                "operator. Move it back and adopt it to restore it.",
                "",
            ]
        )
        (target / MANIFEST_NAME).write_text(manifest, encoding="utf-8")
        logger.info(
            "Quarantined %s to %s by %s", folder, target, context.actor.login
        )
        return target
