"""Sync engine reconciling the document store with the project folders.

The ``SyncEngine`` runs both directions of the sync:

- Filesystem to store (:meth:`SyncEngine.sync_from_filesystem`), one pass
  per project, always in this order:

  1. Stage everything so git can pair renames.
  2. Detect changes against the last commit.
  3. Deletions: reported only, documents are never deleted.
  4. Renames: the document is renamed to the new file name.
  5. Modifications: file and document are reconciled by the policy.
  6. Additions: files with frontmatter are imported, others are pending.
  7. Commit the pass.

- Store to filesystem, through the ``LifecycleListener`` hooks the
  document store calls (:meth:`after_save`, :meth:`before_title_change`,
  :meth:`before_destroy`, :meth:`after_project_rename`).

Writes made by one direction run under
``SyncContext.suppress_write_back()``, so the hooks of the other direction
see ``context.syncing`` and do nothing.  Every pass and hook holds the
project's mutex from ``ProjectLockRegistry``.

Error handling is per file: a failure on one file is recorded in the
report and the pass continues.  A failure of the pass as a whole is
logged and returned in ``SyncReport.error``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from ..file_handler import PathOutsideBaseError, ensure_within_base
from . import frontmatter
from .attachments import move_to_attachments, sync_to_fs
from .context import ProjectLockRegistry, SyncContext
from .folders import FolderClassifier
from .git_backend import (
    DEFAULT_IDENTITY_EMAIL,
    DEFAULT_IDENTITY_NAME,
    GitBackend,
    GitCommandError,
)
from .importer import DocumentImporter, fix_missing_frontmatter, render_document
from .locks import is_locked
from .models import (
    BatchResult,
    Document,
    DocumentStatus,
    PendingFile,
    ProjectNode,
    SyncAction,
    SyncReport,
    SyncResult,
    UnassignedFolder,
)
from .resolver import Resolution, create_policy
from .storage import (
    FileStorage,
    default_folder_name,
    file_to_title,
    is_document_path,
    locate_project_folder,
    read_project_metadata,
    resolve_project_path,
    write_project_metadata,
)
from .store import DocumentStore

logger = logging.getLogger(__name__)

DELETION_NOTE = "deletion not propagated to document store"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class SyncEngine:
    """Bidirectional sync between a document store and project folders.

    Register the engine as a listener of the store so saves, renames and
    deletions are mirrored to disk::

        engine = SyncEngine(store, "/var/lib/wikifiles", "fileWins")
        store.add_listener(engine)

    Args:
        store: The document store of record.
        base_path: Root directory holding all project folders.
        conflict_strategy: ``"fileWins"``, ``"dbWins"`` or ``"manual"``.
        enabled: Global switch; combined with each project's flag.
        commit_name: Committer name for new repositories.
        commit_email: Committer email for new repositories.
        locks: Per-project mutexes; a private registry by default.
    """

    def __init__(
        self,
        store: DocumentStore,
        base_path: Path | str,
        conflict_strategy: str = "fileWins",
        *,
        enabled: bool = True,
        commit_name: str = DEFAULT_IDENTITY_NAME,
        commit_email: str = DEFAULT_IDENTITY_EMAIL,
        locks: ProjectLockRegistry | None = None,
    ) -> None:
        self.store = store
        self.base_path = Path(base_path)
        self.policy = create_policy(conflict_strategy)
        self.enabled = enabled
        self.commit_name = commit_name
        self.commit_email = commit_email
        self.locks = locks or ProjectLockRegistry()
        self.folders = FolderClassifier(
            store, self.base_path, commit_name, commit_email
        )

    @classmethod
    def from_config(cls, config, store: DocumentStore) -> SyncEngine:
        """Build an engine from a loaded ``Config``."""
        return cls(
            store,
            config.base_path,
            config.conflict_strategy,
            enabled=config.enabled,
            commit_name=config.commit_name,
            commit_email=config.commit_email,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def is_enabled(self, project: ProjectNode) -> bool:
        return self.enabled and project.sync_enabled

    def storage_for(self, project: ProjectNode) -> FileStorage:
        return FileStorage(project, self.base_path)

    def git_for(self, storage: FileStorage) -> GitBackend:
        storage.ensure_project_dir()
        return GitBackend(
            storage.project_path, self.commit_name, self.commit_email
        )

    def _project_of(self, document: Document) -> ProjectNode | None:
        project = self.store.get_project(document.project)
        if project is None:
            logger.warning(
                "Project %s of document %r not found",
                document.project,
                document.title,
            )
        return project

    @staticmethod
    def _ensure_marker(storage: FileStorage) -> None:
        if read_project_metadata(storage.project_path) is None:
            storage.write_metadata()

    # ------------------------------------------------------------------
    # Filesystem -> store
    # ------------------------------------------------------------------

    def sync_from_filesystem(
        self, project: ProjectNode, context: SyncContext
    ) -> SyncReport:
        """Run one filesystem pass over *project*.

        Returns:
            A ``SyncReport`` with per-file results, pending files and
            locked files.  A pass-level failure is returned in ``error``.
        """
        started_at = _now_iso()
        if not self.is_enabled(project):
            logger.debug("Sync disabled for project %s", project.identifier)
            return SyncReport(
                project=project.identifier,
                error="sync is disabled for this project",
                started_at=started_at,
                completed_at=_now_iso(),
            )

        results: list[SyncResult] = []
        pending: list[PendingFile] = []
        locked: list[str] = []
        error = None
        try:
            with self.locks.hold(project.identifier), context.suppress_write_back():
                self._run_pass(project, context, results, pending, locked)
        except Exception as exc:
            logger.exception(
                "Sync pass for project %s failed", project.identifier
            )
            error = str(exc)

        report = SyncReport(
            project=project.identifier,
            results=results,
            pending=pending,
            locked=locked,
            error=error,
            started_at=started_at,
            completed_at=_now_iso(),
        )
        logger.info(
            "Synced %s: %d imported, %d updated, %d renamed, %d pending, %d errors",
            project.identifier,
            len(report.created),
            len(report.updated),
            len(report.renamed),
            len(report.pending),
            len(report.errors),
        )
        return report

    def _run_pass(
        self,
        project: ProjectNode,
        context: SyncContext,
        results: list[SyncResult],
        pending: list[PendingFile],
        locked: list[str],
    ) -> None:
        storage = self.storage_for(project)
        git = self.git_for(storage)
        self._ensure_marker(storage)

        git.stage_all()
        changes = git.detect_changes()
        handled: set[str] = set()

        for path in changes.deleted:
            if not is_document_path(path):
                continue
            handled.add(path)
            logger.info("File %s deleted on disk; document kept", path)
            results.append(
                SyncResult(
                    path=path,
                    title=file_to_title(path),
                    action=SyncAction.DELETE,
                    error=DELETION_NOTE,
                )
            )

        for old_path, new_path in changes.renamed:
            if not is_document_path(new_path):
                continue
            try:
                outcome = self._process_rename(
                    storage, git, old_path, new_path, context, locked
                )
            except Exception as exc:
                logger.error("Error renaming %s to %s: %s", old_path, new_path, exc)
                outcome = [
                    SyncResult(
                        path=new_path,
                        title=file_to_title(new_path),
                        action=SyncAction.RENAME,
                        success=False,
                        error=str(exc),
                    )
                ]
            if outcome is not None:
                handled.update((old_path, new_path))
                results.extend(outcome)

        # A file added under a title that already has a document is an edit.
        for path in [*changes.modified, *changes.added]:
            if not is_document_path(path) or path in handled:
                continue
            try:
                result = self._process_modification(
                    storage, git, path, context, locked
                )
            except Exception as exc:
                logger.error("Error syncing %s: %s", path, exc)
                result = SyncResult(
                    path=path,
                    title=file_to_title(path),
                    action=SyncAction.UPDATE,
                    success=False,
                    error=str(exc),
                )
            if result is not None:
                handled.add(path)
                results.append(result)

        importer = DocumentImporter(self.store, storage)
        scan = importer.scan(exclude=handled | set(locked))
        pending.extend(scan.pending)
        locked.extend(scan.locked)
        for result in importer.import_files(scan.candidates, context):
            results.append(result)
            if result.success and result.action in (
                SyncAction.CREATE,
                SyncAction.RENAME,
            ):
                self._normalize_imported(storage, result)

        self.sync_folder_names(project, context)
        git.commit_all("Synced from filesystem", context.actor)

    def _process_rename(
        self,
        storage: FileStorage,
        git: GitBackend,
        old_path: str,
        new_path: str,
        context: SyncContext,
        locked: list[str],
    ) -> list[SyncResult] | None:
        """Rename the document of *old_path*; ``None`` if it has none."""
        project = storage.project.identifier
        new_title = file_to_title(new_path)
        absolute = storage.project_path / new_path
        importer = DocumentImporter(self.store, storage)
        document = importer.moved_document(old_path, absolute)
        if document is None:
            logger.debug("No document for renamed file %s", old_path)
            return None
        old_title = document.title

        if importer.stored_in(document, absolute):
            # The new name is one of the document's own naming variants.
            return [
                self._process_file(storage, git, document, new_path, context, locked)
            ]

        clash = self.store.find_document(project, new_title)
        if clash is not None and clash.id != document.id:
            logger.warning(
                "Cannot rename %r to %r: title already taken",
                document.title,
                new_title,
            )
            return [
                SyncResult(
                    path=new_path,
                    title=new_title,
                    action=SyncAction.RENAME,
                    success=False,
                    error=f"Document '{new_title}' already exists",
                    document_id=document.id,
                )
            ]

        document = self.store.rename_document(document, new_title, context)
        logger.info("Renamed %r to %r after file move", old_title, new_title)
        results = [
            SyncResult(
                path=new_path,
                title=new_title,
                action=SyncAction.RENAME,
                error=f"renamed from '{old_title}'",
                document_id=document.id,
            )
        ]
        followup = self._process_file(
            storage, git, document, new_path, context, locked
        )
        if followup.action is not SyncAction.SKIP:
            results.append(followup)
        return results

    def _process_modification(
        self,
        storage: FileStorage,
        git: GitBackend,
        path: str,
        context: SyncContext,
        locked: list[str],
    ) -> SyncResult | None:
        """Reconcile an edited file; ``None`` if it has no document."""
        absolute = storage.project_path / path
        document = DocumentImporter(self.store, storage).document_for(absolute)
        if document is None:
            return None
        return self._process_file(storage, git, document, path, context, locked)

    def _process_file(
        self,
        storage: FileStorage,
        git: GitBackend,
        document: Document,
        path: str,
        context: SyncContext,
        locked: list[str],
    ) -> SyncResult:
        absolute = storage.project_path / path
        if is_locked(absolute):
            logger.warning("Skipping locked file %s", absolute)
            locked.append(path)
            return SyncResult(
                path=path,
                title=document.title,
                action=SyncAction.SKIP,
                error="file is locked",
                document_id=document.id,
            )
        return self._reconcile(storage, git, document, absolute, context)

    def _reconcile(
        self,
        storage: FileStorage,
        git: GitBackend,
        document: Document,
        path: Path,
        context: SyncContext,
    ) -> SyncResult:
        relative = storage.relative_path(path)
        loaded = storage.read_path(path)
        if loaded is None:
            return SyncResult(
                path=relative,
                title=document.title,
                action=SyncAction.UPDATE,
                success=False,
                error="file could not be read",
                document_id=document.id,
            )
        text, mtime = loaded
        metadata, body = frontmatter.parse_typed(text)

        resolution = self.policy.resolve(
            document.text, document.updated_on, body, mtime
        )
        result = self._apply_resolution(
            storage, git, document, relative, body, resolution, context
        )
        if resolution is not Resolution.USE_DOCUMENT:
            current = self.store.get_document(document.id) or document
            if self._sync_parent_from_metadata(current, metadata, context):
                if result.action is SyncAction.SKIP:
                    result = result.model_copy(
                        update={"action": SyncAction.UPDATE}
                    )
        return result

    def _apply_resolution(
        self,
        storage: FileStorage,
        git: GitBackend,
        document: Document,
        relative: str,
        body: str,
        resolution: Resolution,
        context: SyncContext,
    ) -> SyncResult:
        if resolution is Resolution.NONE:
            return SyncResult(
                path=relative,
                title=document.title,
                action=SyncAction.SKIP,
                document_id=document.id,
            )

        if resolution is Resolution.USE_FILE:
            author = git.last_commit_author(relative) or context.actor.display_name
            updated = self.store.update_content(
                document,
                body,
                context,
                comment=f"Updated from filesystem (Author: {author})",
            )
            logger.info(
                "Updated %r from %s (version %d)",
                document.title,
                relative,
                updated.version,
            )
            return SyncResult(
                path=relative,
                title=document.title,
                action=SyncAction.UPDATE,
                document_id=document.id,
            )

        if resolution is Resolution.USE_DOCUMENT:
            # keep the external edit in history before overwriting it
            git.commit(
                document.title,
                context.actor,
                f"External edit of {document.title}",
                path=relative,
            )
            written = storage.write(
                document.title, render_document(document, self.store)
            )
            if written is None:
                return SyncResult(
                    path=relative,
                    title=document.title,
                    action=SyncAction.CONFLICT,
                    success=False,
                    error="could not rewrite file from document store",
                    document_id=document.id,
                )
            git.commit(
                document.title,
                None,
                f"Restored {document.title} from document store",
                path=storage.relative_path(written),
            )
            logger.info(
                "Rewrote %s from document %r (%s)",
                relative,
                document.title,
                self.policy.name,
            )
            return SyncResult(
                path=relative,
                title=document.title,
                action=SyncAction.CONFLICT,
                error="file rewritten from document store",
                document_id=document.id,
            )

        logger.info(
            "File %s and document %r differ; left for manual resolution",
            relative,
            document.title,
        )
        return SyncResult(
            path=relative,
            title=document.title,
            action=SyncAction.CONFLICT,
            error="file and document differ; resolve manually",
            document_id=document.id,
        )

    def _sync_parent_from_metadata(
        self,
        document: Document,
        metadata: frontmatter.FrontmatterMetadata,
        context: SyncContext,
    ) -> bool:
        """Point *document* at the parent named in its file's frontmatter."""
        if not metadata.parent:
            return False
        parent = self.store.find_document(document.project, metadata.parent)
        if parent is None:
            logger.warning(
                "Parent page %r of %r not found; parent left unchanged",
                metadata.parent,
                document.title,
            )
            return False
        if parent.id == document.id or parent.id == document.parent_id:
            return False
        with context.suppress_write_back():
            self.store.set_parent(document, parent.id, context)
        logger.info("Set parent of %r to %r", document.title, parent.title)
        return True

    def _normalize_imported(self, storage: FileStorage, result: SyncResult) -> None:
        """Move an imported file to its canonical name and stamp its metadata."""
        document = self.store.get_document(result.document_id)
        if document is None:
            return
        source = storage.project_path / result.path
        if source.is_file() and source != storage.path_for(document.title):
            storage.relocate(source, document.title)
        storage.write(document.title, render_document(document, self.store))

    def reconcile_document(
        self, document: Document, context: SyncContext
    ) -> SyncResult | None:
        """Reconcile one document with its file, e.g. when it is viewed.

        Returns:
            The outcome, or ``None`` when sync is off or no file exists.
        """
        project = self._project_of(document)
        if project is None or not self.is_enabled(project):
            return None
        try:
            with self.locks.hold(project.identifier), context.suppress_write_back():
                storage = self.storage_for(project)
                path = storage.resolve_existing(document.title)
                if path is None:
                    return None
                git = self.git_for(storage)
                result = self._reconcile(storage, git, document, path, context)
                git.commit_paths(
                    [storage.relative_path(path)],
                    context.actor,
                    f"Synced {document.title}",
                )
                return result
        except Exception as exc:
            logger.error("Reconciling %r failed: %s", document.title, exc)
            return SyncResult(
                path="",
                title=document.title,
                action=SyncAction.UPDATE,
                success=False,
                error=str(exc),
                document_id=document.id,
            )

    def sync_folder_names(
        self, project: ProjectNode, context: SyncContext
    ) -> list[str]:
        """Propagate folder names on disk into project display names.

        Applies to *project* and its direct children, and only to folders
        recognised by their marker.  Policies that do not adopt folder
        names log the discrepancy instead.

        Returns:
            Identifiers of the projects that were renamed.
        """
        renamed = []
        for node in [project, *self.store.child_projects(project)]:
            folder = resolve_project_path(node, self.base_path)
            marker = read_project_metadata(folder)
            if not marker or marker.get("id") != node.identifier:
                continue
            if folder.name in (node.name, default_folder_name(node)):
                continue
            if not self.policy.adopts_folder_names:
                logger.info(
                    "Folder %s differs from project name %r (%s: not adopted)",
                    folder,
                    node.name,
                    self.policy.name,
                )
                continue
            with context.suppress_write_back():
                updated = self.store.rename_project(
                    node, context, name=folder.name
                )
            write_project_metadata(folder, updated)
            logger.info(
                "Renamed project %s from %r to folder name %r",
                node.identifier,
                node.name,
                folder.name,
            )
            renamed.append(node.identifier)
        return renamed

    def sync_all_projects(self, context: SyncContext) -> list[SyncReport]:
        """Run a filesystem pass over every enabled project, parents first."""
        reports = []
        queue = list(self.store.child_projects(None))
        while queue:
            project = queue.pop(0)
            if self.is_enabled(project):
                reports.append(self.sync_from_filesystem(project, context))
            queue.extend(self.store.child_projects(project))
        return reports

    # ------------------------------------------------------------------
    # Store -> filesystem
    # ------------------------------------------------------------------

    def on_document_saved(
        self,
        document: Document,
        context: SyncContext,
        attachments: Iterable[Path] = (),
    ) -> Path | None:
        """Write *document* to its file and commit it.

        A locked file is reported as a warning and written anyway.

        Returns:
            The written file, or ``None`` if nothing was written.
        """
        if context.syncing:
            logger.debug("Skipping write-back of %r during sync", document.title)
            return None
        project = self._project_of(document)
        if project is None or not self.is_enabled(project):
            return None

        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            existing = storage.resolve_existing(document.title)
            if existing is not None and is_locked(existing):
                logger.warning(
                    "File %s is locked by another process; writing anyway",
                    existing,
                )
            path = storage.write(
                document.title, render_document(document, self.store)
            )
            if path is None:
                return None
            self._ensure_marker(storage)
            try:
                git = self.git_for(storage)
                paths = [storage.relative_path(path)]
                for copied in sync_to_fs(storage, document.title, attachments):
                    paths.append(storage.relative_path(copied))
                git.commit_paths(
                    paths,
                    context.actor,
                    f"Updated {document.title} (version {document.version})",
                )
            except GitCommandError as exc:
                logger.warning("Commit of %r failed: %s", document.title, exc)
            return path

    def on_document_renamed(
        self, document: Document, old_title: str, context: SyncContext
    ) -> Path | None:
        """Move the file of *old_title* to the name of *document*.

        Children whose frontmatter names the old title are updated.

        Returns:
            The file's new path, or ``None`` if nothing was moved.
        """
        if context.syncing:
            logger.debug("Skipping rename of %r during sync", old_title)
            return None
        project = self._project_of(document)
        if project is None or not self.is_enabled(project):
            return None

        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            if storage.resolve_existing(old_title) is None:
                logger.debug("No file for %r; writing a new one", old_title)
                return self.on_document_saved(document, context)
            moved = storage.rename(old_title, document.title)
            if moved is None:
                return None
            old_path, new_path = moved
            changed = self._rewrite_child_parents(
                storage, document, old_title
            )
            try:
                git = self.git_for(storage)
                git.rename(
                    old_title,
                    document.title,
                    context.actor,
                    f"Renamed {old_title} to {document.title}",
                    old_path=storage.relative_path(old_path),
                    new_path=storage.relative_path(new_path),
                )
                if changed:
                    git.commit_paths(
                        changed,
                        context.actor,
                        f"Updated parent of children of {document.title}",
                    )
            except GitCommandError as exc:
                logger.warning(
                    "Git rename of %r to %r failed: %s",
                    old_title,
                    document.title,
                    exc,
                )
            logger.info("Renamed file %s to %s", old_path.name, new_path.name)
            return new_path

    def _rewrite_child_parents(
        self, storage: FileStorage, document: Document, old_title: str
    ) -> list[str]:
        changed = []
        for child in self.store.list_documents(document.project):
            if child.parent_id != document.id:
                continue
            loaded = storage.read(child.title)
            if loaded is None:
                continue
            text, _mtime = loaded
            if frontmatter.get_metadata(text).get("parent") != old_title:
                continue
            written = storage.write(
                child.title,
                frontmatter.update_metadata(text, {"parent": document.title}),
            )
            if written is not None:
                changed.append(storage.relative_path(written))
        return changed

    def on_document_deleted(
        self, document: Document, context: SyncContext
    ) -> Path | None:
        """Delete the file of *document* and record the removal."""
        if context.syncing:
            logger.debug("Skipping delete of %r during sync", document.title)
            return None
        project = self._project_of(document)
        if project is None or not self.is_enabled(project):
            return None

        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            path = storage.delete(document.title)
            if path is None:
                return None
            try:
                self.git_for(storage).delete(
                    document.title,
                    context.actor,
                    f"Deleted {document.title}",
                    path=storage.relative_path(path),
                )
            except GitCommandError as exc:
                logger.warning("Git delete of %r failed: %s", document.title, exc)
            logger.info("Deleted file %s", path)
            return path

    def on_project_renamed(
        self,
        project: ProjectNode,
        old_identifier: str,
        old_name: str,
        context: SyncContext,
    ) -> Path | None:
        """Follow a project rename on disk.

        ``dbWins`` renames the folder to the new name; the other policies
        keep the folder and only rewrite its ``.project`` marker.

        Returns:
            The project's folder, or ``None`` if it has none yet.
        """
        if context.syncing:
            logger.debug("Skipping folder update of %s during sync", project.identifier)
            return None
        if not old_identifier and not old_name:
            return None
        if not self.is_enabled(project):
            return None

        with self.locks.hold(project.identifier):
            if project.parent is not None:
                parent_dir = resolve_project_path(project.parent, self.base_path)
            else:
                parent_dir = self.base_path
            folder = locate_project_folder(
                parent_dir, old_identifier, old_name
            ) or locate_project_folder(parent_dir, project.identifier, project.name)
            if folder is None:
                logger.info("Project %s has no folder yet", project.identifier)
                return None

            if self.policy.renames_folders:
                target = folder.parent / default_folder_name(project)
                if target == folder:
                    pass
                elif target.exists():
                    logger.warning(
                        "Cannot rename %s to %s: target exists; updating marker only",
                        folder,
                        target.name,
                    )
                else:
                    try:
                        ensure_within_base(target, self.base_path)
                        folder.rename(target)
                    except (OSError, PathOutsideBaseError) as exc:
                        logger.warning(
                            "Cannot rename %s to %s: %s; updating marker only",
                            folder,
                            target.name,
                            exc,
                        )
                    else:
                        logger.info("Renamed folder %s to %s", folder, target)
                        folder = target
            else:
                logger.info(
                    "Keeping folder %s for renamed project %s (%s)",
                    folder,
                    project.identifier,
                    self.policy.name,
                )
            try:
                write_project_metadata(folder, project)
            except OSError as exc:
                logger.warning(
                    "Cannot update project marker in %s: %s", folder, exc
                )
            return folder

    # ------------------------------------------------------------------
    # LifecycleListener
    # ------------------------------------------------------------------

    def before_title_change(
        self, document: Document, new_title: str, context: SyncContext
    ) -> None:
        self.on_document_renamed(
            document.model_copy(update={"title": new_title}),
            document.title,
            context,
        )

    def after_save(self, document: Document, context: SyncContext) -> None:
        self.on_document_saved(document, context)

    def before_destroy(self, document: Document, context: SyncContext) -> None:
        self.on_document_deleted(document, context)

    def after_project_rename(
        self,
        project: ProjectNode,
        old_identifier: str,
        old_name: str,
        context: SyncContext,
    ) -> None:
        self.on_project_renamed(project, old_identifier, old_name, context)

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def check_consistency(self, document: Document) -> DocumentStatus:
        """Compare *document* with its file without changing either."""
        project = self._project_of(document)
        if project is None:
            return DocumentStatus(title=document.title)
        storage = self.storage_for(project)
        path = storage.resolve_existing(document.title)
        if path is None:
            return DocumentStatus(title=document.title, actions=["restore"])
        loaded = storage.read_path(path)
        body = frontmatter.strip_frontmatter(loaded[0]) if loaded else None
        in_sync = body == document.text
        return DocumentStatus(
            title=document.title,
            path=str(path),
            file_exists=True,
            locked=is_locked(path),
            in_sync=in_sync,
            actions=[] if in_sync else ["sync", "restore"],
        )

    def restore_file(
        self, document: Document, context: SyncContext
    ) -> Path | None:
        """Rewrite the file of *document* from the stored content."""
        project = self._project_of(document)
        if project is None:
            return None
        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            path = storage.write(
                document.title, render_document(document, self.store)
            )
            if path is None:
                return None
            self._ensure_marker(storage)
            try:
                self.git_for(storage).commit(
                    document.title,
                    context.actor,
                    "Restored from document store",
                    path=storage.relative_path(path),
                )
            except GitCommandError as exc:
                logger.warning("Commit of restored %r failed: %s", document.title, exc)
            logger.info("Restored %s from document store", path)
            return path

    def fix_missing_frontmatter(
        self, project: ProjectNode, files: list[str], context: SyncContext
    ) -> BatchResult:
        """Prepend an empty frontmatter block to each of *files*."""
        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            return fix_missing_frontmatter(
                storage, self.git_for(storage), files, context
            )

    def attach_pending_file(
        self, project: ProjectNode, filename: str, context: SyncContext
    ) -> Path:
        """Move a pending non-Markdown file into ``_attachments/``."""
        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            target = move_to_attachments(storage, filename)
            try:
                self.git_for(storage).commit_paths(
                    [filename, storage.relative_path(target)],
                    context.actor,
                    f"Attached {filename}",
                )
            except GitCommandError as exc:
                logger.warning("Commit of attached %s failed: %s", filename, exc)
            return target

    def discard_pending_file(
        self, project: ProjectNode, filename: str, context: SyncContext
    ) -> Path:
        """Delete a pending file and record the removal.

        Raises:
            FileNotFoundError: If the file does not exist.
            PathOutsideBaseError: If *filename* escapes the base path.
        """
        with self.locks.hold(project.identifier):
            storage = self.storage_for(project)
            path = storage.guard(storage.project_path / filename)
            if not path.is_file():
                raise FileNotFoundError(f"File not found: {filename}")
            path.unlink()
            try:
                self.git_for(storage).commit_paths(
                    [filename], context.actor, f"Discarded {filename}"
                )
            except GitCommandError as exc:
                logger.warning("Commit of discarded %s failed: %s", filename, exc)
            logger.info("Discarded %s by %s", path, context.actor.login)
            return path

    def scan_unassigned_folders(
        self, project: ProjectNode | None = None
    ) -> list[UnassignedFolder]:
        return self.folders.scan_all_folders(project)

    def adopt_folder(
        self,
        path: Path | str,
        context: SyncContext,
        parent: ProjectNode | None = None,
    ) -> ProjectNode:
        return self.folders.adopt(path, context, parent)

    def quarantine_folder(
        self,
        path: Path | str,
        context: SyncContext,
        project: ProjectNode | None = None,
    ) -> Path:
        return self.folders.quarantine(path, context, project)
