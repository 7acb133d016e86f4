"""Import of files that have no document yet, and frontmatter repair.

A Markdown file found in a project folder without a matching document is
imported only if it starts with a frontmatter block; the block (even an
empty one) is the signal that the file is meant to become a page.  Other
files are reported as pending with the remediations an operator can pick.

Import recognises a file by the ``id`` in its frontmatter before falling
back to the title, so a file renamed on disk renames its document instead
of creating a duplicate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path

from ..file_handler import read_file_with_encoding, write_file
from . import frontmatter
from .context import SyncContext
from .git_backend import GitBackend, GitCommandError
from .locks import is_locked
from .models import (
    BatchResult,
    Document,
    FailedItem,
    PendingFile,
    SyncAction,
    SyncResult,
)
from .storage import FileStorage, file_to_title, same_file
from .store import DocumentStore

logger = logging.getLogger(__name__)

REMEDIATION_ADD_FRONTMATTER = "add frontmatter"
REMEDIATION_ATTACH = "attach as file"
REMEDIATION_DISCARD = "discard"

MISSING_FRONTMATTER = "missing frontmatter"


def render_document(document: Document, store: DocumentStore) -> str:
    """File text for *document*: canonical frontmatter followed by the body."""
    parent_title = None
    if document.parent_id is not None:
        parent = store.get_document(document.parent_id)
        if parent is not None:
            parent_title = parent.title
    metadata = frontmatter.FrontmatterMetadata(
        parent=parent_title,
        id=document.id,
        created=document.created_on.isoformat(),
        updated=document.updated_on.isoformat(),
    )
    return frontmatter.build(metadata, document.text)


@dataclass
class ScanResult:
    """Files in a project folder that have no document.

    Attributes:
        candidates: Markdown files with frontmatter, ready to import.
        pending: Files needing an operator decision.
        locked: Names of files held open by another process.
    """

    candidates: list[Path] = field(default_factory=list)
    pending: list[PendingFile] = field(default_factory=list)
    locked: list[str] = field(default_factory=list)


class DocumentImporter:
    """Create or update documents from files of one project.

    Args:
        store: The document store.
        storage: Storage of the project being imported.
    """

    def __init__(self, store: DocumentStore, storage: FileStorage) -> None:
        self.store = store
        self.storage = storage
        self.project = storage.project.identifier

    # ------------------------------------------------------------------
    # Scanning
    # ------------------------------------------------------------------

    def scan(self, exclude: set[str] | None = None) -> ScanResult:
        """Classify files of the project folder that lack a document.

        Args:
            exclude: Relative paths already handled by the caller.
        """
        exclude = exclude or set()
        result = ScanResult()

        for path in self.storage.list_markdown_files():
            relative = self.storage.relative_path(path)
            if relative in exclude:
                continue
            if self.document_for(path) is not None:
                continue
            if is_locked(path):
                logger.warning("Skipping locked file %s", path)
                result.locked.append(relative)
                continue
            loaded = self.storage.read_path(path)
            if loaded is None:
                result.pending.append(
                    PendingFile(
                        path=relative,
                        errors=["file could not be read"],
                        remediations=[REMEDIATION_DISCARD],
                    )
                )
                continue
            text, _mtime = loaded
            if frontmatter.has_frontmatter(text):
                result.candidates.append(path)
            else:
                result.pending.append(
                    PendingFile(
                        path=relative,
                        errors=[MISSING_FRONTMATTER],
                        remediations=[
                            REMEDIATION_ADD_FRONTMATTER,
                            REMEDIATION_DISCARD,
                        ],
                    )
                )

        for path in self.storage.list_other_files():
            relative = self.storage.relative_path(path)
            if relative in exclude:
                continue
            if is_locked(path):
                result.locked.append(relative)
                continue
            result.pending.append(
                PendingFile(
                    path=relative,
                    kind="attachment",
                    errors=["not a Markdown file"],
                    remediations=[REMEDIATION_ATTACH, REMEDIATION_DISCARD],
                )
            )
        return result

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    def document_by_id(
        self, metadata: frontmatter.FrontmatterMetadata
    ) -> Document | None:
        if metadata.id is None:
            return None
        try:
            document_id = int(metadata.id)
        except (TypeError, ValueError):
            logger.debug("Ignoring non-numeric frontmatter id %r", metadata.id)
            return None
        document = self.store.get_document(document_id)
        if document is None or document.project != self.project:
            return None
        return document

    def stored_in(self, document: Document, path: Path) -> bool:
        """True if *path* is the file the naming variants of *document* resolve to."""
        current = self.storage.resolve_existing(document.title)
        return current is not None and same_file(current, path)

    def document_for(self, path: Path) -> Document | None:
        """The document whose file is *path*.

        The frontmatter ``id`` is tried first, since file names do not map
        back to titles losslessly (``What's New?`` is stored as
        ``Whats_New.md``).  An id match counts only when the document
        resolves to this very file; otherwise the title derived from the
        file name is looked up.
        """
        loaded = self.storage.read_path(path)
        if loaded is not None:
            metadata, _body = frontmatter.parse_typed(loaded[0])
            document = self.document_by_id(metadata)
            if document is not None and self.stored_in(document, path):
                return document
        title = file_to_title(self.storage.relative_path(path))
        return self.store.find_document(self.project, title)

    def moved_document(self, old_relative: str, path: Path) -> Document | None:
        """The document of a file moved from *old_relative* to *path*.

        Matched by the frontmatter ``id`` of the moved file unless the
        document still has a file of its own elsewhere, then by the title
        of the old name.
        """
        loaded = self.storage.read_path(path)
        if loaded is not None:
            metadata, _body = frontmatter.parse_typed(loaded[0])
            document = self.document_by_id(metadata)
            if document is not None:
                current = self.storage.resolve_existing(document.title)
                if current is None or same_file(current, path):
                    return document
        return self.store.find_document(self.project, file_to_title(old_relative))

    def import_file(self, path: Path, context: SyncContext) -> SyncResult:
        """Create, rename or update the document for *path*.

        Must run inside ``context.suppress_write_back()``; the caller
        writes the canonical file afterwards.
        """
        relative = self.storage.relative_path(path)
        title = file_to_title(relative)
        loaded = self.storage.read_path(path)
        if loaded is None:
            return SyncResult(
                path=relative,
                title=title,
                action=SyncAction.PENDING,
                success=False,
                error="file could not be read",
            )
        text, _mtime = loaded
        if not frontmatter.has_frontmatter(text):
            return SyncResult(
                path=relative,
                title=title,
                action=SyncAction.PENDING,
                success=False,
                error=MISSING_FRONTMATTER,
            )
        metadata, content = frontmatter.parse_typed(text)

        parent_id = None
        if metadata.parent:
            parent = self.store.find_document(self.project, metadata.parent)
            if parent is None:
                logger.warning(
                    "Cannot import %s: parent page %r not found",
                    relative,
                    metadata.parent,
                )
                return SyncResult(
                    path=relative,
                    title=title,
                    action=SyncAction.CREATE,
                    success=False,
                    error=f"Parent page '{metadata.parent}' not found",
                )
            parent_id = parent.id

        existing = self.document_by_id(metadata)
        if existing is not None:
            current = self.storage.resolve_existing(existing.title)
            if current is not None and same_file(current, path):
                # Same file under a name that does not map back to the title.
                title = existing.title
            elif current is not None:
                # The old file is still there: this is a copy, not a rename.
                existing = None

        if existing is not None and existing.title != title:
            old_title = existing.title
            document = self.store.rename_document(existing, title, context)
            document = self._apply(document, content, parent_id, context)
            logger.info("Renamed %r to %r from %s", old_title, title, relative)
            return SyncResult(
                path=relative,
                title=title,
                action=SyncAction.RENAME,
                error=f"renamed from '{old_title}'",
                document_id=document.id,
            )

        existing = existing or self.store.find_document(self.project, title)
        if existing is not None:
            document = self._apply(existing, content, parent_id, context)
            action = (
                SyncAction.UPDATE
                if document.version != existing.version
                or document.parent_id != existing.parent_id
                else SyncAction.SKIP
            )
            return SyncResult(
                path=relative,
                title=existing.title,
                action=action,
                document_id=document.id,
            )

        document = self.store.create_document(
            self.project,
            title,
            content,
            context,
            parent_id=parent_id,
            created_on=metadata.created_at,
            updated_on=metadata.updated_at,
            comment=f"Imported from {relative}",
        )
        logger.info("Imported %s as document %d", relative, document.id)
        return SyncResult(
            path=relative,
            title=title,
            action=SyncAction.CREATE,
            document_id=document.id,
        )

    def _apply(
        self,
        document: Document,
        content: str,
        parent_id: int | None,
        context: SyncContext,
    ) -> Document:
        if document.text != content:
            document = self.store.update_content(
                document,
                content,
                context,
                comment="Updated from filesystem",
            )
        if parent_id is not None and document.parent_id != parent_id:
            document = self.store.set_parent(document, parent_id, context)
        return document

    def import_files(
        self, paths: list[Path], context: SyncContext
    ) -> list[SyncResult]:
        """Import several files; one failure does not stop the others."""
        results = []
        for path in paths:
            try:
                with context.suppress_write_back():
                    results.append(self.import_file(path, context))
            except Exception as exc:
                logger.error("Error importing %s: %s", path, exc)
                results.append(
                    SyncResult(
                        path=path.name,
                        title=file_to_title(path.name),
                        action=SyncAction.CREATE,
                        success=False,
                        error=str(exc),
                    )
                )
        return results


# ---------------------------------------------------------------------------
# Frontmatter repair
# ---------------------------------------------------------------------------


def fix_file(path: Path, git: GitBackend | None, context: SyncContext) -> str | None:
    """Prepend an empty frontmatter block to *path* and commit it.

    Returns:
        ``None`` on success, otherwise the reason the file was refused.
    """
    if not path.is_file():
        return "File not found"
    try:
        text, _encoding = read_file_with_encoding(path)
    except (OSError, UnicodeError) as exc:
        logger.error("Failed to read %s: %s", path, exc)
        return f"Cannot read file: {exc}"
    if text.startswith(frontmatter.DELIMITER):
        return "Frontmatter already exists"
    if is_locked(path):
        return "File is locked"
    try:
        write_file(
            path, f"{frontmatter.DELIMITER}\n{frontmatter.DELIMITER}\n\n{text}"
        )
    except OSError as exc:
        logger.error("Failed to write %s: %s", path, exc)
        return f"Cannot write file: {exc}"

    if git is not None:
        relative = path.relative_to(git.repo_path).as_posix()
        try:
            git.commit(
                file_to_title(relative),
                context.actor,
                f"Auto-fix: Added frontmatter to {path.name}",
                path=relative,
            )
        except GitCommandError as exc:
            logger.warning("Commit after fixing %s failed: %s", path, exc)
    return None


def fix_missing_frontmatter(
    storage: FileStorage,
    git: GitBackend | None,
    files: list[str],
    context: SyncContext,
) -> BatchResult:
    """Run :func:`fix_file` over project-relative file names."""
    fixed: list[str] = []
    failed: list[FailedItem] = []
    for name in files:
        path = storage.project_path / name
        try:
            storage.guard(path)
        except ValueError as exc:
            failed.append(FailedItem(file=name, error=str(exc)))
            continue
        reason = fix_file(path, git, context)
        if reason is None:
            fixed.append(name)
        else:
            failed.append(FailedItem(file=name, error=reason))
    logger.info(
        "Frontmatter fix: %d fixed, %d failed", len(fixed), len(failed)
    )
    return BatchResult(fixed=fixed, failed=failed)
