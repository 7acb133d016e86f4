"""Pydantic models for the wiki/file sync engine.

Defines the data contracts shared by all sync modules:

- ``Actor``: The user on whose behalf a sync operation runs.
- ``ProjectNode``: A project (namespace) that owns one folder and one repo.
- ``Document``: A wiki page held by the document store.
- ``ChangeSet``: Classified ``git status`` output for one pass.
- ``SyncAction`` / ``SyncResult``: Outcome of reconciling one file.
- ``PendingFile``: A file on disk that could not be imported automatically.
- ``SyncReport``: Aggregate results for a full filesystem pass.
- ``BatchResult``, ``UnassignedFolder``, ``DocumentStatus``: Operator-facing
  results for the maintenance operations.

All models are frozen (immutable).  Store mutations return updated copies.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel


class SyncAction(str, Enum):
    """Possible outcomes for one file during a filesystem pass."""

    SKIP = "skip"
    CREATE = "create"
    UPDATE = "update"
    RENAME = "rename"
    DELETE = "delete"
    CONFLICT = "conflict"
    PENDING = "pending"


class Actor(BaseModel):
    """The acting user supplied by the host system.

    Attributes:
        login: Account name, always present.
        name: Display name used as the git author name.
        email: Address used as the git author email.
    """

    login: str
    name: str | None = None
    email: str | None = None

    model_config = {"frozen": True}

    @property
    def display_name(self) -> str:
        return self.name or self.login

    @property
    def git_author(self) -> str:
        """Author string in the ``Name <email>`` form git expects."""
        email = self.email or f"{self.login}@localhost"
        return f"{self.display_name} <{email}>"


class ProjectNode(BaseModel):
    """A project owning a subtree of documents.

    Attributes:
        identifier: Stable key, recorded in the folder's ``.project`` marker.
        name: Display name; may drift from the folder name.
        parent: Parent project, ``None`` for a root project.
        sync_enabled: Per-project switch, combined with the global flag.
        created_on: Creation time written into the marker.
    """

    identifier: str
    name: str
    parent: ProjectNode | None = None
    sync_enabled: bool = True
    created_on: datetime | None = None

    model_config = {"frozen": True}

    @property
    def ancestors(self) -> list[ProjectNode]:
        """Parents from the root down to (excluding) this project."""
        chain: list[ProjectNode] = []
        node = self.parent
        while node is not None:
            chain.append(node)
            node = node.parent
        return list(reversed(chain))


class Document(BaseModel):
    """A wiki page as held by the document store.

    Attributes:
        id: Stable identifier; never changes when the title does.
        project: Identifier of the owning project.
        title: Human-readable title, also the base of the file name.
        text: Content body without frontmatter.
        parent_id: Identifier of the parent document, if any.
        version: Content version, bumped on every content change.
        created_on: Creation timestamp.
        updated_on: Last content change timestamp.
    """

    id: int
    project: str
    title: str
    text: str = ""
    parent_id: int | None = None
    version: int = 1
    created_on: datetime
    updated_on: datetime

    model_config = {"frozen": True}


class ChangeSet(BaseModel):
    """Working tree changes relative to the last commit.

    Attributes:
        added: Paths of new files.
        modified: Paths of changed files.
        deleted: Paths of removed files.
        renamed: ``(old, new)`` path pairs.
    """

    added: list[str] = []
    modified: list[str] = []
    deleted: list[str] = []
    renamed: list[tuple[str, str]] = []

    model_config = {"frozen": True}

    @property
    def is_empty(self) -> bool:
        return not (
            self.added or self.modified or self.deleted or self.renamed
        )


class SyncResult(BaseModel):
    """Result of reconciling one file with the document store.

    Attributes:
        path: File path relative to the project folder.
        title: Document title the file maps to.
        action: What was done.
        success: Whether the action succeeded.
        error: Failure reason, or an informational note on success.
        document_id: Identifier of the affected document, if any.
    """

    path: str
    title: str
    action: SyncAction
    success: bool = True
    error: str | None = None
    document_id: int | None = None

    model_config = {"frozen": True}


class PendingFile(BaseModel):
    """A file found on disk that needs an operator decision.

    Attributes:
        path: File path relative to the project folder.
        kind: ``"wiki"`` for Markdown files, ``"attachment"`` otherwise.
        has_frontmatter: Whether a delimited metadata block is present.
        metadata: Parsed frontmatter values.
        errors: Reasons the file was not imported.
        remediations: Actions the operator can take.
    """

    path: str
    kind: str = "wiki"
    has_frontmatter: bool = False
    metadata: dict = {}
    errors: list[str] = []
    remediations: list[str] = []

    model_config = {"frozen": True}


class SyncReport(BaseModel):
    """Aggregate report for one filesystem pass over a project.

    Attributes:
        project: Identifier of the synced project.
        results: Per-file results.
        pending: Files awaiting an operator decision.
        locked: Files held open by another process.
        error: Pass-level failure, if the pass aborted.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass finished.
    """

    project: str
    results: list[SyncResult] = []
    pending: list[PendingFile] = []
    locked: list[str] = []
    error: str | None = None
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    def _with_action(self, action: SyncAction) -> list[SyncResult]:
        return [
            r for r in self.results if r.action == action and r.success
        ]

    @property
    def created(self) -> list[SyncResult]:
        """Results where a document was created."""
        return self._with_action(SyncAction.CREATE)

    @property
    def updated(self) -> list[SyncResult]:
        """Results where document content or parent was updated."""
        return self._with_action(SyncAction.UPDATE)

    @property
    def renamed(self) -> list[SyncResult]:
        """Results where a document was renamed."""
        return self._with_action(SyncAction.RENAME)

    @property
    def deletions(self) -> list[SyncResult]:
        """Deletions seen on disk (never propagated)."""
        return self._with_action(SyncAction.DELETE)

    @property
    def conflicts(self) -> list[SyncResult]:
        """Results where the policy left a discrepancy for a human."""
        return self._with_action(SyncAction.CONFLICT)

    @property
    def skipped(self) -> list[SyncResult]:
        """Results where nothing needed doing."""
        return self._with_action(SyncAction.SKIP)

    @property
    def errors(self) -> list[SyncResult]:
        """Results where success is False."""
        return [r for r in self.results if not r.success]

    @property
    def ok(self) -> bool:
        return self.error is None and not self.errors

    def summary(self) -> str:
        """Format a human-readable summary of the pass.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            f"Sync report for project '{self.project}'",
            f"  Imported:  {len(self.created)}",
            f"  Updated:   {len(self.updated)}",
            f"  Renamed:   {len(self.renamed)}",
            f"  Deleted on disk (ignored): {len(self.deletions)}",
            f"  Conflicts: {len(self.conflicts)}",
            f"  Pending:   {len(self.pending)}",
            f"  Locked:    {len(self.locked)}",
            f"  Errors:    {len(self.errors)}",
        ]
        if self.error:
            lines.append(f"  Aborted:   {self.error}")
        return "\n".join(lines)


class FailedItem(BaseModel):
    """One failed entry of a batch operation."""

    file: str
    error: str

    model_config = {"frozen": True}


class BatchResult(BaseModel):
    """Successes and per-item failures of a batch operation.

    Attributes:
        fixed: Names of the files that were processed.
        failed: Files that were refused, with the reason.
    """

    fixed: list[str] = []
    failed: list[FailedItem] = []

    model_config = {"frozen": True}


class UnassignedFolder(BaseModel):
    """A folder with no matching project.

    Attributes:
        path: Absolute folder path.
        name: Folder basename.
        parent_project: Identifier of the project whose folder contains
            it, ``None`` at the base directory.
        depth: Nesting depth below the scan root.
    """

    path: str
    name: str
    parent_project: str | None = None
    depth: int = 0

    model_config = {"frozen": True}


class DocumentStatus(BaseModel):
    """Consistency of a document with its backing file.

    Attributes:
        title: Document title.
        path: Resolved file path, or ``None`` when no file exists.
        file_exists: Whether a backing file was found.
        locked: Whether the file is held open by another process.
        in_sync: Whether the file body equals the document text.
        actions: Remediations offered to the operator.
    """

    title: str
    path: str | None = None
    file_exists: bool = False
    locked: bool = False
    in_sync: bool = False
    actions: list[str] = []

    model_config = {"frozen": True}
