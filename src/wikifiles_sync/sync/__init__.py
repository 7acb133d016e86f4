"""Bidirectional wiki/file sync engine.

Public API for keeping the pages of a document store in step with a tree
of Markdown files, one git repository per project folder.

Architecture
------------
The document store is the record for identity (ids, titles, parents);
the filesystem is the record for bytes at rest.  Each project folder is
re-associated with its project through a ``.project`` marker, and each
file with its document through the ``id`` in its frontmatter, so either
side can be renamed independently.

Modules:

- ``engine``      -- ``SyncEngine``: both sync directions and all entry points.
- ``frontmatter`` -- parse/build of the YAML block at the top of a file.
- ``storage``     -- ``FileStorage``: path resolution, file I/O, markers.
- ``git_backend`` -- ``GitBackend``: commits and change detection.
- ``locks``       -- ``is_locked``: non-blocking advisory lock probe.
- ``context``     -- ``SyncContext`` re-entrancy guard, per-project locks.
- ``resolver``    -- Conflict policies (fileWins, dbWins, manual).
- ``importer``    -- Import of new files, frontmatter repair.
- ``attachments`` -- ``_attachments/`` mirror.
- ``folders``     -- ``FolderClassifier``: scan, adopt, quarantine.
- ``store``       -- ``DocumentStore`` protocol, ``JsonDocumentStore``.
- ``models``      -- pydantic data contracts.
- ``reporter``    -- Human-readable and JSON report formatting.

Usage example
-------------
::

    from wikifiles_sync.sync import (
        JsonDocumentStore,
        SyncContext,
        SyncEngine,
        format_sync_report,
    )

    store = JsonDocumentStore("/var/lib/wikifiles/store.json")
    engine = SyncEngine(store, "/var/lib/wikifiles", "fileWins")
    store.add_listener(engine)

    context = SyncContext.for_user("alice", "Alice")
    report = engine.sync_from_filesystem(store.get_project("docs"), context)
    print(format_sync_report(report))
"""

from .context import ProjectLockRegistry, SyncContext
from .engine import SyncEngine
from .folders import FolderClassifier
from .git_backend import GitBackend, GitCommandError
from .models import (
    Actor,
    BatchResult,
    ChangeSet,
    Document,
    DocumentStatus,
    PendingFile,
    ProjectNode,
    SyncAction,
    SyncReport,
    SyncResult,
    UnassignedFolder,
)
from .reporter import format_sync_report, report_to_json
from .storage import FileStorage, sanitize_filename
from .store import DocumentStore, JsonDocumentStore, LifecycleListener

__all__ = [
    "Actor",
    "BatchResult",
    "ChangeSet",
    "Document",
    "DocumentStatus",
    "DocumentStore",
    "FileStorage",
    "FolderClassifier",
    "GitBackend",
    "GitCommandError",
    "JsonDocumentStore",
    "LifecycleListener",
    "PendingFile",
    "ProjectLockRegistry",
    "ProjectNode",
    "SyncAction",
    "SyncContext",
    "SyncEngine",
    "SyncReport",
    "SyncResult",
    "UnassignedFolder",
    "format_sync_report",
    "report_to_json",
]
