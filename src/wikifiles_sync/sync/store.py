"""Document store adapter interface and a JSON-file reference adapter.

The sync engine never reaches into the host's models.  The host wraps its
database in a ``DocumentStore`` and calls the ``LifecycleListener`` methods
at fixed points of its own write path:

- ``before_title_change`` -- a document is about to be renamed.
- ``after_save`` -- a document was created or its content/parent changed.
- ``before_destroy`` -- a document is about to be deleted.
- ``after_project_rename`` -- a project's name or identifier changed.

Every mutation takes the caller's ``SyncContext`` and forwards it to the
listeners, so writes made by the engine itself are recognised and not
mirrored back.

``JsonDocumentStore`` implements the interface on top of a single JSON
file.  It is what the MCP server runs against and what the tests use.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from ..file_handler import atomic_write_text
from .context import SyncContext
from .models import Document, ProjectNode

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols
# ---------------------------------------------------------------------------


class LifecycleListener(Protocol):
    """Hooks a document store calls around its own mutations."""

    def before_title_change(
        self, document: Document, new_title: str, context: SyncContext
    ) -> None: ...  # pragma: no cover

    def after_save(
        self, document: Document, context: SyncContext
    ) -> None: ...  # pragma: no cover

    def before_destroy(
        self, document: Document, context: SyncContext
    ) -> None: ...  # pragma: no cover

    def after_project_rename(
        self,
        project: ProjectNode,
        old_identifier: str,
        old_name: str,
        context: SyncContext,
    ) -> None: ...  # pragma: no cover


class DocumentStore(Protocol):
    """What the sync engine needs from the database of record."""

    def get_project(self, identifier: str) -> ProjectNode | None: ...  # pragma: no cover

    def child_projects(self, project: ProjectNode | None) -> list[ProjectNode]: ...  # pragma: no cover

    def create_project(
        self,
        identifier: str,
        name: str,
        parent: ProjectNode | None,
        context: SyncContext,
    ) -> ProjectNode: ...  # pragma: no cover

    def rename_project(
        self,
        project: ProjectNode,
        context: SyncContext,
        *,
        name: str | None = None,
        identifier: str | None = None,
    ) -> ProjectNode: ...  # pragma: no cover

    def get_document(self, document_id: int) -> Document | None: ...  # pragma: no cover

    def find_document(self, project: str, title: str) -> Document | None: ...  # pragma: no cover

    def list_documents(self, project: str) -> list[Document]: ...  # pragma: no cover

    def create_document(
        self,
        project: str,
        title: str,
        text: str,
        context: SyncContext,
        *,
        parent_id: int | None = None,
        created_on: datetime | None = None,
        updated_on: datetime | None = None,
        comment: str | None = None,
    ) -> Document: ...  # pragma: no cover

    def update_content(
        self,
        document: Document,
        text: str,
        context: SyncContext,
        *,
        comment: str | None = None,
    ) -> Document: ...  # pragma: no cover

    def rename_document(
        self, document: Document, new_title: str, context: SyncContext
    ) -> Document: ...  # pragma: no cover

    def set_parent(
        self, document: Document, parent_id: int | None, context: SyncContext
    ) -> Document: ...  # pragma: no cover

    def delete_document(
        self, document: Document, context: SyncContext
    ) -> None: ...  # pragma: no cover


# ---------------------------------------------------------------------------
# JSON reference adapter
# ---------------------------------------------------------------------------


def _now() -> datetime:
    return datetime.now(timezone.utc)


class JsonDocumentStore:
    """Projects and documents persisted in one JSON file.

    Writes are atomic (temp file + ``os.replace``).  Document ids are
    unique across projects.  Each content change bumps ``version`` and
    ``updated_on`` and appends to a per-document history.

    Args:
        path: JSON file; created on first write.
        listeners: Lifecycle listeners notified on mutations.
    """

    def __init__(
        self, path: Path | str, listeners: Iterable[LifecycleListener] = ()
    ) -> None:
        self.path = Path(path)
        self._listeners: list[LifecycleListener] = list(listeners)
        self._lock = threading.RLock()
        self._data = self._load()

    def add_listener(self, listener: LifecycleListener) -> None:
        self._listeners.append(listener)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def _load(self) -> dict[str, Any]:
        if not self.path.exists():
            return {"version": 1, "next_id": 1, "projects": {}, "documents": {}}
        with open(self.path, encoding="utf-8") as fh:
            return json.load(fh)

    def _save(self) -> None:
        atomic_write_text(
            self.path, json.dumps(self._data, indent=2, ensure_ascii=False)
        )

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def _project_from_record(self, record: dict[str, Any]) -> ProjectNode:
        parent = None
        if record.get("parent"):
            parent_record = self._data["projects"].get(record["parent"])
            if parent_record is not None:
                parent = self._project_from_record(parent_record)
        return ProjectNode(
            identifier=record["identifier"],
            name=record["name"],
            parent=parent,
            sync_enabled=record.get("sync_enabled", True),
            created_on=record.get("created_on"),
        )

    def get_project(self, identifier: str) -> ProjectNode | None:
        with self._lock:
            record = self._data["projects"].get(identifier)
            return self._project_from_record(record) if record else None

    def child_projects(self, project: ProjectNode | None) -> list[ProjectNode]:
        """Direct children of *project*, or root projects for ``None``."""
        parent_id = project.identifier if project else None
        with self._lock:
            return [
                self._project_from_record(record)
                for record in self._data["projects"].values()
                if record.get("parent") == parent_id
            ]

    def create_project(
        self,
        identifier: str,
        name: str,
        parent: ProjectNode | None,
        context: SyncContext,
        *,
        sync_enabled: bool = True,
    ) -> ProjectNode:
        with self._lock:
            if identifier in self._data["projects"]:
                raise ValueError(f"Project '{identifier}' already exists")
            self._data["projects"][identifier] = {
                "identifier": identifier,
                "name": name,
                "parent": parent.identifier if parent else None,
                "sync_enabled": sync_enabled,
                "created_on": _now().isoformat(),
            }
            self._save()
            logger.info(
                "Created project %s (%s) for %s",
                identifier,
                name,
                context.actor.login,
            )
            return self._project_from_record(self._data["projects"][identifier])

    def rename_project(
        self,
        project: ProjectNode,
        context: SyncContext,
        *,
        name: str | None = None,
        identifier: str | None = None,
    ) -> ProjectNode:
        """Change a project's display name and/or identifier."""
        with self._lock:
            old_identifier = project.identifier
            record = self._data["projects"].get(old_identifier)
            if record is None:
                raise ValueError(f"Project '{old_identifier}' not found")
            old_name = record["name"]
            new_identifier = identifier or old_identifier
            if new_identifier != old_identifier:
                if new_identifier in self._data["projects"]:
                    raise ValueError(f"Project '{new_identifier}' already exists")
                del self._data["projects"][old_identifier]
                record["identifier"] = new_identifier
                self._data["projects"][new_identifier] = record
                for other in self._data["projects"].values():
                    if other.get("parent") == old_identifier:
                        other["parent"] = new_identifier
                for doc in self._data["documents"].values():
                    if doc["project"] == old_identifier:
                        doc["project"] = new_identifier
            if name is not None:
                record["name"] = name
            self._save()
            renamed = self._project_from_record(record)

        for listener in self._listeners:
            listener.after_project_rename(
                renamed, old_identifier, old_name, context
            )
        return renamed

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def get_document(self, document_id: int) -> Document | None:
        with self._lock:
            record = self._data["documents"].get(str(document_id))
            return Document.model_validate(record) if record else None

    def find_document(self, project: str, title: str) -> Document | None:
        """Find by exact title, then case-insensitively."""
        docs = self.list_documents(project)
        for doc in docs:
            if doc.title == title:
                return doc
        folded = title.casefold()
        for doc in docs:
            if doc.title.casefold() == folded:
                return doc
        return None

    def list_documents(self, project: str) -> list[Document]:
        with self._lock:
            return [
                Document.model_validate(record)
                for record in self._data["documents"].values()
                if record["project"] == project
            ]

    def history(self, document_id: int) -> list[dict[str, Any]]:
        with self._lock:
            return list(
                self._data.get("history", {}).get(str(document_id), [])
            )

    def _store(
        self,
        document: Document,
        context: SyncContext,
        comment: str | None,
    ) -> None:
        self._data["documents"][str(document.id)] = document.model_dump(
            mode="json"
        )
        self._data.setdefault("history", {}).setdefault(
            str(document.id), []
        ).append(
            {
                "version": document.version,
                "author": context.actor.login,
                "comment": comment or "",
                "at": document.updated_on.isoformat(),
            }
        )
        self._save()

    def create_document(
        self,
        project: str,
        title: str,
        text: str,
        context: SyncContext,
        *,
        parent_id: int | None = None,
        created_on: datetime | None = None,
        updated_on: datetime | None = None,
        comment: str | None = None,
    ) -> Document:
        with self._lock:
            if project not in self._data["projects"]:
                raise ValueError(f"Project '{project}' not found")
            if self.find_document(project, title) is not None:
                raise ValueError(
                    f"Document '{title}' already exists in project '{project}'"
                )
            now = _now()
            document = Document(
                id=self._data["next_id"],
                project=project,
                title=title,
                text=text,
                parent_id=parent_id,
                version=1,
                created_on=created_on or now,
                updated_on=updated_on or created_on or now,
            )
            self._data["next_id"] += 1
            self._store(document, context, comment)

        for listener in self._listeners:
            listener.after_save(document, context)
        return document

    def update_content(
        self,
        document: Document,
        text: str,
        context: SyncContext,
        *,
        comment: str | None = None,
    ) -> Document:
        """Replace the body; a no-op when the text is unchanged."""
        with self._lock:
            current = self.get_document(document.id)
            if current is None:
                raise ValueError(f"Document {document.id} not found")
            if current.text == text:
                return current
            updated = current.model_copy(
                update={
                    "text": text,
                    "version": current.version + 1,
                    "updated_on": _now(),
                }
            )
            self._store(updated, context, comment)

        for listener in self._listeners:
            listener.after_save(updated, context)
        return updated

    def rename_document(
        self, document: Document, new_title: str, context: SyncContext
    ) -> Document:
        with self._lock:
            current = self.get_document(document.id)
            if current is None:
                raise ValueError(f"Document {document.id} not found")
            if current.title == new_title:
                return current
            clash = self.find_document(current.project, new_title)
            if clash is not None and clash.id != current.id:
                raise ValueError(
                    f"Document '{new_title}' already exists in project '{current.project}'"
                )

        for listener in self._listeners:
            listener.before_title_change(current, new_title, context)

        with self._lock:
            renamed = current.model_copy(update={"title": new_title})
            self._data["documents"][str(renamed.id)] = renamed.model_dump(
                mode="json"
            )
            self._save()
        return renamed

    def set_parent(
        self, document: Document, parent_id: int | None, context: SyncContext
    ) -> Document:
        with self._lock:
            current = self.get_document(document.id)
            if current is None:
                raise ValueError(f"Document {document.id} not found")
            if current.parent_id == parent_id:
                return current
            if parent_id == current.id:
                raise ValueError("A document cannot be its own parent")
            updated = current.model_copy(update={"parent_id": parent_id})
            self._data["documents"][str(updated.id)] = updated.model_dump(
                mode="json"
            )
            self._save()

        for listener in self._listeners:
            listener.after_save(updated, context)
        return updated

    def delete_document(self, document: Document, context: SyncContext) -> None:
        current = self.get_document(document.id)
        if current is None:
            return
        for listener in self._listeners:
            listener.before_destroy(current, context)
        with self._lock:
            self._data["documents"].pop(str(current.id), None)
            for record in self._data["documents"].values():
                if record.get("parent_id") == current.id:
                    record["parent_id"] = None
            self._save()
