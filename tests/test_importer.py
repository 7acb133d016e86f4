"""Tests for importing files without a document and repairing frontmatter."""

from __future__ import annotations

from pathlib import Path

import pytest

from wikifiles_sync.sync import frontmatter
from wikifiles_sync.sync.context import SyncContext
from wikifiles_sync.sync.importer import (
    MISSING_FRONTMATTER,
    DocumentImporter,
    fix_file,
    fix_missing_frontmatter,
    render_document,
)
from wikifiles_sync.sync.models import SyncAction
from wikifiles_sync.sync.storage import FileStorage
from wikifiles_sync.sync.store import JsonDocumentStore

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def storage(project, base_path: Path) -> FileStorage:
    storage = FileStorage(project, base_path)
    storage.ensure_project_dir()
    return storage


@pytest.fixture
def importer(store: JsonDocumentStore, storage: FileStorage) -> DocumentImporter:
    return DocumentImporter(store, storage)


def _write(storage: FileStorage, name: str, text: str) -> Path:
    path = storage.project_path / name
    path.write_text(text, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# render_document
# ---------------------------------------------------------------------------


class TestRenderDocument:
    """Tests for the canonical file text of a document."""

    def test_includes_id_parent_and_timestamps(
        self, store: JsonDocumentStore, context: SyncContext, project
    ) -> None:
        home = store.create_document("proj", "Home", "", context)
        child = store.create_document("proj", "Child", "Body", context, parent_id=home.id)
        metadata, body = frontmatter.parse(render_document(child, store))
        assert body == "Body"
        assert metadata["parent"] == "Home"
        assert metadata["id"] == child.id
        assert metadata["created"] == child.created_on.isoformat()
        assert metadata["updated"] == child.updated_on.isoformat()

    def test_root_document_has_no_parent_key(
        self, store: JsonDocumentStore, context: SyncContext, project
    ) -> None:
        home = store.create_document("proj", "Home", "Hi", context)
        assert "parent" not in frontmatter.get_metadata(render_document(home, store))


# ---------------------------------------------------------------------------
# scan
# ---------------------------------------------------------------------------


class TestScan:
    """Tests for DocumentImporter.scan()."""

    def test_classifies_files(
        self, importer: DocumentImporter, storage: FileStorage
    ) -> None:
        _write(storage, "Ready.md", "---\n---\n\nready")
        _write(storage, "Draft.md", "Just text")
        _write(storage, "diagram.png", "png")
        result = importer.scan()

        assert [p.name for p in result.candidates] == ["Ready.md"]
        pending = {p.path: p for p in result.pending}
        assert pending["Draft.md"].errors == [MISSING_FRONTMATTER]
        assert pending["Draft.md"].remediations == ["add frontmatter", "discard"]
        assert pending["diagram.png"].kind == "attachment"
        assert pending["diagram.png"].remediations == ["attach as file", "discard"]

    def test_files_with_documents_are_skipped(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        store.create_document("proj", "My Page", "", context)
        _write(storage, "My_Page.md", "no frontmatter")
        assert importer.scan().pending == []

    def test_file_matched_by_id_is_skipped(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        with context.suppress_write_back():
            doc = store.create_document("proj", "What's New?", "x", context)
        _write(storage, "Whats_New.md", f"---\nid: {doc.id}\n---\n\nx")
        result = importer.scan()
        assert result.candidates == [] and result.pending == []

    def test_exclude(self, importer: DocumentImporter, storage: FileStorage) -> None:
        _write(storage, "Draft.md", "Just text")
        assert importer.scan(exclude={"Draft.md"}).pending == []

    def test_hidden_and_marker_files_ignored(
        self, importer: DocumentImporter, storage: FileStorage
    ) -> None:
        storage.write_metadata()
        _write(storage, ".notes.md", "x")
        result = importer.scan()
        assert result.candidates == [] and result.pending == []


# ---------------------------------------------------------------------------
# import_file
# ---------------------------------------------------------------------------


class TestImportFile:
    """Tests for DocumentImporter.import_file()."""

    def test_creates_document_with_parent(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        home = store.create_document("proj", "Home", "", context)
        path = _write(storage, "Notes.md", "---\nparent: Home\n---\n\nHello")
        result = importer.import_file(path, context)

        assert result.action is SyncAction.CREATE
        notes = store.find_document("proj", "Notes")
        assert notes.text == "Hello"
        assert notes.parent_id == home.id
        assert result.document_id == notes.id

    def test_missing_parent_fails(
        self, importer: DocumentImporter, storage: FileStorage, store, context
    ) -> None:
        path = _write(storage, "Notes.md", "---\nparent: Nowhere\n---\n\nHello")
        result = importer.import_file(path, context)
        assert result.success is False
        assert "Nowhere" in result.error
        assert store.find_document("proj", "Notes") is None

    def test_without_frontmatter_is_pending(
        self, importer: DocumentImporter, storage: FileStorage, context
    ) -> None:
        path = _write(storage, "Draft.md", "Just text")
        result = importer.import_file(path, context)
        assert result.action is SyncAction.PENDING
        assert result.error == MISSING_FRONTMATTER

    def test_title_from_filename(
        self, importer: DocumentImporter, storage: FileStorage, store, context
    ) -> None:
        path = _write(storage, "Getting_Started.md", "---\n---\n\nSteps")
        importer.import_file(path, context)
        assert store.find_document("proj", "Getting Started").text == "Steps"

    def test_frontmatter_timestamps_are_kept(
        self, importer: DocumentImporter, storage: FileStorage, store, context
    ) -> None:
        path = _write(
            storage,
            "Old.md",
            "---\ncreated: '2023-01-02T03:04:05+00:00'\n---\n\nOld page",
        )
        importer.import_file(path, context)
        assert store.find_document("proj", "Old").created_on.year == 2023

    def test_id_recognises_renamed_file(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        """A file carrying an existing id renames that document."""
        with context.suppress_write_back():
            doc = store.create_document("proj", "Old Name", "body", context)
        path = _write(storage, "New_Name.md", f"---\nid: {doc.id}\n---\n\nbody")
        result = importer.import_file(path, context)

        assert result.action is SyncAction.RENAME
        assert result.document_id == doc.id
        assert store.get_document(doc.id).title == "New Name"
        assert len(store.list_documents("proj")) == 1

    def test_id_with_old_file_present_is_a_copy(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        doc = store.create_document("proj", "Original", "body", context)
        _write(storage, "Original.md", f"---\nid: {doc.id}\n---\n\nbody")
        path = _write(storage, "Copy.md", f"---\nid: {doc.id}\n---\n\nbody")
        result = importer.import_file(path, context)

        assert result.action is SyncAction.CREATE
        assert store.get_document(doc.id).title == "Original"
        assert store.find_document("proj", "Copy") is not None

    def test_id_on_own_file_under_lossy_name_updates(
        self,
        importer: DocumentImporter,
        storage: FileStorage,
        store: JsonDocumentStore,
        context: SyncContext,
    ) -> None:
        with context.suppress_write_back():
            doc = store.create_document("proj", "snake_case page", "old", context)
        path = _write(storage, "snake_case_page.md", f"---\nid: {doc.id}\n---\n\nnew")
        result = importer.import_file(path, context)

        assert result.action is SyncAction.UPDATE
        assert result.title == "snake_case page"
        assert store.get_document(doc.id).text == "new"
        assert len(store.list_documents("proj")) == 1

    def test_import_files_continues_after_failure(
        self, importer: DocumentImporter, storage: FileStorage, store, context
    ) -> None:
        bad = _write(storage, "Bad.md", "---\nparent: Missing\n---\n\nx")
        good = _write(storage, "Good.md", "---\n---\n\ny")
        results = importer.import_files([bad, good], context)
        assert [r.success for r in results] == [False, True]
        assert store.find_document("proj", "Good") is not None
        assert context.syncing is False


# ---------------------------------------------------------------------------
# Frontmatter repair
# ---------------------------------------------------------------------------


class TestFixMissingFrontmatter:
    """Tests for fix_file() and fix_missing_frontmatter()."""

    def test_fix_prepends_empty_block(self, storage: FileStorage, context) -> None:
        path = _write(storage, "Draft.md", "Just text")
        assert fix_file(path, None, context) is None
        assert path.read_text(encoding="utf-8") == "---\n---\n\nJust text"
        assert frontmatter.has_frontmatter(path.read_text(encoding="utf-8"))

    def test_second_fix_is_declined(self, storage: FileStorage, context) -> None:
        path = _write(storage, "Draft.md", "Just text")
        fix_file(path, None, context)
        before = path.read_text(encoding="utf-8")
        assert fix_file(path, None, context) == "Frontmatter already exists"
        assert path.read_text(encoding="utf-8") == before

    def test_batch_separates_failures(self, storage: FileStorage, context) -> None:
        _write(storage, "A.md", "a")
        _write(storage, "B.md", "---\n---\nb")
        result = fix_missing_frontmatter(
            storage, None, ["A.md", "B.md", "Missing.md", "../../escape.md"], context
        )
        assert result.fixed == ["A.md"]
        failed = {item.file: item.error for item in result.failed}
        assert failed["B.md"] == "Frontmatter already exists"
        assert failed["Missing.md"] == "File not found"
        assert "outside base directory" in failed["../../escape.md"]
