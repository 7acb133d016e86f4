"""Tests for scanning, adopting and quarantining unassigned folders."""

from __future__ import annotations

from pathlib import Path

import pytest

from wikifiles_sync.file_handler import PathOutsideBaseError
from wikifiles_sync.sync.folders import MANIFEST_NAME, FolderClassifier, folder_slug
from wikifiles_sync.sync.storage import read_project_metadata, write_project_metadata
from wikifiles_sync.sync.store import JsonDocumentStore


@pytest.fixture
def classifier(store: JsonDocumentStore, base_path: Path) -> FolderClassifier:
    return FolderClassifier(store, base_path)


def _mkdir(*parts) -> Path:
    path = Path(*parts)
    path.mkdir(parents=True)
    return path


def test_folder_slug() -> None:
    assert folder_slug("Team Notes") == "team-notes"
    assert folder_slug(" API_v2 ") == "api-v2"


class TestScan:
    """Tests for scan_all_folders()."""

    def test_lists_unassigned_folders(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        store.create_project("docs", "Docs", None, context)
        _mkdir(base_path, "docs")
        _mkdir(base_path, "Stray")
        _mkdir(base_path, ".hidden")
        _mkdir(base_path, "_attachments")
        _mkdir(base_path, "_orphaned", "old")

        found = classifier.scan_all_folders()

        assert [(f.name, f.parent_project, f.depth) for f in found] == [
            ("Stray", None, 0)
        ]
        assert found[0].path == str(base_path / "Stray")

    def test_marker_assigns_folder(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        project = store.create_project("docs", "Docs", None, context)
        write_project_metadata(_mkdir(base_path, "Renamed Folder"), project)
        assert classifier.scan_all_folders() == []

    def test_descends_into_assigned_folders(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        store.create_project("docs", "Docs", None, context)
        _mkdir(base_path, "docs", "Loose")

        found = classifier.scan_all_folders()
        assert [(f.name, f.parent_project, f.depth) for f in found] == [
            ("Loose", "docs", 1)
        ]

    def test_projects_container_is_searched(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        store.create_project("kept", "Kept", None, context)
        _mkdir(base_path, "_projects", "kept")
        _mkdir(base_path, "_projects", "extra")

        assert [f.name for f in classifier.scan_all_folders()] == ["extra"]

    def test_scan_below_project(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        project = store.create_project("docs", "Docs", None, context)
        _mkdir(base_path, "Docs", "Inner")
        _mkdir(base_path, "Elsewhere")

        found = classifier.scan_all_folders(project)
        assert [(f.name, f.parent_project, f.depth) for f in found] == [
            ("Inner", "docs", 0)
        ]


@pytest.mark.git
class TestAdopt:
    """Tests for adopt()."""

    def test_creates_project_marker_and_repo(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        folder = _mkdir(base_path, "Team Notes")
        project = classifier.adopt(folder, context)

        assert project.identifier == "team-notes"
        assert project.name == "Team Notes"
        assert store.get_project("team-notes") is not None
        assert read_project_metadata(folder)["id"] == "team-notes"
        assert (folder / ".git").is_dir()
        assert classifier.scan_all_folders() == []

    def test_adopt_under_parent(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        parent = store.create_project("docs", "Docs", None, context)
        folder = _mkdir(base_path, "Docs", "api")
        child = classifier.adopt(folder, context, parent)
        assert child.parent.identifier == "docs"

    def test_taken_identifier(
        self, classifier: FolderClassifier, store, context, base_path: Path
    ) -> None:
        store.create_project("stray", "Stray", None, context)
        folder = _mkdir(base_path, "_projects", "Stray")
        with pytest.raises(ValueError, match="already exists"):
            classifier.adopt(folder, context)

    def test_not_a_directory(
        self, classifier: FolderClassifier, context, base_path: Path
    ) -> None:
        with pytest.raises(FileNotFoundError):
            classifier.adopt(base_path / "Missing", context)

    def test_outside_base(
        self, classifier: FolderClassifier, context, tmp_path: Path
    ) -> None:
        with pytest.raises(PathOutsideBaseError):
            classifier.adopt(_mkdir(tmp_path, "outside"), context)


class TestQuarantine:
    """Tests for quarantine()."""

    def test_moves_folder_and_writes_manifest(
        self, classifier: FolderClassifier, context, base_path: Path
    ) -> None:
        folder = _mkdir(base_path, "Stray")
        (folder / "note.md").write_text("keep me")

        target = classifier.quarantine(folder, context)

        assert not folder.exists()
        assert target.parent == base_path / "_orphaned"
        assert target.name.endswith("_Stray")
        assert (target / "note.md").read_text() == "keep me"
        manifest = (target / MANIFEST_NAME).read_text(encoding="utf-8")
        assert "Original path:" in manifest
        assert "Quarantined by: alice" in manifest

    def test_name_collision_gets_counter(
        self, classifier: FolderClassifier, context, base_path: Path, monkeypatch
    ) -> None:
        first = classifier.quarantine(_mkdir(base_path, "Stray"), context)
        # same second, same name
        monkeypatch.setattr(
            "wikifiles_sync.sync.folders.QUARANTINE_TIMESTAMP",
            first.name[: -len("_Stray")],
        )
        second = classifier.quarantine(_mkdir(base_path, "Stray"), context)
        assert second.name == f"{first.name}_1"

    def test_already_quarantined(
        self, classifier: FolderClassifier, context, base_path: Path
    ) -> None:
        target = classifier.quarantine(_mkdir(base_path, "Stray"), context)
        with pytest.raises(ValueError, match="already quarantined"):
            classifier.quarantine(target, context)

    def test_missing_folder(
        self, classifier: FolderClassifier, context, base_path: Path
    ) -> None:
        with pytest.raises(FileNotFoundError):
            classifier.quarantine(base_path / "Nope", context)
