"""Tests for the per-project git repository wrapper.

These run the real git executable in temporary directories.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from wikifiles_sync.sync.git_backend import GitBackend, GitCommandError
from wikifiles_sync.sync.models import Actor

pytestmark = pytest.mark.git

ALICE = Actor(login="alice", name="Alice Example", email="alice@example.com")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


@pytest.fixture
def repo(tmp_path: Path) -> GitBackend:
    return GitBackend(tmp_path / "proj")


def _log(repo: GitBackend, fmt: str = "%s") -> list[str]:
    out = repo.run_git("log", f"--format={fmt}")
    return [line for line in out.splitlines() if line]


def _write(repo: GitBackend, name: str, text: str) -> None:
    (repo.repo_path / name).write_text(text, encoding="utf-8")


# ---------------------------------------------------------------------------
# Repository setup
# ---------------------------------------------------------------------------


class TestRepository:
    """Tests for repository initialization."""

    def test_init_creates_repo_with_identity(self, repo: GitBackend) -> None:
        assert (repo.repo_path / ".git").is_dir()
        assert repo.run_git("config", "user.name").strip() == "wikifiles-sync"

    def test_existing_repo_is_reused(self, repo: GitBackend) -> None:
        _write(repo, "A.md", "a")
        repo.commit("A", ALICE, "first")
        again = GitBackend(repo.repo_path)
        assert _log(again) == ["first"]

    def test_subfolders_other_than_attachments_are_ignored(
        self, repo: GitBackend
    ) -> None:
        """Nested project folders belong to their own repositories."""
        (repo.repo_path / "Child").mkdir()
        (repo.repo_path / "Child" / "Page.md").write_text("x")
        (repo.repo_path / "_attachments").mkdir()
        (repo.repo_path / "_attachments" / "a.png").write_bytes(b"png")
        _write(repo, "Top.md", "y")
        assert repo.detect_changes().added == ["Top.md", "_attachments/a.png"]

    def test_relative_path(self) -> None:
        assert GitBackend.relative_path("My Page") == "My_Page.md"

    def test_failed_command_raises(self, repo: GitBackend) -> None:
        with pytest.raises(GitCommandError) as excinfo:
            repo.run_git("checkout", "no-such-branch")
        assert excinfo.value.returncode != 0
        assert "checkout" in str(excinfo.value)


# ---------------------------------------------------------------------------
# Commits
# ---------------------------------------------------------------------------


class TestCommit:
    """Tests for commit() and commit_paths()."""

    def test_commit_with_author(self, repo: GitBackend) -> None:
        _write(repo, "Home.md", "hello")
        assert repo.commit("Home", ALICE, "Updated Home") is True
        assert _log(repo, "%an|%ae|%s") == [
            "Alice Example|alice@example.com|Updated Home"
        ]

    def test_nothing_to_commit(self, repo: GitBackend) -> None:
        _write(repo, "Home.md", "hello")
        repo.commit("Home", ALICE, "first")
        assert repo.commit("Home", ALICE, "again") is False

    def test_missing_untracked_path(self, repo: GitBackend) -> None:
        assert repo.commit_paths(["Ghost.md"], ALICE, "nothing") is False

    def test_commit_is_limited_to_paths(self, repo: GitBackend) -> None:
        """Other changes in the working tree stay uncommitted."""
        _write(repo, "A.md", "a")
        _write(repo, "B.md", "b")
        repo.commit_paths(["A.md"], ALICE, "only A")
        changes = repo.detect_changes()
        assert changes.added == ["B.md"]

    def test_commit_paths_records_removal(self, repo: GitBackend) -> None:
        _write(repo, "A.md", "a")
        repo.commit("A", ALICE, "add")
        (repo.repo_path / "A.md").unlink()
        assert repo.commit_paths(["A.md"], ALICE, "remove") is True
        assert not repo.is_tracked("A.md")

    def test_legacy_path_override(self, repo: GitBackend) -> None:
        _write(repo, "My Page.md", "x")
        assert repo.commit("My Page", ALICE, "legacy", path="My Page.md") is True
        assert repo.is_tracked("My Page.md")

    def test_commit_all(self, repo: GitBackend) -> None:
        _write(repo, "A.md", "a")
        _write(repo, "B.md", "b")
        assert repo.commit_all("everything", ALICE) is True
        assert repo.commit_all("again") is False
        assert repo.detect_changes().is_empty

    def test_last_commit_author(self, repo: GitBackend) -> None:
        _write(repo, "A.md", "a")
        repo.commit("A", ALICE, "add")
        assert repo.last_commit_author("A.md") == "Alice Example"
        assert repo.last_commit_author("Other.md") is None


# ---------------------------------------------------------------------------
# Rename / delete
# ---------------------------------------------------------------------------


class TestRenameDelete:
    """Tests for rename() and delete()."""

    def test_rename_before_move(self, repo: GitBackend) -> None:
        _write(repo, "Old.md", "body")
        repo.commit("Old", ALICE, "add")
        assert repo.rename("Old", "New", ALICE, "Renamed Old to New") is True
        assert (repo.repo_path / "New.md").is_file()
        assert repo.is_tracked("New.md")
        assert not repo.is_tracked("Old.md")

    def test_rename_after_move(self, repo: GitBackend) -> None:
        _write(repo, "Old.md", "body")
        repo.commit("Old", ALICE, "add")
        (repo.repo_path / "Old.md").rename(repo.repo_path / "New.md")
        assert repo.rename("Old", "New", ALICE, "moved") is True
        assert repo.detect_changes().is_empty

    def test_delete(self, repo: GitBackend) -> None:
        _write(repo, "Gone.md", "x")
        repo.commit("Gone", ALICE, "add")
        (repo.repo_path / "Gone.md").unlink()
        assert repo.delete("Gone", ALICE, "Deleted Gone") is True
        assert _log(repo)[0] == "Deleted Gone"
        assert repo.detect_changes().is_empty

    def test_delete_untracked(self, repo: GitBackend) -> None:
        assert repo.delete("Never", ALICE, "nothing") is False


# ---------------------------------------------------------------------------
# Change detection
# ---------------------------------------------------------------------------


class TestDetectChanges:
    """Tests for detect_changes()."""

    def test_classifies_changes(self, repo: GitBackend) -> None:
        _write(repo, "Keep.md", "keep")
        _write(repo, "Edit.md", "v1")
        _write(repo, "Drop.md", "drop")
        _write(repo, "Move.md", "a fairly long body so rename detection pairs it\n" * 3)
        repo.commit_all("base")

        _write(repo, "Edit.md", "v2")
        (repo.repo_path / "Drop.md").unlink()
        (repo.repo_path / "Move.md").rename(repo.repo_path / "Moved.md")
        _write(repo, "New File.md", "new")
        repo.stage_all()

        changes = repo.detect_changes()
        assert changes.modified == ["Edit.md"]
        assert changes.deleted == ["Drop.md"]
        assert changes.renamed == [("Move.md", "Moved.md")]
        assert changes.added == ["New File.md"]

    def test_untracked_without_staging(self, repo: GitBackend) -> None:
        _write(repo, "Fresh.md", "x")
        assert repo.detect_changes().added == ["Fresh.md"]

    def test_clean_tree(self, repo: GitBackend) -> None:
        assert repo.detect_changes().is_empty

    def test_git_missing_raises(self, repo: GitBackend, monkeypatch) -> None:
        def _raise(*args, **kwargs):
            raise FileNotFoundError("git")

        monkeypatch.setattr(subprocess, "run", _raise)
        with pytest.raises(GitCommandError) as excinfo:
            repo.run_git("status")
        assert excinfo.value.returncode == 127
