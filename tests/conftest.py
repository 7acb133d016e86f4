"""Shared pytest fixtures for wikifiles-sync tests."""

from __future__ import annotations

import shutil
from pathlib import Path

import pytest

from wikifiles_sync.sync.context import SyncContext
from wikifiles_sync.sync.engine import SyncEngine
from wikifiles_sync.sync.models import Document, ProjectNode
from wikifiles_sync.sync.store import JsonDocumentStore

requires_git = pytest.mark.skipif(
    shutil.which("git") is None, reason="git executable not available"
)


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "git: test runs the git executable"
    )


def pytest_collection_modifyitems(config, items):
    """Skip git tests when git is not installed."""
    for item in items:
        if "git" in item.keywords:
            item.add_marker(requires_git)


class RecordingListener:
    """Lifecycle listener that counts hook calls.

    ``calls`` holds ``(hook, title, syncing)`` tuples in call order.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, str, bool]] = []

    def before_title_change(
        self, document: Document, new_title: str, context: SyncContext
    ) -> None:
        self.calls.append(("before_title_change", document.title, context.syncing))

    def after_save(self, document: Document, context: SyncContext) -> None:
        self.calls.append(("after_save", document.title, context.syncing))

    def before_destroy(self, document: Document, context: SyncContext) -> None:
        self.calls.append(("before_destroy", document.title, context.syncing))

    def after_project_rename(
        self,
        project: ProjectNode,
        old_identifier: str,
        old_name: str,
        context: SyncContext,
    ) -> None:
        self.calls.append(("after_project_rename", project.identifier, context.syncing))

    def count(self, hook: str) -> int:
        return sum(1 for call in self.calls if call[0] == hook)


@pytest.fixture
def context() -> SyncContext:
    return SyncContext.for_user("alice", "Alice Example", "alice@example.com")


@pytest.fixture
def base_path(tmp_path: Path) -> Path:
    base = tmp_path / "wiki"
    base.mkdir()
    return base


@pytest.fixture
def store(tmp_path: Path) -> JsonDocumentStore:
    return JsonDocumentStore(tmp_path / "store.json")


@pytest.fixture
def recorder(store: JsonDocumentStore) -> RecordingListener:
    listener = RecordingListener()
    store.add_listener(listener)
    return listener


@pytest.fixture
def make_engine(store: JsonDocumentStore, base_path: Path):
    """Factory for engines registered as listeners of the store."""

    def _make(strategy: str = "fileWins") -> SyncEngine:
        engine = SyncEngine(store, base_path, strategy)
        store.add_listener(engine)
        return engine

    return _make


@pytest.fixture
def engine(make_engine) -> SyncEngine:
    return make_engine()


@pytest.fixture
def project(store: JsonDocumentStore, context: SyncContext) -> ProjectNode:
    return store.create_project("proj", "proj", None, context)
