"""Tests for the scan_folders, adopt_folder and quarantine_folder MCP tools."""

from __future__ import annotations

import pytest

from wikifiles_sync.mcp.tools import ToolRegistry
from wikifiles_sync.mcp.tools.folders import FOLDER_SPECS, FOLDER_TOOLS


@pytest.fixture
def registry() -> ToolRegistry:
    return ToolRegistry(FOLDER_SPECS)


def test_tool_annotations():
    by_name = {t.name: t for t in FOLDER_TOOLS}
    assert by_name["scan_folders"].annotations.readOnlyHint is True
    assert by_name["quarantine_folder"].annotations.destructiveHint is True
    assert by_name["adopt_folder"].inputSchema["required"] == ["path"]


class TestScanFolders:
    async def test_lists_stray_folder(self, registry, engine, base_path):
        (base_path / "Stray").mkdir()

        result = await registry.call_tool("scan_folders", {}, engine)

        assert result.content[0].text.startswith("1 unassigned folder(s):")
        folders = result.structuredContent["folders"]
        assert folders == [
            {
                "path": str(base_path / "Stray"),
                "name": "Stray",
                "parent_project": None,
                "depth": 0,
            }
        ]

    async def test_nothing_found(self, registry, engine):
        result = await registry.call_tool("scan_folders", {}, engine)
        assert result.content[0].text == "No unassigned folders found."

    async def test_unknown_project(self, registry, engine):
        result = await registry.call_tool("scan_folders", {"project": "nope"}, engine)
        assert result.isError


@pytest.mark.git
class TestAdoptFolder:
    async def test_adopts(self, registry, engine, store, base_path):
        folder = base_path / "Team Notes"
        folder.mkdir()

        result = await registry.call_tool(
            "adopt_folder", {"path": str(folder), "user": "bob"}, engine
        )

        assert not result.isError
        assert result.structuredContent == {
            "identifier": "team-notes",
            "name": "Team Notes",
        }
        assert store.get_project("team-notes") is not None

    async def test_missing_path_argument(self, registry, engine):
        result = await registry.call_tool("adopt_folder", {}, engine)
        assert result.isError
        assert "path is required" in result.content[0].text

    async def test_folder_outside_base(self, registry, engine, tmp_path):
        outside = tmp_path / "elsewhere"
        outside.mkdir()
        result = await registry.call_tool("adopt_folder", {"path": str(outside)}, engine)
        assert result.isError
        assert "validation_error" in result.content[0].text

    async def test_missing_folder(self, registry, engine, base_path):
        result = await registry.call_tool(
            "adopt_folder", {"path": str(base_path / "Gone")}, engine
        )
        assert "Error (not_found)" in result.content[0].text


class TestQuarantineFolder:
    async def test_quarantines(self, registry, engine, base_path):
        folder = base_path / "Stray"
        folder.mkdir()

        result = await registry.call_tool(
            "quarantine_folder", {"path": str(folder)}, engine
        )

        assert not result.isError
        target = result.structuredContent["quarantined_path"]
        assert "/_orphaned/" in target
        assert not folder.exists()
