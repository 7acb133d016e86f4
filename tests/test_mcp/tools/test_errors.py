"""Tests for mcp/tools/errors.py -- error response builders and lookups.

Covers:
- build_error_response() structure and format
- text_result() structured content
- require_arg(), context_for(), lookup_project(), lookup_document()
"""

from unittest.mock import MagicMock

import mcp.types as types
import pytest

from wikifiles_sync.mcp.tools.errors import (
    DEFAULT_USER,
    ToolInputError,
    build_error_response,
    context_for,
    lookup_document,
    lookup_project,
    require_arg,
    text_result,
)
from wikifiles_sync.sync.models import ProjectNode


def _get_error_text(result: types.CallToolResult) -> str:
    """Extract text from first content item with type narrowing for Pyright."""
    content = result.content[0]
    assert isinstance(content, types.TextContent)
    return content.text


# ---------------------------------------------------------------------------
# build_error_response / text_result
# ---------------------------------------------------------------------------


class TestBuildErrorResponse:
    """Tests for build_error_response()."""

    def test_is_error_flag(self):
        result = build_error_response("not_found", "Not found", "Try again")
        assert isinstance(result, types.CallToolResult)
        assert result.isError is True
        assert len(result.content) == 1

    def test_text_format(self):
        result = build_error_response(
            "validation_error", "title is required", "Provide the 'title' parameter."
        )
        assert _get_error_text(result) == (
            "Error (validation_error): title is required\n\n"
            "Action: Provide the 'title' parameter."
        )


class TestTextResult:
    def test_structured_content(self):
        result = text_result("done", {"path": "/w/p/Home.md"})
        assert _get_error_text(result) == "done"
        assert result.structuredContent == {"path": "/w/p/Home.md"}
        assert not result.isError


# ---------------------------------------------------------------------------
# Argument lookups
# ---------------------------------------------------------------------------


class TestRequireArg:
    def test_present(self):
        assert require_arg({"project": "docs"}, "project") == "docs"

    @pytest.mark.parametrize("value", [None, "", []])
    def test_missing_or_empty(self, value):
        with pytest.raises(ToolInputError) as excinfo:
            require_arg({"files": value}, "files")
        assert "files is required" in str(excinfo.value)
        assert excinfo.value.response.isError is True


class TestContextFor:
    def test_named_user(self):
        assert context_for({"user": "alice"}).actor.login == "alice"

    def test_default_user(self):
        context = context_for({})
        assert context.actor.login == DEFAULT_USER
        assert context.syncing is False


class TestLookups:
    def test_project_found(self):
        engine = MagicMock()
        node = ProjectNode(identifier="docs", name="Docs")
        engine.store.get_project.return_value = node
        assert lookup_project(engine, "docs") is node

    def test_project_missing(self):
        engine = MagicMock()
        engine.store.get_project.return_value = None
        with pytest.raises(ToolInputError) as excinfo:
            lookup_project(engine, "docs")
        text = _get_error_text(excinfo.value.response)
        assert text.startswith("Error (not_found): Project 'docs' not found")
        assert "adopt_folder" in text

    def test_document_missing(self):
        engine = MagicMock()
        engine.store.find_document.return_value = None
        project = ProjectNode(identifier="docs", name="Docs")
        with pytest.raises(ToolInputError, match="Page 'Home' not found in project 'docs'"):
            lookup_document(engine, project, "Home")
