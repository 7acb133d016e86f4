"""Error response builders and shared utilities for MCP tool handlers.

Structured error responses carry a corrective action so an agent can
recover without human intervention.  The lookup helpers here turn
missing arguments and unknown projects or pages into such responses.
"""

from typing import Any

import mcp.types as types

from ...sync.context import SyncContext
from ...sync.engine import SyncEngine
from ...sync.models import Document, ProjectNode

DEFAULT_USER = "mcp"


class ToolInputError(Exception):
    """A tool argument could not be resolved; carries the error response."""

    def __init__(self, response: types.CallToolResult) -> None:
        super().__init__(response.content[0].text)
        self.response = response


def build_error_response(
    error_type: str, message: str, corrective_action: str
) -> types.CallToolResult:
    """Build a structured error response with corrective action.

    Args:
        error_type: Error category (not_found, validation_error, git_error,
            server_error, unknown_tool)
        message: Human-readable error description
        corrective_action: Specific action the agent can take to resolve the error

    Returns:
        CallToolResult with isError=True

    Examples:
        >>> build_error_response("not_found", "Project 'docs' not found", "Use scan_folders to list folders.")
        CallToolResult(content=[TextContent(...)], isError=True)
    """
    error_text = f"Error ({error_type}): {message}\n\nAction: {corrective_action}"

    return types.CallToolResult(
        content=[types.TextContent(type="text", text=error_text)],
        isError=True,
    )


def text_result(
    text: str, structured: dict[str, Any] | None = None
) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        structuredContent=structured,
    )


# ---------------------------------------------------------------------------
# Argument lookups
# ---------------------------------------------------------------------------


def require_arg(args: dict, key: str) -> Any:
    value = args.get(key)
    if value in (None, "", []):
        raise ToolInputError(
            build_error_response(
                "validation_error",
                f"{key} is required",
                f"Provide the '{key}' parameter.",
            )
        )
    return value


def context_for(args: dict) -> SyncContext:
    """Acting user from the optional ``user`` argument."""
    return SyncContext.for_user(args.get("user") or DEFAULT_USER)


def lookup_project(engine: SyncEngine, identifier: str) -> ProjectNode:
    project = engine.store.get_project(identifier)
    if project is None:
        raise ToolInputError(
            build_error_response(
                "not_found",
                f"Project '{identifier}' not found",
                "Use scan_folders to find unassigned folders, or adopt_folder to create the project.",
            )
        )
    return project


def lookup_document(
    engine: SyncEngine, project: ProjectNode, title: str
) -> Document:
    document = engine.store.find_document(project.identifier, title)
    if document is None:
        raise ToolInputError(
            build_error_response(
                "not_found",
                f"Page '{title}' not found in project '{project.identifier}'",
                "Run sync_project to import files, then retry with the page title.",
            )
        )
    return document
