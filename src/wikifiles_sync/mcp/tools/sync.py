"""MCP tool handlers for filesystem sync passes.

Defines one tool:

- ``sync_project`` -- run a filesystem pass over one project (or all
  enabled projects) and report what was imported, updated, renamed,
  left pending or skipped as locked.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync.engine import SyncEngine
from ...sync.reporter import format_sync_report, report_to_json
from .errors import context_for, lookup_project, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------


SYNC_TOOLS: list[types.Tool] = [
    types.Tool(
        name="sync_project",
        description=(
            "Synchronize a project's folder into the document store: "
            "external edits, renames and new files with frontmatter are "
            "applied according to the conflict strategy. Files without "
            "frontmatter are listed as pending. Omit 'project' to sync "
            "every enabled project."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project": {
                    "type": "string",
                    "description": "Project identifier",
                },
                "user": {
                    "type": "string",
                    "description": "Acting user recorded in history and commits",
                },
            },
            "required": [],
        },
    ),
]


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_sync_project(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    """Handle the ``sync_project`` tool."""
    context = context_for(args)
    identifier = args.get("project")

    if not identifier:
        reports = await run_sync(engine.sync_all_projects, context)
        if not reports:
            return text_result("No enabled projects to sync.", {"reports": []})
        text = "\n\n".join(format_sync_report(r) for r in reports)
        return text_result(
            text, {"reports": [report_to_json(r) for r in reports]}
        )

    project = lookup_project(engine, identifier)
    report = await run_sync(engine.sync_from_filesystem, project, context)
    logger.info("sync_project %s: ok=%s", identifier, report.ok)
    return text_result(format_sync_report(report), report_to_json(report))


SYNC_SPECS: list[ToolSpec] = [
    ToolSpec(tool=SYNC_TOOLS[0], handler=_handle_sync_project),
]
