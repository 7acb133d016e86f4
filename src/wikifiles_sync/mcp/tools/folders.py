"""MCP tool handlers for unassigned project folders.

Defines three tools:

- ``scan_folders`` -- list folders no project claims.
- ``adopt_folder`` -- turn such a folder into a project.
- ``quarantine_folder`` -- move such a folder into ``_orphaned/``.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync.engine import SyncEngine
from ...sync.reporter import format_unassigned_folders
from .errors import context_for, lookup_project, require_arg, text_result
from .registry import ToolSpec

logger = logging.getLogger(__name__)


FOLDER_TOOLS: list[types.Tool] = [
    types.Tool(
        name="scan_folders",
        description=(
            "List folders under the base path (or under one project's "
            "folder) that do not belong to any project."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=True,
            destructiveHint=False,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project": {
                    "type": "string",
                    "description": "Limit the scan to this project's folder",
                },
            },
            "required": [],
        },
    ),
    types.Tool(
        name="adopt_folder",
        description=(
            "Create a project for an unassigned folder. The identifier is "
            "derived from the folder name; the folder gets a .project "
            "marker and a git repository."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute folder path as returned by scan_folders",
                },
                "parent_project": {
                    "type": "string",
                    "description": "Identifier of the parent project, if nested",
                },
                "user": {"type": "string", "description": "Acting user"},
            },
            "required": ["path"],
        },
    ),
    types.Tool(
        name="quarantine_folder",
        description=(
            "Move an unassigned folder into _orphaned/<timestamp>_<name>/ "
            "with a QUARANTINE_INFO.txt manifest."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "path": {
                    "type": "string",
                    "description": "Absolute folder path as returned by scan_folders",
                },
                "project": {
                    "type": "string",
                    "description": "Project the folder was found in, recorded in the manifest",
                },
                "user": {"type": "string", "description": "Acting user"},
            },
            "required": ["path"],
        },
    ),
]


async def _handle_scan_folders(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    project = None
    if args.get("project"):
        project = lookup_project(engine, args["project"])
    folders = await run_sync(engine.scan_unassigned_folders, project)
    return text_result(
        format_unassigned_folders(folders),
        {"folders": [f.model_dump() for f in folders]},
    )


async def _handle_adopt_folder(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    path = require_arg(args, "path")
    parent = None
    if args.get("parent_project"):
        parent = lookup_project(engine, args["parent_project"])
    project = await run_sync(
        engine.adopt_folder, path, context_for(args), parent
    )
    return text_result(
        f"Adopted {path} as project '{project.identifier}' ({project.name})",
        {"identifier": project.identifier, "name": project.name},
    )


async def _handle_quarantine_folder(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    path = require_arg(args, "path")
    project = None
    if args.get("project"):
        project = lookup_project(engine, args["project"])
    target = await run_sync(
        engine.quarantine_folder, path, context_for(args), project
    )
    return text_result(
        f"Quarantined {path} to {target}",
        {"original_path": path, "quarantined_path": str(target)},
    )


FOLDER_SPECS: list[ToolSpec] = [
    ToolSpec(tool=FOLDER_TOOLS[0], handler=_handle_scan_folders),
    ToolSpec(tool=FOLDER_TOOLS[1], handler=_handle_adopt_folder),
    ToolSpec(tool=FOLDER_TOOLS[2], handler=_handle_quarantine_folder),
]
