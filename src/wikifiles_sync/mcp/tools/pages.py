"""MCP tool handlers for single pages and pending files.

Defines five tools:

- ``check_page`` -- compare a page with its file (read-only).
- ``restore_page`` -- rewrite a page's file from the document store.
- ``fix_frontmatter`` -- prepend an empty frontmatter block to pending files.
- ``attach_pending_file`` -- move a pending non-Markdown file to ``_attachments/``.
- ``discard_pending_file`` -- delete a pending file.
"""

from __future__ import annotations

import logging
from typing import Any

import mcp.types as types

from ...core.async_utils import run_sync
from ...sync import frontmatter
from ...sync.engine import SyncEngine
from ...sync.models import Document, DocumentStatus
from ...sync.reporter import (
    format_batch_result,
    format_content_diff,
    format_document_status,
)
from ...validators import validate_filename, validate_title
from .errors import (
    ToolInputError,
    build_error_response,
    context_for,
    lookup_document,
    lookup_project,
    require_arg,
    text_result,
)
from .registry import ToolSpec

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Tool definitions
# ---------------------------------------------------------------------------

_PROJECT_PROP = {"type": "string", "description": "Project identifier"}
_USER_PROP = {"type": "string", "description": "Acting user"}

PAGE_TOOLS: list[types.Tool] = [
    types.Tool(
        name="check_page",
        description=(
            "Check whether a page's file exists and matches the stored "
            "content. Shows a diff when they differ."
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
                "project": _PROJECT_PROP,
                "title": {"type": "string", "description": "Page title"},
            },
            "required": ["project", "title"],
        },
    ),
    types.Tool(
        name="restore_page",
        description=(
            "Overwrite a page's file with the content held by the document "
            "store and commit the result."
        ),
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=True,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project": _PROJECT_PROP,
                "title": {"type": "string", "description": "Page title"},
                "user": _USER_PROP,
            },
            "required": ["project", "title"],
        },
    ),
    types.Tool(
        name="fix_frontmatter",
        description=(
            "Prepend an empty frontmatter block to pending Markdown files "
            "so the next sync_project imports them."
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
                "project": _PROJECT_PROP,
                "files": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": "File names relative to the project folder",
                },
                "user": _USER_PROP,
            },
            "required": ["project", "files"],
        },
    ),
    types.Tool(
        name="attach_pending_file",
        description="Move a pending non-Markdown file into the project's _attachments/ folder.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=False,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project": _PROJECT_PROP,
                "filename": {"type": "string", "description": "File name"},
                "user": _USER_PROP,
            },
            "required": ["project", "filename"],
        },
    ),
    types.Tool(
        name="discard_pending_file",
        description="Delete a pending file from the project folder and commit the removal.",
        annotations=types.ToolAnnotations(
            readOnlyHint=False,
            destructiveHint=True,
            idempotentHint=False,
            openWorldHint=False,
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "project": _PROJECT_PROP,
                "filename": {"type": "string", "description": "File name"},
                "user": _USER_PROP,
            },
            "required": ["project", "filename"],
        },
    ),
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _validated(args: dict[str, Any], key: str, validator) -> str:
    value = require_arg(args, key)
    is_valid, error = validator(value)
    if not is_valid:
        raise ToolInputError(
            build_error_response(
                "validation_error", error, f"Correct the '{key}' parameter and retry."
            )
        )
    return value


def _resolve_page(engine: SyncEngine, args: dict[str, Any]) -> Document:
    project = lookup_project(engine, require_arg(args, "project"))
    title = _validated(args, "title", validate_title)
    return lookup_document(engine, project, title)


def _check(engine: SyncEngine, document: Document) -> tuple[DocumentStatus, str]:
    """Consistency status plus a diff of the file body when it differs."""
    status = engine.check_consistency(document)
    if not status.file_exists or status.in_sync:
        return status, ""
    project = engine.store.get_project(document.project)
    loaded = engine.storage_for(project).read(document.title) if project else None
    if loaded is None:
        return status, ""
    body = frontmatter.strip_frontmatter(loaded[0])
    return status, format_content_diff(document.title, document.text, body)


# ---------------------------------------------------------------------------
# Individual handlers
# ---------------------------------------------------------------------------


async def _handle_check_page(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    document = _resolve_page(engine, args)
    status, diff = await run_sync(_check, engine, document)
    text = format_document_status(status)
    if diff:
        text = f"{text}\n\n{diff}"
    structured = status.model_dump()
    structured["diff"] = diff
    return text_result(text, structured)


async def _handle_restore_page(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    document = _resolve_page(engine, args)
    path = await run_sync(engine.restore_file, document, context_for(args))
    if path is None:
        return build_error_response(
            "server_error",
            f"Could not write the file for '{document.title}'",
            "Check the server log for the write failure and retry.",
        )
    return text_result(
        f"Restored '{document.title}' to {path}",
        {"title": document.title, "path": str(path)},
    )


async def _handle_fix_frontmatter(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    project = lookup_project(engine, require_arg(args, "project"))
    files = require_arg(args, "files")
    if isinstance(files, str):
        files = [files]
    result = await run_sync(
        engine.fix_missing_frontmatter, project, list(files), context_for(args)
    )
    return text_result(format_batch_result(result), result.model_dump())


async def _handle_attach_pending_file(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    project = lookup_project(engine, require_arg(args, "project"))
    filename = _validated(args, "filename", validate_filename)
    target = await run_sync(
        engine.attach_pending_file, project, filename, context_for(args)
    )
    return text_result(
        f"Moved {filename} to {target}",
        {"filename": filename, "path": str(target)},
    )


async def _handle_discard_pending_file(
    engine: SyncEngine, args: dict[str, Any]
) -> types.CallToolResult:
    project = lookup_project(engine, require_arg(args, "project"))
    filename = _validated(args, "filename", validate_filename)
    path = await run_sync(
        engine.discard_pending_file, project, filename, context_for(args)
    )
    logger.info("Discarded pending file %s in %s", filename, project.identifier)
    return text_result(
        f"Discarded {filename}", {"filename": filename, "path": str(path)}
    )


PAGE_SPECS: list[ToolSpec] = [
    ToolSpec(tool=PAGE_TOOLS[0], handler=_handle_check_page),
    ToolSpec(tool=PAGE_TOOLS[1], handler=_handle_restore_page),
    ToolSpec(tool=PAGE_TOOLS[2], handler=_handle_fix_frontmatter),
    ToolSpec(tool=PAGE_TOOLS[3], handler=_handle_attach_pending_file),
    ToolSpec(tool=PAGE_TOOLS[4], handler=_handle_discard_pending_file),
]
