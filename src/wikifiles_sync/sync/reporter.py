"""Report formatting functions.

Provides human-readable and machine-readable output for sync operations:

- ``format_sync_report`` -- full summary of a filesystem pass.
- ``format_batch_result`` -- fixed/failed listing of a batch operation.
- ``format_unassigned_folders`` -- folders awaiting adopt or quarantine.
- ``format_document_status`` -- consistency of one document and its file.
- ``format_content_diff`` -- unified diff between document and file.
- ``report_to_json`` -- structured dict for MCP tool output.
"""

from __future__ import annotations

import difflib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .models import (
        BatchResult,
        DocumentStatus,
        SyncReport,
        UnassignedFolder,
    )

# ------------------------------------------------------------------
# Human-readable report
# ------------------------------------------------------------------


def format_sync_report(report: SyncReport) -> str:
    """Format a filesystem pass as human-readable text.

    Sections are only included when they contain at least one entry.
    Unchanged files are summarised by count only.

    Args:
        report: The completed sync report.

    Returns:
        Multi-line formatted string.
    """
    lines: list[str] = []

    lines.append(f"Sync report for project '{report.project}'")
    lines.append(f"Started: {report.started_at}")
    if report.completed_at:
        lines.append(f"Completed: {report.completed_at}")
    lines.append("")

    if report.error:
        lines.append(f"Sync aborted: {report.error}")
        lines.append("")

    lines.append(
        f"Processed {len(report.results)} files: "
        f"{len(report.created)} imported, {len(report.updated)} updated, "
        f"{len(report.renamed)} renamed, {len(report.conflicts)} conflicts, "
        f"{len(report.errors)} errors"
    )
    lines.append("")

    if report.created:
        lines.append("Imported:")
        for r in report.created:
            lines.append(f"  {r.path} -> {r.title}")
        lines.append("")

    if report.updated:
        lines.append("Updated from file:")
        for r in report.updated:
            lines.append(f"  {r.path} -> {r.title}")
        lines.append("")

    if report.renamed:
        lines.append("Renamed:")
        for r in report.renamed:
            note = f" ({r.error})" if r.error else ""
            lines.append(f"  {r.path} -> {r.title}{note}")
        lines.append("")

    if report.conflicts:
        lines.append("Conflicts:")
        for r in report.conflicts:
            lines.append(f"  {r.path}: {r.error or 'file and document differ'}")
        lines.append("")

    if report.deletions:
        lines.append("Deleted on disk (documents kept):")
        for r in report.deletions:
            lines.append(f"  {r.path}")
        lines.append("")

    if report.pending:
        lines.append("Pending files:")
        for p in report.pending:
            reasons = "; ".join(p.errors) or "not imported"
            lines.append(f"  {p.path}: {reasons}")
            if p.remediations:
                lines.append(f"    options: {', '.join(p.remediations)}")
        lines.append("")

    if report.locked:
        lines.append("Locked files (skipped):")
        for name in report.locked:
            lines.append(f"  {name}")
        lines.append("")

    if report.errors:
        lines.append("Errors:")
        for r in report.errors:
            lines.append(f"  {r.path}: {r.error}")
        lines.append("")

    if report.skipped:
        lines.append(f"Unchanged: {len(report.skipped)} files")
        lines.append("")

    return "\n".join(lines).rstrip()


def format_batch_result(result: BatchResult, action: str = "Fixed") -> str:
    lines = [f"{action} {len(result.fixed)} file(s), {len(result.failed)} failed"]
    for name in result.fixed:
        lines.append(f"  ok: {name}")
    for item in result.failed:
        lines.append(f"  failed: {item.file}: {item.error}")
    return "\n".join(lines)


def format_unassigned_folders(folders: list[UnassignedFolder]) -> str:
    if not folders:
        return "No unassigned folders found."
    lines = [f"{len(folders)} unassigned folder(s):"]
    for folder in folders:
        owner = folder.parent_project or "(base)"
        indent = "  " * (folder.depth + 1)
        lines.append(f"{indent}{folder.name}  [in {owner}]  {folder.path}")
    lines.append("")
    lines.append("Options: adopt_folder to create a project, quarantine_folder to move it aside.")
    return "\n".join(lines)


def format_document_status(status: DocumentStatus) -> str:
    """Format the consistency check of one document."""
    lines = [f"Page '{status.title}'"]
    if not status.file_exists:
        lines.append("  File: missing on disk")
    else:
        lines.append(f"  File: {status.path}")
        lines.append(f"  In sync: {'yes' if status.in_sync else 'no'}")
        if status.locked:
            lines.append("  Warning: file is locked by another process")
    if status.actions:
        lines.append(f"  Actions: {', '.join(status.actions)}")
    return "\n".join(lines)


# ------------------------------------------------------------------
# Content diff
# ------------------------------------------------------------------


def format_content_diff(
    title: str, document_text: str, file_text: str
) -> str:
    """Unified diff from the stored document to the file body."""
    diff = difflib.unified_diff(
        document_text.splitlines(keepends=True),
        file_text.splitlines(keepends=True),
        fromfile=f"document: {title}",
        tofile=f"file: {title}",
    )
    diff_text = "".join(diff)
    return diff_text.rstrip() if diff_text else "(no textual differences)"


# ------------------------------------------------------------------
# JSON output
# ------------------------------------------------------------------


def report_to_json(report: SyncReport) -> dict:
    """Convert a sync report to a structured dict for JSON serialisation.

    Suitable for MCP ``structuredContent`` output.

    Args:
        report: The sync report.

    Returns:
        Dict with project, counts, per-result details, pending and
        locked files.
    """
    results_list = []
    for r in report.results:
        entry: dict = {
            "path": r.path,
            "title": r.title,
            "action": r.action.value,
            "success": r.success,
        }
        if r.error:
            entry["error"] = r.error
        if r.document_id is not None:
            entry["document_id"] = r.document_id
        results_list.append(entry)

    return {
        "project": report.project,
        "started_at": report.started_at,
        "completed_at": report.completed_at,
        "error": report.error,
        "counts": {
            "total": len(report.results),
            "imported": len(report.created),
            "updated": len(report.updated),
            "renamed": len(report.renamed),
            "deleted_on_disk": len(report.deletions),
            "conflicts": len(report.conflicts),
            "pending": len(report.pending),
            "locked": len(report.locked),
            "errors": len(report.errors),
            "skipped": len(report.skipped),
        },
        "results": results_list,
        "pending": [p.model_dump() for p in report.pending],
        "locked": list(report.locked),
    }
