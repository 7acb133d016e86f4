"""MCP tool handlers for the wiki/file sync engine.

Each module wraps ``SyncEngine`` operations in async handlers that run
the blocking work in a thread and return structured responses.
"""

from .errors import build_error_response
from .folders import FOLDER_SPECS, FOLDER_TOOLS
from .pages import PAGE_SPECS, PAGE_TOOLS
from .registry import ToolRegistry, ToolSpec
from .sync import SYNC_SPECS, SYNC_TOOLS

ALL_SPECS: list[ToolSpec] = SYNC_SPECS + FOLDER_SPECS + PAGE_SPECS

__all__ = [
    "ALL_SPECS",
    "FOLDER_SPECS",
    "FOLDER_TOOLS",
    "PAGE_SPECS",
    "PAGE_TOOLS",
    "SYNC_SPECS",
    "SYNC_TOOLS",
    "ToolRegistry",
    "ToolSpec",
    "build_error_response",
]
