"""Async utilities for running the blocking sync engine from MCP handlers."""

import asyncio
from typing import Any, Callable, TypeVar

T = TypeVar("T")


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Git subprocesses and file I/O in the engine block; tool handlers wrap
    every engine call with this.  Concurrent calls on the same project are
    serialized by the engine's per-project lock.

    Example:
        # In MCP tool handler:
        report = await run_sync(engine.sync_from_filesystem, project, context)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
