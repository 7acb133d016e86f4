"""Lifespan management for MCP server startup and shutdown."""

import logging
import sys
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv

from ..config import load_config
from ..config_loader import (
    discover_config_files,
    load_hierarchical_config,
)
from ..config_schema import build_config
from ..sync.engine import SyncEngine
from ..sync.store import JsonDocumentStore

logger = logging.getLogger(__name__)


def _stderr_print(msg: str) -> None:
    """Print message to stderr for user feedback (safe in MCP mode)."""
    print(msg, file=sys.stderr, flush=True)


@asynccontextmanager
async def server_lifespan(
    config_overrides: dict[str, Any] | None = None,
) -> AsyncIterator[dict[str, Any]]:
    """
    Manage server startup and shutdown lifecycle.

    On startup:
    - Load .env file (so values are available for env var lookups and YAML interpolation)
    - Load YAML config file if present (as fallback values)
    - Merge all sources via load_config(): CLI > env vars > .env > YAML > defaults
    - Open the document store and attach the sync engine as its listener

    Args:
        config_overrides: Optional dict with config values from CLI
            (base_path, conflict_strategy, store_path, enabled, debug)

    Yields:
        Dict with 'engine', 'store' and 'config' keys

    Raises:
        RuntimeError: If configuration is invalid or the store cannot be opened.
    """
    logger.info("MCP server starting...")
    _stderr_print("Wikifiles Sync server starting...")

    try:
        load_dotenv()

        yaml_fallbacks: dict[str, Any] | None = None
        config_files = discover_config_files()
        sources = []

        if config_files:
            config_path = config_files[0]
            raw = load_hierarchical_config()
            unified = build_config(raw)
            yaml_fallbacks = {
                k: v
                for k, v in unified.sync.model_dump().items()
                if v is not None
            }
            sources.append(f"config file: {config_path}")

        overrides = config_overrides or {}
        config = load_config(
            base_path=overrides.get("base_path"),
            conflict_strategy=overrides.get("conflict_strategy"),
            store_path=overrides.get("store_path"),
            enabled=overrides.get("enabled", False),
            debug=overrides.get("debug", False),
            yaml_fallbacks=yaml_fallbacks,
        )

        if overrides:
            sources.append("CLI arguments")
        sources.append("environment variables")
        source_desc = ", ".join(sources)
        logger.info("Configuration loaded from: %s", source_desc)
        _stderr_print(f"  Configuration loaded from: {source_desc}")
        logger.info(
            "Base path: %s (strategy %s, enabled=%s)",
            config.base_path,
            config.conflict_strategy,
            config.enabled,
        )
        _stderr_print(f"  Base path: {config.base_path}")
        _stderr_print(f"  Conflict strategy: {config.conflict_strategy}")
    except ValueError as e:
        logger.error("Configuration error: %s", e)
        _stderr_print(f"ERROR: Configuration error: {e}")
        _stderr_print("  Check WIKIFILES_BASE_PATH and WIKIFILES_CONFLICT_STRATEGY.")
        raise RuntimeError(
            f"Configuration error: {e}. Check WIKIFILES_BASE_PATH and WIKIFILES_CONFLICT_STRATEGY."
        ) from e

    try:
        store = JsonDocumentStore(config.store_path)
    except (OSError, ValueError) as e:
        logger.error("Failed to open document store %s: %s", config.store_path, e)
        _stderr_print(f"ERROR: Cannot open document store {config.store_path}")
        _stderr_print(f"  {e}")
        raise RuntimeError(f"Document store unavailable: {e}") from e

    engine = SyncEngine.from_config(config, store)
    store.add_listener(engine)
    _stderr_print(f"  Document store: {config.store_path}")
    _stderr_print("Server ready. Waiting for MCP client connection...")

    yield {"engine": engine, "store": store, "config": config}

    logger.info("MCP server shutting down")
    _stderr_print("Wikifiles Sync server shutting down.")
