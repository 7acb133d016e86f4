"""Unified configuration schema for wikifiles_sync.

Defines Pydantic models for the unified config structure with dedicated
sections for sync settings and logging. Includes adapter function for
the ``Config`` dataclass used at runtime.

Usage:
    from wikifiles_sync.config_schema import (
        UnifiedConfig, build_config, to_runtime_config,
    )

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = to_runtime_config(unified, cli_overrides={"base_path": "/srv/wiki"})
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from .sync.git_backend import DEFAULT_IDENTITY_EMAIL, DEFAULT_IDENTITY_NAME
from .sync.resolver import normalize_strategy

if TYPE_CHECKING:
    from .config import Config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class SyncSettings(BaseModel):
    """Sync engine settings.

    Every field has a default so env vars and CLI args can supply the
    rest at runtime.
    """

    base_path: str = Field(
        default="/var/lib/wikifiles",
        description="Root directory holding all project folders",
    )
    enabled: bool = Field(default=False, description="Global sync switch")
    conflict_strategy: str = Field(
        default="fileWins",
        description="Conflict policy: fileWins, dbWins or manual",
    )
    store_path: str | None = Field(
        default=None, description="JSON document store file"
    )
    commit_name: str = Field(
        default=DEFAULT_IDENTITY_NAME,
        description="Committer name for new repositories",
    )
    commit_email: str = Field(
        default=DEFAULT_IDENTITY_EMAIL,
        description="Committer email for new repositories",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    model_config = {"frozen": True}

    @field_validator("conflict_strategy")
    @classmethod
    def _known_strategy(cls, value: str) -> str:
        return normalize_strategy(value)


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Aggregates all config sections. Every section has sensible defaults,
    so ``UnifiedConfig()`` (zero-config) is always valid.
    """

    sync: SyncSettings = Field(default_factory=SyncSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Handles missing sections gracefully; anything absent gets defaults.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.

    Raises:
        pydantic.ValidationError: If a section has invalid values.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


# ---------------------------------------------------------------------------
# Adapter: UnifiedConfig -> Config dataclass
# ---------------------------------------------------------------------------


def to_runtime_config(
    unified: UnifiedConfig,
    cli_overrides: dict | None = None,
) -> Config:
    """Convert a ``UnifiedConfig`` into the ``Config`` dataclass,
    applying CLI overrides on top.

    The precedence applied here is:
        CLI override > unified config value

    CLI overrides dict keys: base_path, conflict_strategy, store_path,
    enabled, debug.

    Args:
        unified: The unified config produced by ``build_config()``.
        cli_overrides: Optional dict of CLI argument values.

    Returns:
        ``Config`` dataclass instance (NOT validated; caller should run
        ``validate_config()`` separately if needed).
    """
    # Import here to avoid circular imports
    from .config import Config

    overrides = cli_overrides or {}
    sync = unified.sync

    return Config(
        base_path=overrides.get("base_path") or sync.base_path,
        enabled=overrides.get("enabled", False) or sync.enabled,
        conflict_strategy=overrides.get("conflict_strategy")
        or sync.conflict_strategy,
        store_path=overrides.get("store_path") or sync.store_path or "",
        commit_name=sync.commit_name,
        commit_email=sync.commit_email,
        debug=overrides.get("debug", False) or sync.debug,
    )
