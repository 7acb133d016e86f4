"""Runtime configuration for the sync engine and MCP server.

Reads sync settings from CLI args, environment variables, .env files,
and YAML config file fallbacks.

Precedence (highest to lowest):
    CLI args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    WIKIFILES_BASE_PATH: Root directory for all project folders
        (optional, default: /var/lib/wikifiles)
    WIKIFILES_ENABLED: Global sync switch (optional, default: false)
    WIKIFILES_CONFLICT_STRATEGY: fileWins, dbWins or manual
        (optional, default: fileWins)
    WIKIFILES_STORE_PATH: JSON document store file
        (optional, default: <base path>/.wikifiles-store.json)
    WIKIFILES_DEBUG: Enable debug logging (optional, default: false)
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from .sync.git_backend import DEFAULT_IDENTITY_EMAIL, DEFAULT_IDENTITY_NAME
from .sync.resolver import normalize_strategy

logger = logging.getLogger(__name__)

DEFAULT_BASE_PATH = "/var/lib/wikifiles"
DEFAULT_STORE_NAME = ".wikifiles-store.json"


@dataclass
class Config:
    base_path: str = DEFAULT_BASE_PATH
    enabled: bool = False
    conflict_strategy: str = "fileWins"
    store_path: str = ""
    commit_name: str = DEFAULT_IDENTITY_NAME
    commit_email: str = DEFAULT_IDENTITY_EMAIL
    debug: bool = False


def validate_config(config: Config) -> None:
    """Validate configuration values and raise ValueError if invalid.

    Normalizes the base path and the strategy spelling in place and
    fills in the default store path.

    Args:
        config: Config instance to validate.

    Raises:
        ValueError: If the base path is empty or relative, the conflict
            strategy is unknown, or the commit identity is blank.
    """
    config.base_path = config.base_path.strip()
    if not config.base_path:
        raise ValueError(
            "Base path cannot be empty. Set WIKIFILES_BASE_PATH environment variable."
        )
    base = Path(config.base_path).expanduser()
    if not base.is_absolute():
        raise ValueError(
            f"Invalid base path '{config.base_path}': must be an absolute path"
        )
    config.base_path = str(base)

    config.conflict_strategy = normalize_strategy(config.conflict_strategy.strip())

    if not config.store_path:
        config.store_path = str(base / DEFAULT_STORE_NAME)
    config.store_path = str(Path(config.store_path).expanduser())

    if not config.commit_name.strip() or not config.commit_email.strip():
        raise ValueError("Commit identity (name and email) cannot be empty")

    if not config.enabled:
        logger.warning(
            "Sync is disabled; set WIKIFILES_ENABLED=true or pass --enable to turn it on"
        )


def get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.lower() in ("true", "1", "yes", "on")


def load_config(
    base_path: str | None = None,
    conflict_strategy: str | None = None,
    store_path: str | None = None,
    enabled: bool = False,
    debug: bool = False,
    yaml_fallbacks: dict | None = None,
) -> Config:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        CLI arg > env var / .env > yaml_fallbacks > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        base_path: Override base path (takes precedence over env var and YAML).
        conflict_strategy: Override conflict strategy.
        store_path: Override JSON store location.
        enabled: Turn sync on (CLI flag).
        debug: Enable debug logging (CLI flag).
        yaml_fallbacks: Dict of values from the YAML config ``sync`` section.
            Used as fallback when CLI arg and env var are both unset.

    Returns:
        Validated Config instance.

    Raises:
        ValueError: If a value is invalid after checking all sources.
    """
    fb = yaml_fallbacks or {}

    # --- String fields: CLI > env > YAML > default ---

    final_base = (
        base_path
        or os.getenv("WIKIFILES_BASE_PATH")
        or fb.get("base_path")
        or DEFAULT_BASE_PATH
    )
    final_strategy = (
        conflict_strategy
        or os.getenv("WIKIFILES_CONFLICT_STRATEGY")
        or fb.get("conflict_strategy")
        or "fileWins"
    )
    final_store = (
        store_path or os.getenv("WIKIFILES_STORE_PATH") or fb.get("store_path") or ""
    )

    # --- Boolean fields: CLI > env > YAML > default ---

    if enabled:
        final_enabled = True
    else:
        env_enabled = get_bool_env("WIKIFILES_ENABLED")
        if env_enabled is not None:
            final_enabled = env_enabled
        else:
            final_enabled = bool(fb.get("enabled", False))

    if debug:
        final_debug = True
    else:
        env_debug = get_bool_env("WIKIFILES_DEBUG")
        if env_debug is not None:
            final_debug = env_debug
        else:
            final_debug = bool(fb.get("debug", False))

    config = Config(
        base_path=str(final_base),
        enabled=final_enabled,
        conflict_strategy=str(final_strategy),
        store_path=str(final_store),
        commit_name=fb.get("commit_name") or DEFAULT_IDENTITY_NAME,
        commit_email=fb.get("commit_email") or DEFAULT_IDENTITY_EMAIL,
        debug=final_debug,
    )

    validate_config(config)

    return config
