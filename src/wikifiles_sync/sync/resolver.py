"""Conflict policies deciding which side wins when file and document differ.

- ``FileWinsPolicy``: a newer file overwrites the document; folder names
  on disk are propagated into project names, folders are never renamed.
- ``DbWinsPolicy``: the document store is authoritative; files are
  rewritten and folders renamed to match the records.
- ``ManualPolicy``: nothing is overwritten or renamed; discrepancies are
  reported.

The ``create_policy()`` factory maps config strategy strings to policy
instances.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class Resolution(str, Enum):
    """What to do with a document whose file differs from it."""

    NONE = "none"
    USE_FILE = "use_file"
    USE_DOCUMENT = "use_document"
    REPORT = "report"


def _as_timestamp(value: datetime) -> float:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.timestamp()


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


class ConflictPolicy(Protocol):
    """Protocol that all conflict policies must satisfy."""

    name: str
    #: Rename project folders when the project record is renamed.
    renames_folders: bool
    #: Copy folder names found on disk into project display names.
    adopts_folder_names: bool

    def resolve(
        self,
        document_text: str,
        document_updated: datetime,
        file_text: str,
        file_mtime: float,
    ) -> Resolution:
        """Decide how to reconcile a document with its file body."""
        ...  # pragma: no cover


# ---------------------------------------------------------------------------
# Policies
# ---------------------------------------------------------------------------


class FileWinsPolicy:
    """Import the file when it is newer than the document."""

    name = "fileWins"
    renames_folders = False
    adopts_folder_names = True

    def resolve(
        self,
        document_text: str,
        document_updated: datetime,
        file_text: str,
        file_mtime: float,
    ) -> Resolution:
        if document_text == file_text:
            return Resolution.NONE
        if file_mtime > _as_timestamp(document_updated):
            return Resolution.USE_FILE
        logger.info(
            "Document is newer than its file; leaving both unchanged"
        )
        return Resolution.REPORT


class DbWinsPolicy:
    """Always rewrite the file from the document."""

    name = "dbWins"
    renames_folders = True
    adopts_folder_names = False

    def resolve(
        self,
        document_text: str,
        document_updated: datetime,
        file_text: str,
        file_mtime: float,
    ) -> Resolution:
        if document_text == file_text:
            return Resolution.NONE
        return Resolution.USE_DOCUMENT


class ManualPolicy:
    """Never overwrite either side."""

    name = "manual"
    renames_folders = False
    adopts_folder_names = False

    def resolve(
        self,
        document_text: str,
        document_updated: datetime,
        file_text: str,
        file_mtime: float,
    ) -> Resolution:
        if document_text == file_text:
            return Resolution.NONE
        return Resolution.REPORT


# ---------------------------------------------------------------------------
# Factory
# ---------------------------------------------------------------------------

_STRATEGY_MAP: dict[str, type] = {
    "fileWins": FileWinsPolicy,
    "dbWins": DbWinsPolicy,
    "manual": ManualPolicy,
}

_ALIASES = {
    "file_wins": "fileWins",
    "db_wins": "dbWins",
}


def normalize_strategy(strategy: str) -> str:
    """Map snake-case spellings to the canonical strategy name.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    canonical = _ALIASES.get(strategy, strategy)
    if canonical not in _STRATEGY_MAP:
        raise ValueError(
            f"Unknown conflict strategy: '{strategy}'. Valid strategies: {sorted(_STRATEGY_MAP.keys())}"
        )
    return canonical


def create_policy(strategy: str) -> ConflictPolicy:
    """Create a conflict policy for the given strategy string.

    Args:
        strategy: One of ``"fileWins"``, ``"dbWins"``, ``"manual"``
            (``"file_wins"`` and ``"db_wins"`` are accepted too).

    Returns:
        A ``ConflictPolicy`` implementation instance.

    Raises:
        ValueError: If the strategy string is not recognised.
    """
    cls = _STRATEGY_MAP[normalize_strategy(strategy)]
    return cls()  # type: ignore[return-value]
