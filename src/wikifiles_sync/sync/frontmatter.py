"""Frontmatter codec for Markdown files.

A document file may start with a YAML block between two ``---`` lines::

    ---
    parent: Home
    id: 42
    ---

    Body text

``parse`` never raises: text without a well-formed block, or with a block
that is not a YAML mapping, is returned unchanged with empty metadata.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Any

import yaml
from pydantic import BaseModel

logger = logging.getLogger(__name__)

DELIMITER = "---"

_DELIMITER_LINE = re.compile(r"^---[ \t]*$", re.MULTILINE)


class FrontmatterMetadata(BaseModel):
    """Typed view of a frontmatter block.

    The four keys the sync engine writes are named fields; any other key
    is kept as an extra so ``build(parse(x))`` does not drop it.
    """

    parent: str | None = None
    id: int | str | None = None
    created: str | None = None
    updated: str | None = None

    model_config = {"frozen": True, "extra": "allow"}

    @classmethod
    def from_mapping(cls, data: dict[str, Any]) -> FrontmatterMetadata:
        values = {}
        for key, value in data.items():
            key = str(key)
            if isinstance(value, (datetime, date)):
                value = value.isoformat()
            elif key == "parent" and value is not None:
                value = str(value)
            values[key] = value
        return cls.model_validate(values)

    def to_mapping(self) -> dict[str, Any]:
        return self.model_dump(exclude_none=True)

    @property
    def extras(self) -> dict[str, Any]:
        return dict(self.model_extra or {})

    @property
    def created_at(self) -> datetime | None:
        return _parse_timestamp(self.created)

    @property
    def updated_at(self) -> datetime | None:
        return _parse_timestamp(self.updated)


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        logger.debug("Unparseable frontmatter timestamp: %r", value)
        return None


def _split(text: str) -> tuple[str, str] | None:
    """Return ``(yaml_block, body)`` or ``None`` if no valid block."""
    if not text or not text.startswith(DELIMITER):
        return None
    parts = _DELIMITER_LINE.split(text, maxsplit=2)
    if len(parts) < 3 or parts[0].strip():
        return None
    return parts[1], parts[2]


def _load_block(block: str) -> dict[str, Any] | None:
    """Parse a YAML block; ``None`` when it is not a mapping."""
    try:
        data = yaml.safe_load(block)
    except yaml.YAMLError as exc:
        logger.warning("Invalid frontmatter YAML: %s", exc)
        return None
    if data is None:
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Frontmatter is not a mapping (%s), ignoring it",
            type(data).__name__,
        )
        return None
    return data


def parse(text: str | None) -> tuple[dict[str, Any], str]:
    """Split *text* into ``(metadata, content)``.

    The content has leading whitespace removed.  Without a valid block the
    metadata is empty and the content is *text* unchanged.
    """
    if not text:
        return {}, text or ""
    split = _split(text)
    if split is None:
        return {}, text
    block, body = split
    metadata = _load_block(block)
    if metadata is None:
        return {}, text
    return metadata, body.lstrip()


def parse_typed(text: str | None) -> tuple[FrontmatterMetadata, str]:
    """Like :func:`parse` but returns a ``FrontmatterMetadata``."""
    metadata, content = parse(text)
    return FrontmatterMetadata.from_mapping(metadata), content


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (list, dict, tuple, set)):
        return not value
    return False


def build(
    metadata: dict[str, Any] | FrontmatterMetadata | None, content: str
) -> str:
    """Render *metadata* as a frontmatter block followed by *content*.

    Keys with ``None`` or blank values are dropped.  If nothing remains,
    *content* is returned unchanged.
    """
    if isinstance(metadata, FrontmatterMetadata):
        metadata = metadata.to_mapping()
    cleaned = {
        k: v for k, v in (metadata or {}).items() if not _is_blank(v)
    }
    if not cleaned:
        return content
    block = yaml.safe_dump(
        cleaned,
        sort_keys=False,
        allow_unicode=True,
        default_flow_style=False,
    )
    return f"{DELIMITER}\n{block}{DELIMITER}\n\n{content}"


def update_metadata(text: str, partial: dict[str, Any]) -> str:
    """Merge *partial* over the existing metadata of *text* and rebuild."""
    metadata, content = parse(text)
    metadata.update(partial)
    return build(metadata, content)


def get_metadata(text: str | None) -> dict[str, Any]:
    return parse(text)[0]


def strip_frontmatter(text: str | None) -> str:
    return parse(text)[1]


def has_frontmatter(text: str | None) -> bool:
    """True if *text* starts with a well-formed block, even an empty one.

    An empty block is how an operator marks a plain file as ready for
    import.
    """
    split = _split(text or "")
    if split is None:
        return False
    return _load_block(split[0]) is not None
