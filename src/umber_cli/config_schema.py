"""Unified configuration schema for umber-cli.

Defines Pydantic models for the config file structure with dedicated
sections for the forum connection, the importer, and logging.

Usage:
    from umber_cli.config_schema import build_config

    raw = load_hierarchical_config()
    unified = build_config(raw)
    settings = unified.importer
"""

from __future__ import annotations

import logging
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from .validators import MAX_POST_LENGTH

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_MAX_LENGTH = MAX_POST_LENGTH


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class NodeBBConfig(BaseModel):
    """NodeBB connection settings.

    All fields are optional: env vars and CLI args can supply them at
    runtime instead.
    """

    url: str | None = Field(default=None, description="Forum base URL")
    api_token: str | None = Field(
        default=None, description="API bearer token"
    )
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: float = Field(
        default=60.0, gt=0, description="Read timeout in seconds"
    )

    model_config = {"frozen": True}


class ImportSettings(BaseModel):
    """Options consumed by the import engine."""

    target_repo_url: str | None = Field(
        default=None, description="Repository imported when --repo is absent"
    )
    ref: str | None = Field(
        default=None,
        description="Branch, tag, or commit to download (default branch when unset)",
    )
    ignored_paths: frozenset[str] = Field(
        default_factory=frozenset,
        description="Relative paths, directories, or globs to skip",
    )
    master_category_name: str | None = Field(
        default=None,
        description="Top-level category that holds the imported tree",
    )
    generate_toc: bool = Field(
        default=False, description="Maintain an index topic"
    )
    toc_title: str = Field(
        default="Table of Contents", description="Title of the index topic"
    )
    toc_header_content: str = Field(
        default="# Table of Contents",
        description="Markdown placed above the index entries",
    )
    importer_uid: int | None = Field(
        default=None, description="Forum user id posts are attributed to"
    )
    chunk_max_length: int = Field(
        default=DEFAULT_CHUNK_MAX_LENGTH,
        ge=256,
        le=MAX_POST_LENGTH,
        description="Maximum characters per post",
    )
    reply_delay: float = Field(
        default=1.0,
        ge=0,
        description="Seconds to wait between continuation replies",
    )
    chunked_update_policy: Literal["skip", "rechunk"] = Field(
        default="skip",
        description="How a changed file that needs more than one post is updated",
    )
    max_tags_per_topic: int = Field(
        default=5,
        ge=1,
        description="Forum tag limit; deepest directory tags are kept",
    )

    model_config = {"frozen": True}

    @field_validator("ignored_paths", mode="before")
    @classmethod
    def _coerce_ignored(cls, value: object) -> object:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset([value])
        return value

    @field_validator("master_category_name")
    @classmethod
    def _blank_master_is_none(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()`` is valid.
    """

    nodebb: NodeBBConfig = Field(default_factory=NodeBBConfig)
    importer: ImportSettings = Field(default_factory=ImportSettings)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Legacy flat keys (config.json of the first releases)
# ---------------------------------------------------------------------------

_LEGACY_KEYS: dict[str, tuple[str, str]] = {
    "nodebb_url": ("nodebb", "url"),
    "nodebb_api_token": ("nodebb", "api_token"),
    "target_repo_url": ("importer", "target_repo_url"),
    "ignored_paths": ("importer", "ignored_paths"),
    "master_category_name": ("importer", "master_category_name"),
    "generate_toc": ("importer", "generate_toc"),
    "toc_title": ("importer", "toc_title"),
    "toc_header_content": ("importer", "toc_header_content"),
    "importer_uid": ("importer", "importer_uid"),
    "chunk_max_length": ("importer", "chunk_max_length"),
}


def _fold_legacy_keys(raw_data: dict) -> dict:
    """Move flat legacy keys into their sections.

    Values already present in a section win over legacy keys.
    """
    data = {k: v for k, v in raw_data.items() if k not in _LEGACY_KEYS}
    for key, (section, field) in _LEGACY_KEYS.items():
        if key not in raw_data:
            continue
        target = dict(data.get(section) or {})
        target.setdefault(field, raw_data[key])
        data[section] = target
        logger.debug("Mapped legacy config key %s -> %s.%s", key, section, field)
    return data


# ---------------------------------------------------------------------------
# Factory function
# ---------------------------------------------------------------------------


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults; flat legacy keys are folded into
    their sections.

    Args:
        raw_data: Merged configuration dictionary.

    Returns:
        Validated ``UnifiedConfig`` instance.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**_fold_legacy_keys(raw_data))
