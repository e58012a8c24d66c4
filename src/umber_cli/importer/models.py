"""Pydantic models for the import engine.

Defines the data contracts shared by the importer modules:

- ``SourceFile``: one file handed over by a file source.
- ``RemoteCategory``: a forum category.
- ``TopicMetadata``: the fixed schema of a topic's ``customData`` bag.
- ``RemoteTopic``: an existing forum topic found by tag lookup.
- ``TocEntry``: one line of the generated index.
- ``ImportAction``: per-file outcome.
- ``ImportResult``: outcome of reconciling one file.
- ``ImportReport``: aggregate results for a full pass.

All models are frozen (immutable).
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)


class SourceFile(BaseModel):
    """A file produced by a file source.

    Attributes:
        relative_path: Normalized POSIX path relative to the repository root.
        raw_bytes: File content as stored in the repository.
    """

    relative_path: str
    raw_bytes: bytes

    model_config = {"frozen": True}


class RemoteCategory(BaseModel):
    """A forum category.

    Attributes:
        id: Category id (``cid``).
        name: Display name.
        parent_id: Parent category id, ``None`` for top-level categories.
    """

    id: int
    name: str
    parent_id: int | None = None

    model_config = {"frozen": True}


class TopicMetadata(BaseModel):
    """Import bookkeeping stored in a topic's ``customData``.

    Serialized with camelCase keys (``model_dump(by_alias=True)``).
    Topics written by older releases may carry a partial or differently
    shaped bag; ``from_custom_data`` fills the gaps with defaults.

    Attributes:
        source: Where the content came from (``github`` or ``local``).
        repo_url: Repository the file was imported from.
        file_path: Relative path of the file in the repository.
        content_hash: Fingerprint of the content last written.
        is_chunked: True when the content spans more than one post.
        chunk_count: Number of posts holding the content.
    """

    source: str = "github"
    repo_url: str | None = Field(
        default=None,
        alias="repoUrl",
        validation_alias=AliasChoices("repoUrl", "sourceRepoUrl", "repo_url"),
    )
    file_path: str | None = Field(
        default=None,
        alias="filePath",
        validation_alias=AliasChoices("filePath", "file_path"),
    )
    content_hash: str | None = Field(
        default=None,
        alias="contentHash",
        validation_alias=AliasChoices("contentHash", "content_hash"),
    )
    is_chunked: bool = Field(
        default=False,
        alias="isChunked",
        validation_alias=AliasChoices("isChunked", "is_chunked"),
    )
    chunk_count: int = Field(
        default=1,
        ge=1,
        alias="chunkCount",
        validation_alias=AliasChoices("chunkCount", "chunk_count"),
    )

    model_config = {
        "frozen": True,
        "extra": "ignore",
        "populate_by_name": True,
    }

    @classmethod
    def from_custom_data(cls, data: Any) -> TopicMetadata:
        """Read a loosely-typed ``customData`` value.

        Fields that are missing or fail validation fall back to their
        defaults; a value that is not a mapping yields all defaults.
        """
        if not isinstance(data, Mapping):
            return cls()

        payload = dict(data)
        try:
            return cls.model_validate(payload)
        except ValidationError as exc:
            bad_keys = {err["loc"][0] for err in exc.errors() if err["loc"]}
            logger.debug(
                "Dropping invalid customData fields %s", sorted(map(str, bad_keys))
            )
            cleaned = {k: v for k, v in payload.items() if k not in bad_keys}
            return cls.model_validate(cleaned)

    def to_custom_data(self) -> dict[str, Any]:
        """Serialize to the camelCase bag sent to the forum."""
        return self.model_dump(by_alias=True)


class RemoteTopic(BaseModel):
    """An existing topic found by ``(tag, category)`` lookup.

    Attributes:
        id: Topic id (``tid``).
        slug: URL slug, e.g. ``"9765/move-asm"``.
        main_post_id: Id of the first post (``mainPid``).
        title: Topic title.
        tags: Tag values attached to the topic.
        metadata: Parsed ``customData``.
    """

    id: int
    slug: str
    main_post_id: int | None = None
    title: str = ""
    tags: frozenset[str] = frozenset()
    metadata: TopicMetadata = Field(default_factory=TopicMetadata)

    model_config = {"frozen": True}


class TocEntry(BaseModel):
    """One entry of the generated index."""

    file_path: str
    title: str
    topic_id: int
    topic_slug: str

    model_config = {"frozen": True}


class ImportAction(str, Enum):
    """Possible outcomes for one file."""

    CREATE = "create"
    UPDATE = "update"
    SKIP = "skip"
    WARN = "warn"


class ImportResult(BaseModel):
    """Outcome of reconciling one file (or the index topic).

    Attributes:
        file_path: Relative path of the file.
        title: Topic title.
        action: What was (or, in a dry run, would be) done.
        topic_id: Topic id when known.
        topic_slug: Topic slug when known.
        category_id: Category the topic lives in.
        chunk_count: Number of posts the content occupies.
        message: Warning or note for the user.
    """

    file_path: str
    title: str
    action: ImportAction
    topic_id: int | None = None
    topic_slug: str | None = None
    category_id: int | None = None
    chunk_count: int = 1
    message: str | None = None

    model_config = {"frozen": True}

    def toc_entry(self) -> TocEntry | None:
        """Return the index entry for this result, if a topic id is known."""
        if self.topic_id is None:
            return None
        return TocEntry(
            file_path=self.file_path,
            title=self.title,
            topic_id=self.topic_id,
            topic_slug=self.topic_slug or str(self.topic_id),
        )


class ImportReport(BaseModel):
    """Aggregate report for one import pass.

    Attributes:
        repo_url: Repository that was imported.
        dry_run: Whether this was a dry run (no writes).
        results: Per-file results, in processing order.
        index: Result of the index topic upsert, if it ran.
        started_at: ISO 8601 timestamp when the pass started.
        completed_at: ISO 8601 timestamp when the pass ended.
        aborted: True when a remote failure stopped the pass.
        error: Failure description when aborted.
    """

    repo_url: str
    dry_run: bool = False
    results: list[ImportResult] = []
    index: ImportResult | None = None
    started_at: str
    completed_at: str | None = None
    aborted: bool = False
    error: str | None = None

    model_config = {"frozen": True}

    @property
    def created(self) -> list[ImportResult]:
        """Results where action is CREATE."""
        return [r for r in self.results if r.action == ImportAction.CREATE]

    @property
    def updated(self) -> list[ImportResult]:
        """Results where action is UPDATE."""
        return [r for r in self.results if r.action == ImportAction.UPDATE]

    @property
    def skipped(self) -> list[ImportResult]:
        """Results where the content was unchanged."""
        return [r for r in self.results if r.action == ImportAction.SKIP]

    @property
    def warnings(self) -> list[ImportResult]:
        """Results skipped with a warning."""
        return [r for r in self.results if r.action == ImportAction.WARN]

    @property
    def toc_entries(self) -> list[TocEntry]:
        """Index entries for every result with a known topic id."""
        entries = (r.toc_entry() for r in self.results)
        return [e for e in entries if e is not None]

    def summary(self) -> str:
        """Format a human-readable summary of the pass.

        Returns:
            Multi-line summary string with counts by action.
        """
        lines = [
            f"Import report for {self.repo_url}"
            + (" (dry run)" if self.dry_run else "")
            + (" (ABORTED)" if self.aborted else ""),
            f"  Created:  {len(self.created)}",
            f"  Updated:  {len(self.updated)}",
            f"  Skipped:  {len(self.skipped)}",
            f"  Warnings: {len(self.warnings)}",
            f"  Total:    {len(self.results)}",
        ]
        return "\n".join(lines)
