"""Import engine: reconcile a file tree with forum topics.

For every source file the engine:

1. Normalizes line endings and fingerprints the content.
2. Derives the filename tag and the category path of the file.
3. Resolves (or creates) the category chain, beneath the master category
   when one is configured.
4. Looks the topic up by ``(filename tag, category id)``. The forum is the
   only record of earlier imports; nothing is stored locally.
5. Creates the topic (chunked across replies when needed), updates it
   when the fingerprint differs, or skips it when unchanged.

After the last file the index topic is upserted through the same path.

Error handling is fail-fast: the first ``NodeBBError`` stops the pass and
is re-raised as ``ImportAbortedError`` carrying the partial report.
Re-running is the recovery path, since unchanged files are skipped.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import cached_property
from typing import TYPE_CHECKING

from ..config_schema import ImportSettings
from ..core.async_utils import pause, run_sync
from ..errors import ImportAbortedError, NodeBBError
from ..file_handler import decode_content
from .categories import CategoryResolver
from .chunker import chunk_text
from .codec import filename_tag, normalize_path, path_tags, split_path
from .hashing import content_hash, normalize_line_endings
from .models import (
    ImportAction,
    ImportReport,
    ImportResult,
    RemoteTopic,
    SourceFile,
    TocEntry,
    TopicMetadata,
)
from .posts import (
    SUPERSEDED_NOTICE,
    code_fence,
    language_for,
    render_overhead,
    render_post,
)
from .toc import build_toc_markdown

if TYPE_CHECKING:
    from ..core.client import NodeBBClient

logger = logging.getLogger(__name__)


@dataclass
class ImportContext:
    """Everything one import pass shares across files.

    Built once per pass and handed to ``ImportEngine``; holds the forum
    client and the category cache instead of module-level state.

    Attributes:
        client: Forum client (``NodeBBClient`` or a compatible fake).
        settings: Importer options.
        repo_url: Repository recorded in topic metadata.
        source: Metadata ``source`` value (``github`` or ``local``).
        base_url: Forum URL used for index links.
        categories: Per-pass category resolver and cache.
    """

    client: NodeBBClient
    settings: ImportSettings
    repo_url: str
    source: str = "github"
    base_url: str = ""
    categories: CategoryResolver = field(init=False)

    def __post_init__(self) -> None:
        self.categories = CategoryResolver(self.client)


@dataclass(frozen=True)
class _Document:
    """A topic-to-be: one source file, or the index."""

    file_path: str
    title: str
    tag: str
    tags: list[str]
    text: str
    language: str | None
    metadata_path: str | None
    source: str

    @cached_property
    def content_hash(self) -> str:
        return content_hash(self.text)

    @cached_property
    def fence(self) -> str:
        return code_fence(self.text)

    def render(self, chunk: str, index: int) -> str:
        return render_post(chunk, index, self.language, self.fence)


class ImportEngine:
    """Run import passes for one context.

    Args:
        context: The per-pass context.
    """

    def __init__(self, context: ImportContext) -> None:
        self.context = context
        self.client = context.client
        self.settings = context.settings

    # ------------------------------------------------------------------
    # Main entry point
    # ------------------------------------------------------------------

    async def run(
        self, files: Iterable[SourceFile], dry_run: bool = False
    ) -> ImportReport:
        """Reconcile every file, then upsert the index.

        Args:
            files: Files to import, in processing order.
            dry_run: If ``True``, look everything up but write nothing.

        Returns:
            The pass report.

        Raises:
            ImportAbortedError: On the first forum API failure.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        results: list[ImportResult] = []
        index_result: ImportResult | None = None

        try:
            for source_file in files:
                results.append(await self.reconcile(source_file, dry_run))

            entries = [e for e in (r.toc_entry() for r in results) if e]
            if self.settings.generate_toc and entries:
                index_result = await self.upsert_index(entries, dry_run)
        except NodeBBError as exc:
            logger.error("Import aborted: %s", exc)
            report = ImportReport(
                repo_url=self.context.repo_url,
                dry_run=dry_run,
                results=results,
                index=index_result,
                started_at=started_at,
                completed_at=datetime.now(timezone.utc).isoformat(),
                aborted=True,
                error=str(exc),
            )
            raise ImportAbortedError(report, exc) from exc

        return ImportReport(
            repo_url=self.context.repo_url,
            dry_run=dry_run,
            results=results,
            index=index_result,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )

    # ------------------------------------------------------------------
    # Per-file reconciliation
    # ------------------------------------------------------------------

    async def reconcile(
        self, source_file: SourceFile, dry_run: bool = False
    ) -> ImportResult:
        """Create, update, or skip the topic of one file."""
        path = normalize_path(source_file.relative_path)
        segments, name = split_path(path)
        logger.info("Processing: %s", path)

        text, encoding = decode_content(source_file.raw_bytes)
        if encoding != "utf-8":
            logger.debug("Decoded %s as %s", path, encoding)

        tag = filename_tag(name)
        doc = _Document(
            file_path=path,
            title=name,
            tag=tag,
            tags=self._topic_tags(segments, tag),
            text=normalize_line_endings(text),
            language=language_for(name),
            metadata_path=path,
            source=self.context.source,
        )

        if not segments and not self.settings.master_category_name:
            message = "root-level file needs master_category_name to get a category"
            logger.warning("%s: %s, skipping", path, message)
            return ImportResult(
                file_path=path,
                title=name,
                action=ImportAction.WARN,
                message=message,
            )

        category_id = await self._resolve_category(segments, dry_run)
        return await self._upsert(doc, category_id, dry_run)

    async def _resolve_category(
        self, segments: tuple[str, ...], dry_run: bool
    ) -> int | None:
        """Resolve the category of a file; ``None`` only for a dry-run miss."""
        base_id = None
        master = self.settings.master_category_name
        if master:
            base_id = await self.context.categories.resolve_name(
                master, create=not dry_run
            )
            if base_id is None:
                return None
        return await self.context.categories.resolve(
            segments, base_id, create=not dry_run
        )

    def _topic_tags(self, segments: tuple[str, ...], tag: str) -> list[str]:
        """Directory tags (deepest first kept) plus the lookup tag, within the forum's tag limit."""
        room = max(self.settings.max_tags_per_topic - 1, 0)
        dir_tags = [t for t in path_tags("/".join(segments)) if t != tag]
        kept = dir_tags[-room:] if room else []
        return kept + [tag]

    # ------------------------------------------------------------------
    # Create / update / skip
    # ------------------------------------------------------------------

    async def _upsert(
        self, doc: _Document, category_id: int | None, dry_run: bool
    ) -> ImportResult:
        existing = None
        if category_id is not None:
            existing = await run_sync(
                self.client.find_topic_by_tag, doc.tag, category_id
            )

        chunks = self._chunk(doc)

        if existing is None:
            if dry_run:
                logger.info("Would create topic %r (%d posts)", doc.title, len(chunks))
                return self._result(
                    doc, ImportAction.CREATE, None, category_id, len(chunks)
                )
            return await self._create(doc, category_id, chunks)

        if existing.metadata.content_hash == doc.content_hash:
            logger.info("Content is unchanged. Skipping: %s", doc.file_path)
            return self._result(
                doc,
                ImportAction.SKIP,
                existing,
                category_id,
                existing.metadata.chunk_count,
            )

        return await self._update(doc, existing, category_id, chunks, dry_run)

    def _chunk(self, doc: _Document) -> list[str]:
        limit = self.settings.chunk_max_length - render_overhead(
            doc.language, doc.fence
        )
        return chunk_text(doc.text, max(limit, 1))

    async def _create(
        self, doc: _Document, category_id: int | None, chunks: list[str]
    ) -> ImportResult:
        if category_id is None:
            raise ValueError(f"No category resolved for {doc.file_path}")

        metadata = self._metadata(doc, len(chunks))
        chunked = len(chunks) > 1
        # No fingerprint until the last reply is posted; see _update.
        initial = (
            metadata.model_copy(update={"content_hash": None})
            if chunked
            else metadata
        )
        logger.info("Creating topic: %r", doc.title)
        topic = await run_sync(
            self.client.create_topic,
            category_id,
            doc.title,
            doc.render(chunks[0], 0),
            doc.tags,
            initial.to_custom_data(),
            self.settings.importer_uid,
        )

        note = None
        if chunked:
            logger.info("Content split into %d posts", len(chunks))
            for index in range(1, len(chunks)):
                await self._reply(topic.id, doc.render(chunks[index], index))
            note = await self._refresh_metadata(topic.id, metadata)

        return self._result(
            doc, ImportAction.CREATE, topic, category_id, len(chunks), note
        )

    async def _update(
        self,
        doc: _Document,
        existing: RemoteTopic,
        category_id: int | None,
        chunks: list[str],
        dry_run: bool,
    ) -> ImportResult:
        multi_post = existing.metadata.is_chunked or len(chunks) > 1
        interrupted = (
            existing.metadata.is_chunked and existing.metadata.content_hash is None
        )
        if interrupted:
            logger.info("Resuming interrupted import of TID: %s", existing.id)

        if (
            multi_post
            and not interrupted
            and self.settings.chunked_update_policy == "skip"
        ):
            if existing.metadata.is_chunked:
                reason = (
                    f"topic is split across {existing.metadata.chunk_count} posts"
                )
            else:
                reason = "new content exceeds the post length limit"
            message = f"content changed but {reason} (chunked_update_policy=skip)"
            logger.warning("%s: %s, skipping", doc.file_path, message)
            return self._result(
                doc,
                ImportAction.WARN,
                existing,
                category_id,
                existing.metadata.chunk_count,
                message,
            )

        owned: list[int] = []
        if multi_post:
            post_ids = await run_sync(self.client.get_topic_post_ids, existing.id)
            if not post_ids:
                raise NodeBBError(f"Topic {existing.id} has no posts")
            owned = post_ids[: existing.metadata.chunk_count]
            if len(chunks) > len(owned) and len(post_ids) > len(owned):
                message = (
                    "content needs more posts but other users replied after "
                    "the imported posts"
                )
                logger.warning("%s: %s, skipping", doc.file_path, message)
                return self._result(
                    doc,
                    ImportAction.WARN,
                    existing,
                    category_id,
                    existing.metadata.chunk_count,
                    message,
                )

        if dry_run:
            logger.info("Would update topic %s (%d posts)", existing.id, len(chunks))
            return self._result(
                doc, ImportAction.UPDATE, existing, category_id, len(chunks)
            )

        logger.info("Updating topic TID: %s", existing.id)
        if multi_post:
            await self._rewrite_posts(doc, existing.id, owned, chunks)
        else:
            main_post_id = existing.main_post_id
            if main_post_id is None:
                main_post_id = (
                    await run_sync(self.client.get_topic_post_ids, existing.id)
                )[0]
            await run_sync(
                self.client.update_post,
                main_post_id,
                doc.render(chunks[0], 0),
                self.settings.importer_uid,
            )

        note = await self._refresh_metadata(
            existing.id, self._metadata(doc, len(chunks))
        )
        return self._result(
            doc, ImportAction.UPDATE, existing, category_id, len(chunks), note
        )

    async def _rewrite_posts(
        self,
        doc: _Document,
        topic_id: int,
        owned: list[int],
        chunks: list[str],
    ) -> None:
        """Write *chunks* over the posts this tool owns in a topic.

        Only the first ``chunk_count`` posts were written by the importer;
        later posts may be replies from forum users and are left alone.
        Extra chunks are appended as new replies, surplus owned posts get
        a notice.
        """
        uid = self.settings.importer_uid

        for index, chunk in enumerate(chunks):
            content = doc.render(chunk, index)
            if index < len(owned):
                await run_sync(self.client.update_post, owned[index], content, uid)
            else:
                await self._reply(topic_id, content)

        for post_id in owned[len(chunks):]:
            await run_sync(self.client.update_post, post_id, SUPERSEDED_NOTICE, uid)

    async def _reply(self, topic_id: int, content: str) -> None:
        """Post one continuation reply after the rate-limit delay."""
        await pause(self.settings.reply_delay)
        logger.info("   -> Posting reply to TID: %s", topic_id)
        await run_sync(
            self.client.create_reply,
            topic_id,
            content,
            self.settings.importer_uid,
        )

    async def _refresh_metadata(
        self, topic_id: int, metadata: TopicMetadata
    ) -> str | None:
        """Store the new fingerprint; failure is reported, not fatal.

        The content is already updated at this point; a stale hash only
        means the next pass updates the topic again.
        """
        try:
            await run_sync(
                self.client.update_topic_metadata,
                topic_id,
                metadata.to_custom_data(),
            )
        except NodeBBError as exc:
            logger.warning(
                "Topic %s content updated but metadata refresh failed: %s",
                topic_id,
                exc,
            )
            return f"metadata refresh failed: {exc}"
        return None

    # ------------------------------------------------------------------
    # Index
    # ------------------------------------------------------------------

    async def upsert_index(
        self, entries: list[TocEntry], dry_run: bool = False
    ) -> ImportResult:
        """Create or refresh the index topic in the master category."""
        title = self.settings.toc_title
        master = self.settings.master_category_name
        if not master:
            message = "index needs master_category_name to get a category"
            logger.warning("%s, skipping index", message)
            return ImportResult(
                file_path=title,
                title=title,
                action=ImportAction.WARN,
                message=message,
            )

        logger.info("Generating Table of Contents (%d entries)", len(entries))
        markdown = build_toc_markdown(
            entries, self.settings.toc_header_content, self.context.base_url
        )
        tag = filename_tag(title)
        doc = _Document(
            file_path=title,
            title=title,
            tag=tag,
            tags=[tag],
            text=markdown,
            language=None,
            metadata_path=None,
            source="index",
        )
        category_id = await self.context.categories.resolve_name(
            master, create=not dry_run
        )
        return await self._upsert(doc, category_id, dry_run)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _metadata(self, doc: _Document, chunk_count: int) -> TopicMetadata:
        return TopicMetadata(
            source=doc.source,
            repo_url=self.context.repo_url,
            file_path=doc.metadata_path,
            content_hash=doc.content_hash,
            is_chunked=chunk_count > 1,
            chunk_count=chunk_count,
        )

    @staticmethod
    def _result(
        doc: _Document,
        action: ImportAction,
        topic: RemoteTopic | None,
        category_id: int | None,
        chunk_count: int,
        message: str | None = None,
    ) -> ImportResult:
        return ImportResult(
            file_path=doc.file_path,
            title=doc.title,
            action=action,
            topic_id=topic.id if topic else None,
            topic_slug=topic.slug if topic else None,
            category_id=category_id,
            chunk_count=chunk_count,
            message=message,
        )
