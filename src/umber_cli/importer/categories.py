"""Directory-to-category resolution.

Maps a directory path onto a chain of forum categories, creating missing
links on the way down. Two caches live on the resolver, both for the
lifetime of one pass:

- ``(parent_id, lowercased name) -> category id`` for resolved segments,
  so ``a/b`` and ``a/c`` resolve ``a`` once;
- ``parent_id -> children`` listings, extended with every category the
  resolver creates.

The pass is single-writer; two concurrent passes may create duplicate
sibling categories.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..core.async_utils import run_sync
from .models import RemoteCategory

if TYPE_CHECKING:
    from ..core.client import NodeBBClient

logger = logging.getLogger(__name__)


class CategoryResolver:
    """Resolve category paths to ids, memoizing per segment.

    Args:
        client: Forum client (``NodeBBClient`` or a compatible fake).
    """

    def __init__(self, client: NodeBBClient) -> None:
        self._client = client
        self._resolved: dict[tuple[int | None, str], int] = {}
        self._children: dict[int | None, list[RemoteCategory]] = {}

    async def resolve(
        self,
        path: Sequence[str],
        base_id: int | None = None,
        *,
        create: bool = True,
    ) -> int | None:
        """Resolve *path* beneath *base_id* (forum root when ``None``).

        Args:
            path: Directory segments, e.g. ``("data", "moves")``.
            base_id: Category the path is rooted in.
            create: Create missing categories. When ``False`` a missing
                segment resolves to ``None`` and nothing is written.

        Returns:
            Id of the deepest category; *base_id* for an empty path.
        """
        parent = base_id
        for segment in path:
            if not segment or segment == ".":
                continue
            parent = await self._resolve_segment(parent, segment, create)
            if parent is None:
                return None
        return parent

    async def resolve_name(
        self, name: str, *, create: bool = True
    ) -> int | None:
        """Resolve a single top-level category by name."""
        return await self.resolve([name], None, create=create)

    async def _resolve_segment(
        self, parent_id: int | None, name: str, create: bool
    ) -> int | None:
        key = (parent_id, name.lower())
        if key in self._resolved:
            return self._resolved[key]

        children = await self._children_of(parent_id)
        match = next((c for c in children if c.name.lower() == key[1]), None)

        if match is None:
            if not create:
                logger.debug(
                    "Category %r not found under %s", name, parent_id or "root"
                )
                return None
            logger.info(
                "Creating category %r under %s", name, parent_id or "root"
            )
            match = await run_sync(self._client.create_category, name, parent_id)
            children.append(match)

        self._resolved[key] = match.id
        return match.id

    async def _children_of(self, parent_id: int | None) -> list[RemoteCategory]:
        if parent_id not in self._children:
            listed = await run_sync(self._client.list_categories, parent_id)
            self._children[parent_id] = list(listed)
        return self._children[parent_id]
