"""Index (table of contents) rendering."""

from __future__ import annotations

from collections.abc import Iterable

from .models import TocEntry


def topic_path(topic_id: int, slug: str) -> str:
    """Return the forum path of a topic.

    NodeBB slugs already carry the id (``"12/readme-md"``); the id is not
    repeated in the path.
    """
    prefix = f"{topic_id}/"
    if slug.startswith(prefix):
        slug = slug[len(prefix):]
    if not slug or slug == str(topic_id):
        return f"/topic/{topic_id}"
    return f"/topic/{topic_id}/{slug}"


def _link_text(title: str) -> str:
    return title.replace("[", "\\[").replace("]", "\\]")


def build_toc_markdown(
    entries: Iterable[TocEntry], header: str, base_url: str = ""
) -> str:
    """Render the index document.

    The header comes first, then a horizontal rule, then one bullet per
    entry sorted by the entry's original file path.

    Args:
        entries: Index entries collected during the pass.
        header: Markdown placed above the list.
        base_url: Forum URL prefixed to every link; relative links when empty.

    Returns:
        Markdown document.
    """
    root = base_url.rstrip("/")
    lines = [header.rstrip(), "", "---", ""]
    for entry in sorted(entries, key=lambda e: e.file_path):
        link = root + topic_path(entry.topic_id, entry.topic_slug)
        lines.append(f"* [{_link_text(entry.title)}]({link})")
    return "\n".join(lines) + "\n"
