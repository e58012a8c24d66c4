"""Post body rendering.

File content is posted inside one fenced code block per post. The fence
is longer than any backtick run in the file, so content that itself
contains fences cannot close the block early. Replies carry a marker
pointing back to the post they continue.
"""

from __future__ import annotations

import posixpath
import re

_BACKTICK_RUN = re.compile(r"`+")

SUPERSEDED_NOTICE = "*(This post is no longer part of the imported file.)*"

# Large enough that any real reply number renders no longer than this.
_MARKER_PLACEHOLDER = 10**6


def code_fence(text: str) -> str:
    """Return a backtick fence longer than any backtick run in *text* (min 3)."""
    longest = max((len(m.group(0)) for m in _BACKTICK_RUN.finditer(text)), default=0)
    return "`" * max(3, longest + 1)


def language_for(file_name: str) -> str:
    """Code block language from the file extension; ``text`` when there is none."""
    ext = posixpath.splitext(file_name)[1].lstrip(".").lower()
    return ext or "text"


def continuation_marker(index: int) -> str:
    return f"*(Continued from post {index})*"


def render_post(
    chunk: str,
    index: int,
    language: str | None = None,
    fence: str = "```",
) -> str:
    """Render chunk number *index* (0 = main post).

    With *language* ``None`` the chunk is posted as-is (Markdown
    documents such as the index); otherwise it is wrapped in a code block.
    """
    body = chunk if language is None else f"{fence}{language}\n{chunk}\n{fence}"
    if index == 0:
        return body
    return f"{continuation_marker(index)}\n\n{body}"


def render_overhead(language: str | None, fence: str = "```") -> int:
    """Characters ``render_post`` adds around a chunk, at most."""
    return len(render_post("", _MARKER_PLACEHOLDER, language, fence))
