"""Path and tag derivation.

Two independent schemes live here:

- **Forum tags** (one-way): ``filename_tag`` is the lookup key of an
  imported topic, always scoped by the id of the category the topic
  lives in; ``path_tags`` are discovery tags for the containing
  directories and are never searched.
- **Full-path codec** (round-trip): ``encode_path``/``decode_path`` turn a
  whole relative path into a single token using ``__`` for separators and
  ``_dot_`` for periods. Lookups do not use it.
"""

from __future__ import annotations

import posixpath
import re

_TAG_INVALID = re.compile(r"[^a-z0-9_]")
_DECODE = re.compile(r"_dot_|__")

PATH_TAG_PREFIX = "dir-"
SEPARATOR_SENTINEL = "__"
DOT_SENTINEL = "_dot_"


def normalize_path(path: str) -> str:
    """Normalize a relative path to POSIX form.

    Backslashes become ``/``; ``.`` segments, duplicate and trailing
    slashes are removed and ``..`` is collapsed. The repository root
    normalizes to ``""``.
    """
    text = path.replace("\\", "/").strip()
    if not text:
        return ""
    normalized = posixpath.normpath(text).lstrip("/")
    return "" if normalized == "." else normalized


def split_path(relative_path: str) -> tuple[tuple[str, ...], str]:
    """Split a relative file path into its directory segments and file name.

    >>> split_path("data/moves/move.asm")
    (('data', 'moves'), 'move.asm')
    """
    normalized = normalize_path(relative_path)
    directory, name = posixpath.split(normalized)
    segments = tuple(s for s in directory.split("/") if s and s != ".")
    return segments, name


def filename_tag(name: str) -> str:
    """Derive the lookup tag of a file from its name.

    The name is lowercased and every character outside ``[a-z0-9_]``
    becomes ``-``, so ``"File.TXT"`` and ``"file.txt"`` share the tag
    ``"file-txt"``.

    Raises:
        ValueError: If *name* is empty.
    """
    if not name:
        raise ValueError("Cannot derive a tag from an empty file name")
    return _TAG_INVALID.sub("-", name.lower())


def path_tags(directory: str) -> list[str]:
    """Return one ``dir-`` prefixed discovery tag per directory segment.

    ``"."`` and empty segments are dropped; duplicates keep their first
    position.
    """
    tags: list[str] = []
    for segment in normalize_path(directory).split("/"):
        if not segment or segment == ".":
            continue
        tag = PATH_TAG_PREFIX + _TAG_INVALID.sub("-", segment.lower())
        if tag not in tags:
            tags.append(tag)
    return tags


def encode_path(path: str) -> str:
    """Encode a relative path as a single token.

    ``/`` becomes ``__`` and ``.`` becomes ``_dot_``, e.g.
    ``"data/moves/move.asm"`` -> ``"data__moves__move_dot_asm"``.

    Raises:
        ValueError: If the normalized path already contains a sentinel
            (``__`` or ``_dot_``) or an underscore directly before a
            ``/`` or ``.``, which would make decoding ambiguous.
    """
    normalized = normalize_path(path)
    if SEPARATOR_SENTINEL in normalized or DOT_SENTINEL in normalized:
        raise ValueError(f"Path contains an encoding sentinel: {path!r}")
    if "_/" in normalized or "_." in normalized:
        raise ValueError(
            f"Path has '_' before a separator or period, cannot encode unambiguously: {path!r}"
        )
    return normalized.replace("/", SEPARATOR_SENTINEL).replace(".", DOT_SENTINEL)


def decode_path(encoded: str) -> str:
    """Reverse ``encode_path``."""
    return _DECODE.sub(
        lambda m: "." if m.group(0) == DOT_SENTINEL else "/", encoded
    )
