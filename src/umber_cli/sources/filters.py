"""Ignore rules shared by the file sources."""

from __future__ import annotations

import fnmatch
from collections.abc import Iterable

from ..importer.codec import normalize_path


def is_ignored(relative_path: str, ignored_paths: Iterable[str]) -> bool:
    """Return True if *relative_path* is excluded by *ignored_paths*.

    An entry matches when it equals the path, names a directory the path
    lies under, or matches the path as an ``fnmatch`` glob.
    """
    path = normalize_path(relative_path)
    for entry in ignored_paths:
        pattern = normalize_path(entry)
        if not pattern:
            continue
        if path == pattern or path.startswith(pattern + "/"):
            return True
        if fnmatch.fnmatchcase(path, pattern):
            return True
    return False
