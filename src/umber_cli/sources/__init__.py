"""File sources: where the files of an import pass come from.

- ``github`` -- repository tarball downloaded from the GitHub API.
- ``local``  -- a directory on disk (a local checkout).

Both return ``SourceFile`` objects with normalized relative paths, sorted
by path, with ignored paths already removed.
"""

from .filters import is_ignored
from .github import fetch_repo_files, parse_repo_url
from .local import list_local_files

__all__ = [
    "fetch_repo_files",
    "is_ignored",
    "list_local_files",
    "parse_repo_url",
]
