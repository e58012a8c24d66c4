"""Local directory source."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from pathlib import Path

from ..errors import SourceError
from ..file_handler import validate_source_dir
from ..importer.models import SourceFile
from .filters import is_ignored

logger = logging.getLogger(__name__)

# VCS metadata is never imported.
_ALWAYS_IGNORED = (".git", ".hg", ".svn")


def list_local_files(
    root: str | Path, ignored_paths: Iterable[str] = ()
) -> list[SourceFile]:
    """Read every regular file under *root*.

    Args:
        root: Directory of a local checkout.
        ignored_paths: Ignore entries (see ``is_ignored``).

    Returns:
        Files sorted by relative path.

    Raises:
        SourceError: If *root* is not a readable directory.
    """
    try:
        base = validate_source_dir(str(root))
    except ValueError as exc:
        raise SourceError(str(exc)) from exc

    ignored = [*_ALWAYS_IGNORED, *ignored_paths]
    files: list[SourceFile] = []
    for path in sorted(base.rglob("*")):
        if not path.is_file() or path.is_symlink():
            continue
        relative = path.relative_to(base).as_posix()
        if is_ignored(relative, ignored):
            logger.debug("Ignoring %s", relative)
            continue
        try:
            raw = path.read_bytes()
        except OSError as exc:
            raise SourceError(f"Cannot read {relative}: {exc}") from exc
        files.append(SourceFile(relative_path=relative, raw_bytes=raw))

    files.sort(key=lambda f: f.relative_path)
    logger.info("Found %d files in %s", len(files), base)
    return files
