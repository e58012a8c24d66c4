"""GitHub repository source.

Downloads the repository tarball through the GitHub REST API and reads
it in memory; nothing is extracted to disk.
"""

from __future__ import annotations

import io
import logging
import tarfile
from collections.abc import Iterable
from urllib.parse import urlparse

import requests

from .. import __version__
from ..errors import SourceError
from ..importer.codec import normalize_path
from ..importer.models import SourceFile
from .filters import is_ignored

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


def parse_repo_url(repo_url: str) -> tuple[str, str]:
    """Return ``(owner, repo)`` from a GitHub repository URL.

    Raises:
        SourceError: If the URL has no owner and repository segments.
    """
    parsed = urlparse(repo_url.strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise SourceError(f"Invalid GitHub repository URL: {repo_url!r}")

    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) < 2:
        raise SourceError(f"Invalid GitHub repository URL: {repo_url!r}")

    owner, repo = parts[0], parts[1]
    if repo.endswith(".git"):
        repo = repo[: -len(".git")]
    if not repo:
        raise SourceError(f"Invalid GitHub repository URL: {repo_url!r}")
    return owner, repo


def tarball_url(owner: str, repo: str, ref: str | None = None) -> str:
    """API URL of the repository tarball (default branch when *ref* is unset)."""
    url = f"{GITHUB_API}/repos/{owner}/{repo}/tarball"
    return f"{url}/{ref}" if ref else url


def _strip_top_level(name: str) -> str:
    # GitHub tarballs wrap everything in "<owner>-<repo>-<sha>/".
    _, _, rest = normalize_path(name).partition("/")
    return rest


def read_tarball(
    data: bytes, ignored_paths: Iterable[str] = ()
) -> list[SourceFile]:
    """Read the regular files of a gzipped repository tarball.

    Args:
        data: Tarball bytes.
        ignored_paths: Ignore entries (see ``is_ignored``).

    Returns:
        Files sorted by relative path.

    Raises:
        SourceError: If the archive cannot be read.
    """
    ignored = list(ignored_paths)
    files: list[SourceFile] = []
    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as archive:
            for member in archive:
                if not member.isfile():
                    continue
                relative = _strip_top_level(member.name)
                if not relative:
                    continue
                if is_ignored(relative, ignored):
                    logger.debug("Ignoring %s", relative)
                    continue
                handle = archive.extractfile(member)
                if handle is None:
                    continue
                files.append(
                    SourceFile(relative_path=relative, raw_bytes=handle.read())
                )
    except tarfile.TarError as exc:
        raise SourceError(f"Could not read repository archive: {exc}") from exc

    files.sort(key=lambda f: f.relative_path)
    return files


def fetch_repo_files(
    repo_url: str,
    ignored_paths: Iterable[str] = (),
    ref: str | None = None,
    token: str | None = None,
    timeout: float = 60.0,
) -> list[SourceFile]:
    """Download a GitHub repository and return its files.

    Args:
        repo_url: Repository URL, e.g. ``https://github.com/owner/repo``.
        ignored_paths: Ignore entries (see ``is_ignored``).
        ref: Branch, tag, or commit; the default branch when ``None``.
        token: Optional GitHub token for private repositories and rate limits.
        timeout: Read timeout in seconds.

    Returns:
        Files sorted by relative path.

    Raises:
        SourceError: On an invalid URL, a failed download, or a bad archive.
    """
    owner, repo = parse_repo_url(repo_url)
    url = tarball_url(owner, repo, ref)
    headers = {
        "Accept": "application/vnd.github+json",
        "User-Agent": f"umber-cli/{__version__}",
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"

    logger.info("Fetching repository from: %s", repo_url)
    try:
        response = requests.get(url, headers=headers, timeout=(10, timeout))
        response.raise_for_status()
    except requests.HTTPError as exc:
        status = exc.response.status_code if exc.response is not None else None
        raise SourceError(
            f"Repository download failed (HTTP {status}): {url}"
        ) from exc
    except requests.RequestException as exc:
        raise SourceError(f"Repository download failed: {exc}") from exc

    files = read_tarball(response.content, ignored_paths)
    logger.info(
        "Repository downloaded: %d files (%d bytes)",
        len(files),
        len(response.content),
    )
    return files
