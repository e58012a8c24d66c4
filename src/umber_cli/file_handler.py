"""File handler module: path validation and encoding-aware decoding.

Source files arrive as raw bytes (from a tarball or a local checkout);
they are decoded here before hashing and posting.
"""

import logging
from pathlib import Path

from charset_normalizer import from_bytes

logger = logging.getLogger(__name__)

# =============================================================================
# Path Validation
# =============================================================================


def validate_source_dir(path_str: str) -> Path:
    """Validate and resolve a local source directory.

    Args:
        path_str: Path string to an existing directory.

    Returns:
        Resolved Path object.

    Raises:
        ValueError: If the path doesn't exist or is not a directory.
    """
    resolved = Path(path_str).expanduser().resolve()
    if not resolved.exists():
        raise ValueError(f"Source directory not found: {path_str}")
    if not resolved.is_dir():
        raise ValueError(f"Source path is not a directory: {path_str}")
    return resolved


# =============================================================================
# Decoding
# =============================================================================


def decode_content(raw: bytes) -> tuple[str, str]:
    """Decode file bytes with automatic encoding detection.

    Valid UTF-8 is taken as-is; otherwise charset-normalizer picks the
    encoding. Falls back to UTF-8 with replacement characters when
    detection fails.

    Args:
        raw: File content.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    if not raw:
        return ("", "utf-8")

    try:
        return (raw.decode("utf-8-sig"), "utf-8")
    except UnicodeDecodeError as exc:
        logger.debug("Not UTF-8 (%s), detecting encoding", exc.reason)

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)

