"""Content fingerprinting.

A fingerprint is the SHA-256 hex digest of line-ending-normalized text. It
is the only signal used to decide whether a file changed since its last
import, so the same file checked out with CRLF or LF endings must hash
identically.
"""

from __future__ import annotations

import hashlib


def normalize_line_endings(text: str) -> str:
    """Convert ``\\r\\n`` and lone ``\\r`` line endings to ``\\n``."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def content_hash(text: str) -> str:
    """Return the SHA-256 hex digest of *text* encoded as UTF-8.

    Callers normalize line endings first (``normalize_line_endings``).
    """
    return hashlib.sha256(text.encode("utf-8")).hexdigest()
