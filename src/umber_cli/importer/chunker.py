"""Split oversized text into post-sized pieces.

Each chunk is filled greedily up to ``max_length`` characters. The cut
point is the last newline, else the end of the last sentence (``". "``,
period kept with its sentence), else the last space, inside the window.
A natural cut is only taken when it lies past the middle of the window;
otherwise the text is cut hard at ``max_length`` so a window without
usable boundaries does not produce a run of tiny chunks.
"""

from __future__ import annotations

DEFAULT_MAX_LENGTH = 32768


def _find_cut(text: str, max_length: int) -> int:
    """Return the index at which the next chunk of *text* ends.

    Every candidate keeps the chunk within ``max_length`` characters and
    every returned index is at least 1.
    """
    half = max_length / 2

    newline = text.rfind("\n", 0, max_length + 1)
    if newline > half:
        return newline

    sentence = text.rfind(". ", 0, max_length + 1)
    if sentence > half:
        return sentence + 1

    space = text.rfind(" ", 0, max_length + 1)
    if space > half:
        return space

    return max_length


def chunk_text(text: str, max_length: int = DEFAULT_MAX_LENGTH) -> list[str]:
    """Split *text* into chunks of at most *max_length* characters.

    Text that already fits is returned unchanged as a single chunk.
    Otherwise every chunk is stripped of surrounding whitespace, so
    joining the chunks reproduces the text minus the whitespace at the
    cut points.

    Args:
        text: Text to split.
        max_length: Maximum characters per chunk.

    Returns:
        Non-empty list of chunks.

    Raises:
        ValueError: If *max_length* is smaller than 1.
    """
    if max_length < 1:
        raise ValueError(f"max_length must be >= 1, got {max_length}")

    if len(text) <= max_length:
        return [text]

    chunks: list[str] = []
    remaining = text

    while remaining:
        if len(remaining) <= max_length:
            chunks.append(remaining)
            break

        cut = _find_cut(remaining, max_length)
        piece = remaining[:cut].strip()
        if piece:
            chunks.append(piece)
        # cut >= 1, so remaining strictly shrinks each iteration
        remaining = remaining[cut:].strip()

    return chunks or [""]
