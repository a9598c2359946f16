"""Snippet extraction for presenting matches in context."""

from __future__ import annotations

ELLIPSIS = "..."
DEFAULT_SNIPPET_RADIUS = 50


def extract_snippet(
    text: str,
    start: int,
    end: int,
    radius: int = DEFAULT_SNIPPET_RADIUS,
) -> str:
    """Return ``text[start:end]`` with ``radius`` characters of context.

    The window is clamped to the bounds of ``text``. An ellipsis is
    prepended when text before the window was cut off and appended when text
    after it was cut off, so a phrase at the very start or end of the text
    never gets a marker on that side.
    """
    if radius < 0:
        msg = "radius must be >= 0"
        raise ValueError(msg)

    length = len(text)
    start = max(0, min(start, length))
    end = max(start, min(end, length))

    left = max(0, start - radius)
    right = min(length, end + radius)

    snippet = text[left:right]
    if left > 0:
        snippet = ELLIPSIS + snippet
    if right < length:
        snippet = snippet + ELLIPSIS
    return snippet
