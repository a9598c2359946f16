"""Difference detection between two tokenized snapshots of one document."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from docwatch.domains.diffing.core.alignment import align, cleanup_semantic
from docwatch.domains.diffing.core.types import DiffEvent, DiffSpan, validate_tokens

if TYPE_CHECKING:
    from collections.abc import Sequence

    from docwatch.domains.diffing.core.alignment import Edit
    from docwatch.domains.diffing.core.types import Token

TOKEN_SEPARATOR = " "


@dataclass(frozen=True)
class Projection:
    """Normalized text of a snapshot plus raw bounds for every character.

    ``text`` is the token texts joined by single spaces. ``offsets[i]`` is
    the position in the raw snapshot that projected character ``i`` came
    from and ``ends[i]`` is the raw position just past it; a separator maps
    to the end of the token before it on both tables. The last character of
    a token always ends where the raw token ends, so a run of whole tokens
    covers their full raw text even after stemming shortened them.
    """

    text: str
    offsets: tuple[int, ...]
    ends: tuple[int, ...] = ()

    def raw_offset(self, index: int) -> int:
        return self.offsets[index]

    def raw_end(self, index: int) -> int:
        return self.ends[index]


def project_tokens(tokens: Sequence[Token]) -> Projection:
    """Build the normalized projection of a token sequence."""
    parts: list[str] = []
    offsets: list[int] = []
    ends: list[int] = []
    for index, token in enumerate(tokens):
        if index:
            parts.append(TOKEN_SEPARATOR)
            offsets.append(tokens[index - 1].end)
            ends.append(tokens[index - 1].end)
        parts.append(token.text)
        # stemming and case folding can change a token's length, so clamp
        # positions past the raw token onto its last character
        last = token.end - 1
        size = len(token.text)
        for k in range(size):
            position = min(token.start + k, last)
            offsets.append(position)
            ends.append(token.end if k == size - 1 else position + 1)
    return Projection(text="".join(parts), offsets=tuple(offsets), ends=tuple(ends))


def detect(
    old_tokens: Sequence[Token],
    old_text: str,
    new_tokens: Sequence[Token],
    new_text: str,
) -> list[DiffSpan]:
    """Compute the ordered difference spans between two snapshots.

    Both token sequences are validated against their raw texts, projected
    into normalized text, aligned, semantically cleaned up and walked left to
    right. Deleted and unchanged spans carry offsets into ``old_text``;
    inserted spans carry offsets into ``new_text``.

    Raises MalformedInputError when a token sequence is not strictly
    increasing or points outside its text.
    """
    validate_tokens(old_tokens, old_text)
    validate_tokens(new_tokens, new_text)

    old_projection = project_tokens(old_tokens)
    new_projection = project_tokens(new_tokens)

    edits = align(old_projection.text, new_projection.text)
    cleanup_semantic(edits)
    return spans_from_edits(edits, old_projection, new_projection)


def spans_from_edits(
    edits: list[Edit],
    old_projection: Projection,
    new_projection: Projection,
) -> list[DiffSpan]:
    """Walk an edit script with one cursor per snapshot and emit spans.

    Unchanged runs advance both cursors, deletions the old one and
    insertions the new one. Adjacent edits with the same event are merged so
    every span is maximal. Each span records the raw range it covers in its
    owning snapshot.
    """
    spans: list[DiffSpan] = []
    old_cursor = 0
    new_cursor = 0

    for event, text in edits:
        if not text:
            continue

        if event is DiffEvent.INSERTED:
            projection, cursor = new_projection, new_cursor
        else:
            projection, cursor = old_projection, old_cursor
        end = projection.raw_end(cursor + len(text) - 1)

        if spans and spans[-1].event is event:
            previous = spans[-1]
            spans[-1] = DiffSpan(event, previous.text + text, previous.offset, end)
        else:
            spans.append(DiffSpan(event, text, projection.raw_offset(cursor), end))

        if event is DiffEvent.INSERTED:
            new_cursor += len(text)
        elif event is DiffEvent.DELETED:
            old_cursor += len(text)
        else:
            old_cursor += len(text)
            new_cursor += len(text)

    return spans
