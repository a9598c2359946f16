"""Keyword matching over inserted and deleted difference spans."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docwatch.domains.diffing.core.snippets import extract_snippet
from docwatch.domains.diffing.core.types import DiffEvent, Match

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from docwatch.domains.diffing.core.types import DiffSpan, Keyword, Token

    Tokenizer = Callable[[str], list[Token]]


def find_phrase(haystack: Sequence[str], needle: Sequence[str]) -> int:
    """Index of the first contiguous occurrence of ``needle``, or -1."""
    size = len(needle)
    if size == 0 or size > len(haystack):
        return -1
    first = needle[0]
    needle_tuple = tuple(needle)
    for index in range(len(haystack) - size + 1):
        if haystack[index] == first and tuple(haystack[index : index + size]) == needle_tuple:
            return index
    return -1


def is_event_ignored(event: DiffEvent, ignore_inserted: bool, ignore_deleted: bool) -> bool:
    """Whether spans with this event are excluded from matching.

    Unchanged spans are always excluded; they carry no change to notify about.
    """
    if event is DiffEvent.UNCHANGED:
        return True
    if event is DiffEvent.INSERTED:
        return ignore_inserted
    return ignore_deleted


def match(
    spans: Sequence[DiffSpan],
    keywords: Sequence[Keyword],
    ignore_inserted: bool,
    ignore_deleted: bool,
    snippet_radius: int,
    old_text: str,
    new_text: str,
    *,
    tokenizer: Tokenizer,
) -> set[Match]:
    """Find keywords whose tokens appear contiguously inside a changed span.

    Each eligible span is matched on the raw text it covers in its owning
    snapshot (``new_text`` for inserted spans, ``old_text`` for deleted
    ones), tokenized once with ``tokenizer``, which must apply the same
    normalization the keywords were built with. The normalization used to
    detect the spans therefore never leaks into matching. A keyword matches
    when its token texts occur as a contiguous run of the span's token
    texts, and the snippet is cut around the raw range of the first
    occurrence.

    Keywords without tokens never match. Matches are collected into a set,
    which collapses repeated ``(keyword, event, text)`` detections.
    """
    matches: set[Match] = set()
    candidates = [keyword for keyword in keywords if not keyword.is_empty]
    if not candidates:
        return matches

    for span in spans:
        if is_event_ignored(span.event, ignore_inserted, ignore_deleted):
            continue

        source = new_text if span.event is DiffEvent.INSERTED else old_text
        span_tokens = tokenizer(source[span.offset : span.raw_end])
        if not span_tokens:
            continue
        span_texts = [token.text for token in span_tokens]
        vocabulary = set(span_texts)

        for keyword in candidates:
            phrase = keyword.texts
            # cheap rejection before the ordered scan
            if not vocabulary.issuperset(phrase):
                continue
            position = find_phrase(span_texts, phrase)
            if position < 0:
                continue

            start = span.offset + span_tokens[position].start
            end = span.offset + span_tokens[position + len(phrase) - 1].end
            snippet = extract_snippet(source, start, end, snippet_radius)
            matches.add(Match(keyword=keyword, event=span.event, text=span.text, snippet=snippet))

    return matches
