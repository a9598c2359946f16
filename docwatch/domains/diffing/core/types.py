"""Value types shared by difference detection and matching."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from docwatch.errors import MalformedInputError

if TYPE_CHECKING:
    from collections.abc import Sequence


class DiffEvent(StrEnum):
    """Edit classification of a span of text."""

    INSERTED = "inserted"
    DELETED = "deleted"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class Token:
    """A normalized token and its ``[start, end)`` range in the original text."""

    text: str
    start: int
    end: int


@dataclass(frozen=True, slots=True)
class DiffSpan:
    """A maximal run of consecutively diffed text sharing one event.

    ``offset`` is measured in the old snapshot for deleted and unchanged
    spans and in the new snapshot for inserted spans. ``end`` is the raw
    position just past the span in the same snapshot; ``text`` is normalized
    and may differ in length from ``snapshot[offset:end]``.
    """

    event: DiffEvent
    text: str
    offset: int
    end: int | None = field(default=None, compare=False)

    @property
    def raw_end(self) -> int:
        """``end``, or the offset plus the text length for spans built by hand."""
        return self.offset + len(self.text) if self.end is None else self.end


@dataclass(frozen=True, slots=True)
class Keyword:
    """A subscriber phrase normalized the same way as document text."""

    original_input: str
    tokens: tuple[Token, ...] = ()

    @property
    def texts(self) -> tuple[str, ...]:
        return tuple(token.text for token in self.tokens)

    @property
    def is_empty(self) -> bool:
        return not self.tokens

    def __str__(self) -> str:
        return " ".join(self.texts)


@dataclass(frozen=True, slots=True)
class Match:
    """A keyword found inside an inserted or deleted span.

    Equality and hashing cover ``(keyword, event, text)`` only, so collecting
    matches into a set deduplicates repeated detections of the same change.
    """

    keyword: Keyword
    event: DiffEvent
    text: str
    snippet: str = field(default="", compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Notification record for this match."""
        return {
            "keyword": self.keyword.original_input,
            "event": self.event.value,
            "text": self.text,
            "snippet": self.snippet,
        }


def validate_tokens(tokens: Sequence[Token], text: str) -> None:
    """Check that tokens are ordered, non-overlapping and inside ``text``.

    Raises MalformedInputError on the first violation found.
    """
    previous_end = 0
    text_length = len(text)
    for index, token in enumerate(tokens):
        if token.start < previous_end:
            msg = (
                f"token {index} starts at {token.start}, "
                f"before the previous token ended at {previous_end}"
            )
            raise MalformedInputError(msg)
        if token.end <= token.start:
            msg = f"token {index} has an empty or inverted range [{token.start}, {token.end})"
            raise MalformedInputError(msg)
        if token.end > text_length:
            msg = f"token {index} ends at {token.end}, past the text length {text_length}"
            raise MalformedInputError(msg)
        previous_end = token.end
