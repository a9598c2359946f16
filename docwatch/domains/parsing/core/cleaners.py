"""Composable text cleaners applied to document text before tokenizing."""

from __future__ import annotations

import re
import unicodedata
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable

_NEWLINES = re.compile(r"[\r\n\f\v]+")
_REPEATED_SPACES = re.compile(r"[ \t\u00a0]{2,}")
_SPECIAL_CHARS = re.compile(r"[^\w\s.,;:!?'\"()\-]")


def diacritic_cleaner(text: str) -> str:
    """Strip combining marks: ``"Café"`` becomes ``"Cafe"``."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def newline_cleaner(text: str) -> str:
    return _NEWLINES.sub(" ", text)


def repeated_spaces_cleaner(text: str) -> str:
    return _REPEATED_SPACES.sub(" ", text)


def special_chars_cleaner(text: str) -> str:
    """Replace symbols that carry no words with a space."""
    return _SPECIAL_CHARS.sub(" ", text)


def and_cleaner(*cleaners: Callable[[str], str]) -> Callable[[str], str]:
    """Chain cleaners left to right into a single cleaner."""

    def clean(text: str) -> str:
        for cleaner in cleaners:
            text = cleaner(text)
        return text

    return clean
