"""Diffing domain core -- pure difference detection and keyword matching."""

from __future__ import annotations

from docwatch.domains.diffing.core.alignment import (
    align,
    cleanup_semantic,
    merge_edits,
    shift_to_word_boundaries,
)
from docwatch.domains.diffing.core.difference_detection import (
    Projection,
    detect,
    project_tokens,
)
from docwatch.domains.diffing.core.difference_matching import find_phrase, match
from docwatch.domains.diffing.core.keywords import build_keyword, build_keywords
from docwatch.domains.diffing.core.snippets import extract_snippet
from docwatch.domains.diffing.core.types import (
    DiffEvent,
    DiffSpan,
    Keyword,
    Match,
    Token,
    validate_tokens,
)

__all__ = [
    # alignment
    "align",
    "cleanup_semantic",
    "merge_edits",
    "shift_to_word_boundaries",
    # difference_detection
    "Projection",
    "detect",
    "project_tokens",
    # difference_matching
    "find_phrase",
    "match",
    # keywords
    "build_keyword",
    "build_keywords",
    # snippets
    "extract_snippet",
    # types
    "DiffEvent",
    "DiffSpan",
    "Keyword",
    "Match",
    "Token",
    "validate_tokens",
]
