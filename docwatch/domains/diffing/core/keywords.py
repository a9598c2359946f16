"""Keyword construction from subscriber phrases."""

from __future__ import annotations

from typing import TYPE_CHECKING

from docwatch.domains.diffing.core.types import Keyword

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from docwatch.domains.diffing.core.types import Token
    from docwatch.domains.parsing.core.tokenizer import TokenizeOptions


def build_keyword(
    text: str,
    options: TokenizeOptions,
    tokenize: Callable[[str, TokenizeOptions], list[Token]],
) -> Keyword:
    """Normalize a phrase with the same pipeline used for document text.

    A phrase made only of stopwords or punctuation produces a keyword with no
    tokens; such keywords never match anything.
    """
    return Keyword(original_input=text, tokens=tuple(tokenize(text, options)))


def build_keywords(
    phrases: Iterable[str],
    options: TokenizeOptions,
    tokenize: Callable[[str, TokenizeOptions], list[Token]],
) -> list[Keyword]:
    """Build keywords for several phrases, skipping blank ones."""
    return [build_keyword(phrase, options, tokenize) for phrase in phrases if phrase.strip()]
