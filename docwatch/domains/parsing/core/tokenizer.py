"""Word tokenizer with optional case folding, stopword removal and stemming."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from docwatch.domains.diffing.core.types import Token
from docwatch.domains.parsing.core.language import detect_language
from docwatch.domains.parsing.core.stemming import get_stemmer
from docwatch.domains.parsing.core.stopwords import DEFAULT_LANGUAGE, get_stopwords

if TYPE_CHECKING:
    from snowballstemmer.basestemmer import BaseStemmer

WORD_PATTERN = re.compile(r"\w+")


@dataclass(frozen=True)
class TokenizeOptions:
    """Normalization applied to every token of a text."""

    ignore_case: bool = True
    filter_stopwords: bool = False
    enable_stemming: bool = False
    language_hint: str | None = None

    def with_language(self, language: str) -> TokenizeOptions:
        return replace(self, language_hint=language)


class Parser:
    """Splits text into normalized tokens anchored to the input text.

    A parser caches one stemmer per language and is therefore not safe to
    share between threads; the parser pool hands out one at a time.
    """

    def __init__(self) -> None:
        self._stemmers: dict[str, BaseStemmer] = {}

    def tokenize(self, text: str, options: TokenizeOptions | None = None) -> list[Token]:
        """Tokenize ``text`` into word tokens.

        Offsets always index the untouched input, in strictly increasing
        order. Stopwords are compared on the case-folded word and dropped
        entirely. Unsupported languages fall back to English stopwords and
        stemming.
        """
        options = options or TokenizeOptions()

        stopwords = None
        stemmer = None
        if options.filter_stopwords or options.enable_stemming:
            language = detect_language(text, options.language_hint)
            if options.filter_stopwords:
                stopwords = get_stopwords(language) or get_stopwords(DEFAULT_LANGUAGE)
            if options.enable_stemming:
                stemmer = self._stemmer_for(language)

        tokens: list[Token] = []
        for found in WORD_PATTERN.finditer(text):
            word = found.group()
            folded = word.casefold()
            if stopwords is not None and folded in stopwords:
                continue
            value = folded if options.ignore_case else word
            if stemmer is not None:
                value = stemmer.stemWord(value)
            tokens.append(Token(text=value, start=found.start(), end=found.end()))
        return tokens

    def _stemmer_for(self, language: str) -> BaseStemmer:
        key = language.lower()
        if key not in self._stemmers:
            stemmer = get_stemmer(key)
            if stemmer is None:
                key = DEFAULT_LANGUAGE
                stemmer = self._stemmers.get(key) or get_stemmer(key)
            self._stemmers[key] = stemmer
        return self._stemmers[key]
