"""Snowball stemmer lookup per language."""

from __future__ import annotations

from typing import TYPE_CHECKING

import snowballstemmer

if TYPE_CHECKING:
    from snowballstemmer.basestemmer import BaseStemmer

# ISO 639-1 code -> Snowball algorithm name
STEMMER_ALGORITHMS: dict[str, str] = {
    "da": "danish",
    "de": "german",
    "en": "english",
    "es": "spanish",
    "fi": "finnish",
    "fr": "french",
    "hu": "hungarian",
    "it": "italian",
    "nl": "dutch",
    "no": "norwegian",
    "pt": "portuguese",
    "ro": "romanian",
    "ru": "russian",
    "sv": "swedish",
    "tr": "turkish",
}


def get_stemmer(language: str) -> BaseStemmer | None:
    """Build a stemmer for ``language``, or None when it has no Snowball algorithm.

    Stemmer instances keep internal buffers and are not thread-safe; each
    parser caches its own.
    """
    algorithm = STEMMER_ALGORITHMS.get(language.lower())
    if algorithm is None:
        return None
    return snowballstemmer.stemmer(algorithm)
