"""Keyword construction backed by the parser pool."""

from __future__ import annotations

import threading
from collections import OrderedDict
from contextlib import nullcontext
from typing import TYPE_CHECKING

import structlog

from docwatch.domains.diffing.core.keywords import build_keyword

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docwatch.domains.diffing.core.types import Keyword
    from docwatch.domains.parsing.core.tokenizer import Parser, TokenizeOptions
    from docwatch.domains.parsing.services.parser_pool import ParserPool

logger = structlog.get_logger(__name__)

DEFAULT_MAX_ENTRIES = 4096


class KeywordBuilder:
    """Builds keywords once per ``(phrase, options)`` and reuses them.

    The cache keeps at most ``max_entries`` keywords and drops the least
    recently used ones first. Phrases of removed subscriptions can be
    dropped early with ``discard``.
    """

    def __init__(
        self,
        pool: ParserPool,
        acquire_timeout: float | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        if max_entries < 1:
            msg = "max_entries must be at least 1"
            raise ValueError(msg)
        self.pool = pool
        self.acquire_timeout = acquire_timeout
        self.max_entries = max_entries
        self._cache: OrderedDict[tuple[str, TokenizeOptions], Keyword] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def build(
        self,
        phrases: Iterable[str],
        options: TokenizeOptions,
        parser: Parser | None = None,
    ) -> list[Keyword]:
        """Keywords for every non-blank phrase, in input order.

        Callers that already hold a parser pass it in so that building never
        waits on the pool a second time.
        """
        wanted = [phrase for phrase in phrases if phrase.strip()]
        found: dict[str, Keyword] = {}
        with self._lock:
            for phrase in wanted:
                keyword = self._cache.get((phrase, options))
                if keyword is not None:
                    self._cache.move_to_end((phrase, options))
                    found[phrase] = keyword
        missing = [phrase for phrase in dict.fromkeys(wanted) if phrase not in found]

        if missing:
            scope = (
                nullcontext(parser)
                if parser is not None
                else self.pool.acquire(self.acquire_timeout)
            )
            with scope as active:
                built = {
                    phrase: build_keyword(phrase, options, active.tokenize) for phrase in missing
                }
            with self._lock:
                for phrase, keyword in built.items():
                    self._cache[(phrase, options)] = keyword
                    self._cache.move_to_end((phrase, options))
                evicted = 0
                while len(self._cache) > self.max_entries:
                    self._cache.popitem(last=False)
                    evicted += 1
            found.update(built)
            logger.debug("keywords_built", count=len(built), evicted=evicted)

        return [found[phrase] for phrase in wanted]

    def discard(self, phrases: Iterable[str]) -> int:
        """Drop cached keywords of ``phrases`` under every option set. Returns entries removed."""
        dropped = set(phrases)
        with self._lock:
            stale = [key for key in self._cache if key[0] in dropped]
            for key in stale:
                del self._cache[key]
        return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()
