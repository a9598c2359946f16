"""Bounded pool of parsers shared by concurrent detection cycles."""

from __future__ import annotations

import queue
import threading
from contextlib import contextmanager
from typing import TYPE_CHECKING

import structlog

from docwatch.domains.parsing.core.tokenizer import Parser
from docwatch.errors import ParserPoolExhaustedError

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

logger = structlog.get_logger(__name__)


class ParserPool:
    """Fixed number of parsers handed out one at a time.

    Every parser is built up front. ``acquire`` blocks until a parser is free
    or the timeout elapses and always returns the parser to the pool when the
    ``with`` block exits, including when it exits with an exception.
    """

    def __init__(self, size: int, factory: Callable[[], Parser] = Parser) -> None:
        if size < 1:
            msg = "Parser pool size must be at least 1"
            raise ValueError(msg)
        self.size = size
        self._available: queue.Queue[Parser] = queue.Queue(maxsize=size)
        self._closed = threading.Event()
        for _ in range(size):
            self._available.put_nowait(factory())
        logger.info("parser_pool_created", size=size)

    @property
    def available(self) -> int:
        return self._available.qsize()

    @property
    def closed(self) -> bool:
        return self._closed.is_set()

    @contextmanager
    def acquire(self, timeout: float | None = None) -> Iterator[Parser]:
        """Borrow a parser for the duration of a ``with`` block.

        Raises ParserPoolExhaustedError when no parser is returned within
        ``timeout`` seconds, or immediately when the pool is closed.
        """
        if self.closed:
            msg = "Parser pool is closed"
            raise ParserPoolExhaustedError(msg)
        try:
            parser = self._available.get(timeout=timeout)
        except queue.Empty as e:
            msg = f"No parser available after {timeout}s"
            raise ParserPoolExhaustedError(msg) from e

        try:
            yield parser
        finally:
            if not self.closed:
                self._available.put_nowait(parser)

    def close(self) -> None:
        """Drain the pool; later acquires fail."""
        self._closed.set()
        drained = 0
        while True:
            try:
                self._available.get_nowait()
            except queue.Empty:
                break
            drained += 1
        logger.info("parser_pool_closed", drained=drained, size=self.size)
