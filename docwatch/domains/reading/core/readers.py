"""Content readers that turn a fetched document body into plain text.

Readers are registered per media type when this module is imported.
Each one returns whitespace-normalized text ready for tokenizing.
"""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from bs4 import BeautifulSoup

from docwatch.domains.parsing.core.cleaners import (
    and_cleaner,
    newline_cleaner,
    repeated_spaces_cleaner,
)
from docwatch.domains.reading.core.http_headers import normalize_content_type
from docwatch.errors import UnsupportedContentTypeError

if TYPE_CHECKING:
    from collections.abc import Callable

_whitespace_cleaner = and_cleaner(newline_cleaner, repeated_spaces_cleaner)

_MARKUP_DROPPED_TAGS = ("script", "style", "noscript", "template")
_BLOCK_TAGS = ("br", "p", "div", "li", "h1", "h2", "h3", "h4", "h5", "h6", "tr", "title")

_MD_CODE_FENCE = re.compile(r"^\s*(```|~~~).*$", re.MULTILINE)
_MD_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]*\)")
_MD_LINK = re.compile(r"\[([^\]]*)\]\([^)]*\)")
_MD_HEADING = re.compile(r"^\s{0,3}#{1,6}\s*", re.MULTILINE)
_MD_QUOTE = re.compile(r"^\s{0,3}>\s?", re.MULTILINE)
_MD_LIST_MARKER = re.compile(r"^\s*(?:[-*+]|\d+[.)])\s+", re.MULTILINE)
_MD_EMPHASIS = re.compile(r"(\*{1,3}|_{1,3}|~~|`+)")
_MD_RULE = re.compile(r"^\s*(?:[-*_]\s*){3,}$", re.MULTILINE)

_READERS: dict[str, Callable[[str], str]] = {}


def register_reader(*content_types: str) -> Callable[[Callable[[str], str]], Callable[[str], str]]:
    """Register the decorated function as the reader of ``content_types``."""

    def decorator(func: Callable[[str], str]) -> Callable[[str], str]:
        for content_type in content_types:
            _READERS[content_type] = func
        return func

    return decorator


def get_reader(content_type: str) -> Callable[[str], str] | None:
    """Reader for ``content_type``, or None when none is registered."""
    media_type = normalize_content_type(content_type)
    if media_type is None:
        return None
    return _READERS.get(media_type)


def supported_content_types() -> list[str]:
    return sorted(_READERS)


def is_supported_content_type(content_type: str) -> bool:
    return get_reader(content_type) is not None


def read_content(raw: str, content_type: str) -> str:
    """Extract plain text from ``raw`` using the reader for ``content_type``.

    Raises UnsupportedContentTypeError when no reader is registered.
    """
    reader = get_reader(content_type)
    if reader is None:
        raise UnsupportedContentTypeError(content_type)
    return reader(raw)


@register_reader("text/plain")
def read_plain_text(raw: str) -> str:
    return _whitespace_cleaner(raw).strip()


@register_reader(
    "text/html",
    "application/xhtml+xml",
    "text/xml",
    "application/xml",
    "application/atom+xml",
    "application/rss+xml",
)
def read_markup(raw: str) -> str:
    """Visible text of an HTML or XML document.

    Scripts and styles are dropped; block elements are separated by a space
    so that words from adjacent paragraphs never run together.
    """
    soup = BeautifulSoup(raw, "html.parser")
    for tag in soup(list(_MARKUP_DROPPED_TAGS)):
        tag.decompose()
    for tag in soup.find_all(list(_BLOCK_TAGS)):
        tag.insert_after(" ")
    text = soup.get_text(separator=" ")
    return _whitespace_cleaner(text).strip()


@register_reader("application/json")
def read_json(raw: str) -> str:
    """Keys and scalar values of a JSON document in document order."""
    collected: list[str] = []
    _collect_json(json.loads(raw), collected)
    return _whitespace_cleaner(" ".join(collected)).strip()


def _collect_json(node: Any, collected: list[str]) -> None:
    if isinstance(node, dict):
        for key, value in node.items():
            collected.append(str(key))
            _collect_json(value, collected)
    elif isinstance(node, list):
        for child in node:
            _collect_json(child, collected)
    elif node is None:
        return
    elif isinstance(node, bool):
        collected.append("true" if node else "false")
    else:
        collected.append(str(node))


@register_reader("text/markdown", "text/x-markdown")
def read_markdown(raw: str) -> str:
    """Markdown text with formatting markers removed."""
    text = _MD_CODE_FENCE.sub(" ", raw)
    text = _MD_RULE.sub(" ", text)
    text = _MD_IMAGE.sub(r"\1", text)
    text = _MD_LINK.sub(r"\1", text)
    text = _MD_HEADING.sub("", text)
    text = _MD_QUOTE.sub("", text)
    text = _MD_LIST_MARKER.sub("", text)
    text = _MD_EMPHASIS.sub("", text)
    return _whitespace_cleaner(text).strip()
