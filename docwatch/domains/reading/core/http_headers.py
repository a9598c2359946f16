"""HTTP header parsing utilities."""

from __future__ import annotations

from datetime import UTC, datetime
from email.utils import parsedate_to_datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping

# content types that may be served under a different but equivalent label
_EQUIVALENT_TYPES: dict[str, frozenset[str]] = {
    "text/html": frozenset({"text/html", "application/xhtml+xml"}),
    "application/xhtml+xml": frozenset({"text/html", "application/xhtml+xml"}),
    "text/xml": frozenset({"text/xml", "application/xml"}),
    "application/xml": frozenset({"text/xml", "application/xml"}),
    "text/markdown": frozenset({"text/markdown", "text/x-markdown", "text/plain"}),
}


def parse_last_modified(header_value: str | None) -> datetime | None:
    """Parse HTTP Last-Modified header value to datetime.

    Handles RFC 2822 date format from HTTP headers.
    Returns None if header is missing or unparseable.
    """
    if not header_value:
        return None
    try:
        dt = parsedate_to_datetime(header_value)
        if dt.tzinfo is None:
            dt = dt.replace(tzinfo=UTC)
        return dt
    except (ValueError, TypeError):
        return None


def normalize_content_type(content_type: str | None) -> str | None:
    """Lower-case media type with parameters such as charset removed."""
    if not content_type:
        return None
    media_type = content_type.split(";")[0].strip().lower()
    return media_type or None


def extract_content_type(headers: Mapping[str, str]) -> str | None:
    """Extract the media type from a Content-Type header (case-insensitive)."""
    for key, value in headers.items():
        if key.lower() == "content-type":
            return normalize_content_type(value)
    return None


def extract_charset(headers: Mapping[str, str]) -> str | None:
    """Charset parameter of the Content-Type header, if any."""
    for key, value in headers.items():
        if key.lower() != "content-type":
            continue
        for parameter in value.split(";")[1:]:
            name, _, charset = parameter.partition("=")
            if name.strip().lower() == "charset" and charset.strip():
                return charset.strip().strip('"').lower()
    return None


def is_compatible_content_type(served: str | None, expected: str) -> bool:
    """Whether a server's Content-Type can be read as ``expected``.

    A missing header is accepted; servers frequently omit it for static files.
    """
    served_type = normalize_content_type(served)
    if served_type is None:
        return True
    expected_type = normalize_content_type(expected) or expected
    return served_type in _EQUIVALENT_TYPES.get(expected_type, frozenset({expected_type}))
