"""Exception types shared across docwatch domains."""

from __future__ import annotations


class MalformedInputError(ValueError):
    """Token offsets are not strictly increasing or fall outside their text."""


class ParserPoolExhaustedError(TimeoutError):
    """No parser became available before the acquire timeout elapsed."""


class CycleTimeoutError(TimeoutError):
    """A detection cycle ran past its deadline and was abandoned."""


class UnsupportedContentTypeError(ValueError):
    """No reader is registered for the requested content type."""

    def __init__(self, content_type: str) -> None:
        super().__init__(f"Unsupported content type: {content_type}")
        self.content_type = content_type


class DocumentFetchError(ConnectionError):
    """The monitored document could not be retrieved."""

    def __init__(self, url: str, status_code: int) -> None:
        super().__init__(f"Fetching {url} failed with HTTP {status_code}")
        self.url = url
        self.status_code = status_code


class DocumentNotReadableError(ValueError):
    """A document cannot be fetched or read when a watch is requested."""

    def __init__(self, url: str, content_type: str) -> None:
        super().__init__(f"Document {url} is not readable as {content_type}")
        self.url = url
        self.content_type = content_type
