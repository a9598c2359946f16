"""HTTP fetching of monitored documents."""

from __future__ import annotations

from datetime import UTC, datetime

import requests
import structlog

from docwatch.domains.reading.core.http_headers import (
    extract_charset,
    extract_content_type,
    is_compatible_content_type,
    parse_last_modified,
)
from docwatch.domains.reading.core.readers import get_reader, read_content
from docwatch.errors import DocumentFetchError, UnsupportedContentTypeError
from docwatch.models.snapshot import Snapshot
from docwatch.utils.retry import retry_with_logging

logger = structlog.get_logger(__name__)


class DocumentFetcher:
    """Downloads documents and turns them into snapshots of their text."""

    USER_AGENT = "docwatch/0.1 (+document change monitor)"

    def __init__(
        self,
        timeout: float = 30.0,
        max_retries: int = 2,
        min_wait: float = 2,
        max_wait: float = 10,
        session: requests.Session | None = None,
    ) -> None:
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": self.USER_AGENT})
        self._get = retry_with_logging(
            max_attempts=max_retries + 1,
            min_wait=min_wait,
            max_wait=max_wait,
        )(self._get_once)

    def _get_once(self, url: str) -> requests.Response:
        response = self.session.get(url, timeout=self.timeout)
        if response.status_code == 429 or response.status_code >= 500:
            raise DocumentFetchError(url, response.status_code)
        return response

    def fetch(self, url: str, content_type: str) -> Snapshot:
        """Fetch ``url`` and read it as ``content_type``.

        Raises UnsupportedContentTypeError before any request when no reader
        is registered, DocumentFetchError on a non-success status, and lets
        requests transport errors propagate once retries are exhausted.
        """
        if get_reader(content_type) is None:
            raise UnsupportedContentTypeError(content_type)

        response = self._get(url)
        if not response.ok:
            raise DocumentFetchError(url, response.status_code)

        served_type = extract_content_type(response.headers)
        if not is_compatible_content_type(served_type, content_type):
            logger.warning(
                "content_type_mismatch",
                url=url,
                expected=content_type,
                served=served_type,
            )

        # requests assumes ISO-8859-1 for text/* without a charset parameter
        response.encoding = extract_charset(response.headers) or response.apparent_encoding
        text = read_content(response.text, content_type)
        snapshot = Snapshot(
            url=url,
            content_type=content_type,
            raw_text=text,
            fetched_at=datetime.now(UTC),
            http_last_modified=parse_last_modified(response.headers.get("Last-Modified")),
        )
        logger.info(
            "document_fetched",
            url=url,
            content_type=content_type,
            status_code=response.status_code,
            encoding=response.encoding,
            length=len(text),
        )
        return snapshot

    def is_readable(self, url: str, content_type: str) -> bool:
        """Whether ``url`` can currently be fetched and read as ``content_type``."""
        try:
            self.fetch(url, content_type)
        except UnsupportedContentTypeError:
            return False
        except (DocumentFetchError, requests.RequestException, ValueError) as e:
            logger.warning("document_not_readable", url=url, error=str(e))
            return False
        return True

    def close(self) -> None:
        self.session.close()
