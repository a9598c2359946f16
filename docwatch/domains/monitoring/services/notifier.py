"""Delivery of match and timeout notifications to subscribed clients."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests
import structlog

from docwatch.utils.retry import retry_with_logging

if TYPE_CHECKING:
    from collections.abc import Iterable

    from docwatch.domains.diffing.core.types import Match
    from docwatch.models.subscription import Subscription

logger = structlog.get_logger(__name__)

STATUS_OK = "ok"
STATUS_TIMEOUT = "timeout"


def build_payload(
    subscription: Subscription,
    status: str,
    matches: Iterable[Match] = (),
) -> dict[str, Any]:
    """JSON body sent to a client.

    Match records are ordered by event, keyword and text so that identical
    sets of matches always produce identical bodies.
    """
    ordered = sorted(
        matches,
        key=lambda m: (m.event.value, m.keyword.original_input, m.text),
    )
    return {
        "status": status,
        "url": subscription.document_url,
        "contentType": subscription.document_content_type,
        "token": subscription.token,
        "diffs": [match.to_dict() for match in ordered],
    }


class NotificationSender:
    """POSTs notification payloads to subscriber URLs."""

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
        self._post = retry_with_logging(
            max_attempts=max_retries + 1,
            min_wait=min_wait,
            max_wait=max_wait,
        )(self._post_once)

    def _post_once(self, url: str, payload: dict[str, Any], content_type: str) -> requests.Response:
        response = self.session.post(
            url,
            json=payload,
            headers={"Content-Type": content_type},
            timeout=self.timeout,
        )
        response.raise_for_status()
        return response

    def send(self, subscription: Subscription, payload: dict[str, Any]) -> bool:
        """Deliver ``payload``. Returns False once every attempt has failed."""
        try:
            self._post(subscription.client_url, payload, subscription.client_content_type)
        except requests.RequestException as e:
            logger.error(
                "notification_failed",
                client_url=subscription.client_url,
                url=subscription.document_url,
                status=payload.get("status"),
                error=str(e),
            )
            return False
        logger.info(
            "notification_sent",
            client_url=subscription.client_url,
            url=subscription.document_url,
            status=payload.get("status"),
            diffs=len(payload.get("diffs", [])),
        )
        return True

    def notify_matches(self, subscription: Subscription, matches: Iterable[Match]) -> bool:
        """Send the matches found for one subscription in one cycle."""
        return self.send(subscription, build_payload(subscription, STATUS_OK, matches))

    def notify_timeout(self, subscription: Subscription) -> bool:
        """Tell a client its document stopped being monitored."""
        return self.send(subscription, build_payload(subscription, STATUS_TIMEOUT))

    def close(self) -> None:
        self.session.close()
