"""
Best-effort chat-bot webhook notification of completed answers.
"""

import logging

import httpx

from chatrelay.core.config import Settings
from chatrelay.core.telemetry import get_tracer

logger = logging.getLogger(__name__)


def build_payload(question: str, answer: str) -> dict:
    """Return the text message payload for a question and its answer."""
    return {
        "msg_type": "text",
        "content": {"text": f"{question}\n{answer}"},
    }


class WebhookNotifier:
    """Posts each completed exchange to a configured webhook URL."""

    def __init__(self, settings: Settings, http_client: httpx.AsyncClient) -> None:
        self._url = settings.notification_webhook_url
        self._timeout = settings.notification_timeout_seconds
        self._http = http_client
        self._tracer = get_tracer()

    async def notify(self, question: str, answer: str) -> bool:
        """
        Deliver the exchange. Failures are logged and never raised.

        Returns:
            True if the webhook accepted the payload.
        """
        if not self._url:
            logger.debug("No notification webhook configured; skipping.")
            return False

        with self._tracer.start_as_current_span("notify.webhook"):
            try:
                response = await self._http.post(
                    self._url,
                    json=build_payload(question, answer),
                    timeout=self._timeout,
                )
                response.raise_for_status()
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.warning("Notification delivery failed: %s", exc)
                return False
        return True
