"""Webhook topic sink: publishes notifications to an HTTP topic endpoint.

The message is POSTed as JSON in the topic's wire spelling
(``date``, ``responseBody``, ``statusCode``, ``statusText``).  Publishing
carries an explicit timeout and fails rather than hangs.
"""

from __future__ import annotations

import logging

import httpx

from pkgrelay.models.events import NotificationMessage

logger = logging.getLogger(__name__)


def wire_payload(message: NotificationMessage) -> dict:
    """Return the topic wire form of a message."""
    return {
        "date": message.date,
        "responseBody": message.response_body,
        "statusCode": message.status_code,
        "statusText": message.status_text,
    }


class WebhookTopicSink:
    """POSTs notifications to a topic URL.

    Parameters
    ----------
    url:
        The topic's publish endpoint.
    timeout_seconds:
        Publish timeout.  Must be positive.
    transport:
        Optional ``httpx`` transport, used by tests.
    """

    def __init__(
        self,
        url: str,
        timeout_seconds: float,
        *,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if timeout_seconds <= 0:
            raise ValueError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self._url = url
        self._client = httpx.Client(timeout=timeout_seconds, transport=transport)

    @property
    def sink_name(self) -> str:
        return "webhook"

    def publish(self, message: NotificationMessage) -> None:
        response = self._client.post(self._url, json=wire_payload(message))
        response.raise_for_status()
        logger.debug("WebhookTopicSink: published to %s (%d)", self._url, response.status_code)

    def close(self) -> None:
        self._client.close()
