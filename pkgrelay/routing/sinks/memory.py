"""In-memory topic sink: buffers messages for tests and local runs."""

from __future__ import annotations

import logging

from pkgrelay.models.events import NotificationMessage

logger = logging.getLogger(__name__)


class MemoryTopicSink:
    """Collects published messages in order.

    Call ``flush()`` to retrieve and clear the buffer.
    """

    def __init__(self, name: str = "memory") -> None:
        self._name = name
        self._messages: list[NotificationMessage] = []

    @property
    def sink_name(self) -> str:
        return self._name

    def publish(self, message: NotificationMessage) -> None:
        self._messages.append(message)
        logger.debug("MemoryTopicSink %s: buffered %d message(s)", self._name, len(self._messages))

    @property
    def messages(self) -> list[NotificationMessage]:
        return list(self._messages)

    @property
    def pending_count(self) -> int:
        return len(self._messages)

    def flush(self) -> list[NotificationMessage]:
        """Return and clear all buffered messages."""
        messages = list(self._messages)
        self._messages.clear()
        return messages
