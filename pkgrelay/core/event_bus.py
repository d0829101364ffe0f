"""In-process event bus: validates bus payloads and fans them out to handlers.

Stands in for the external event bus when running locally: payloads are
parsed into ``InboundEvent`` models and delivered to every subscribed
handler.  Delivery to one handler is isolated from the others.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from typing import Any

from pydantic import ValidationError

from pkgrelay.core.hasher import canonical_json_bytes
from pkgrelay.errors import RelayError
from pkgrelay.models.events import InboundEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[InboundEvent], Any]


class EventValidationError(RelayError, ValueError):
    """Raised when a bus payload is not a valid event."""


class LocalEventBus:
    """Validates and delivers events to subscribed handlers."""

    def __init__(self) -> None:
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        """Subscribe *handler* to every published event."""
        self._handlers.append(handler)

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def publish(self, event: InboundEvent) -> list[Any]:
        """Deliver *event* to every handler, returning their results.

        A handler that raises is logged and skipped; its slot in the result
        list holds the exception.
        """
        results: list[Any] = []
        for handler in self._handlers:
            try:
                results.append(handler(event))
            except Exception as exc:  # noqa: BLE001
                logger.exception(
                    "Handler %r failed for event %s/%s", handler, event.source, event.type
                )
                results.append(exc)
        return results

    def publish_raw(self, raw_json: bytes | str) -> list[Any]:
        """Parse a raw payload and publish it."""
        return self.publish(self.receive(raw_json))

    @staticmethod
    def receive(raw_json: bytes | str) -> InboundEvent:
        """Deserialize and validate a raw JSON event."""
        if isinstance(raw_json, bytes):
            raw_json = raw_json.decode("utf-8")

        try:
            data = json.loads(raw_json)
        except json.JSONDecodeError as exc:
            raise EventValidationError(f"Invalid JSON: {exc}") from exc

        if not isinstance(data, dict):
            raise EventValidationError(
                f"Event must be a JSON object, got {type(data).__name__}"
            )

        try:
            return InboundEvent.model_validate(data)
        except ValidationError as exc:
            raise EventValidationError(f"Event validation failed: {exc}") from exc

    @staticmethod
    def serialize(event: InboundEvent) -> bytes:
        """Serialize an event to canonical JSON bytes."""
        return canonical_json_bytes(event.model_dump(mode="json"))
