"""SinkDispatcher: publishes a notification to ALL configured sinks.

Every message dispatched through this module is fanned out to every
registered sink.  Sink failures are logged but do not prevent delivery to
the remaining sinks; only a total failure is raised.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from pkgrelay.errors import RelayError
from pkgrelay.models.events import NotificationMessage

if TYPE_CHECKING:
    from pkgrelay.routing.sinks import NotificationSink

logger = logging.getLogger(__name__)


class SinkPublishError(RelayError):
    """Raised when every sink fails to publish a message."""


class SinkDispatcher:
    """Routes notification messages to all configured sinks.

    Usage
    -----
    >>> dispatcher = SinkDispatcher()
    >>> dispatcher.register_sink(MemoryTopicSink())
    >>> dispatcher.dispatch(message)
    """

    def __init__(self) -> None:
        self._sinks: list[NotificationSink] = []

    def register_sink(self, sink: NotificationSink) -> None:
        """Register a sink.  Registering the same instance twice is a no-op."""
        if sink not in self._sinks:
            self._sinks.append(sink)
            logger.info("Registered sink: %s", sink.sink_name)

    @property
    def registered_sinks(self) -> list[NotificationSink]:
        """Return a copy of the registered sink list."""
        return list(self._sinks)

    def dispatch(self, message: NotificationMessage) -> list[str]:
        """Publish *message* to every registered sink.

        Returns the names of the sinks that accepted it.

        Raises
        ------
        SinkPublishError
            If there are no sinks, or *all* sinks fail.
        """
        if not self._sinks:
            raise SinkPublishError("No notification sinks registered")

        succeeded: list[str] = []
        errors: list[tuple[str, Exception]] = []

        for sink in self._sinks:
            try:
                sink.publish(message)
                succeeded.append(sink.sink_name)
            except Exception as exc:  # noqa: BLE001
                logger.error("Sink %s failed to publish: %s", sink.sink_name, exc)
                errors.append((sink.sink_name, exc))

        if errors and not succeeded:
            raise SinkPublishError(
                f"All {len(errors)} sinks failed: "
                + "; ".join(f"{name}: {exc}" for name, exc in errors)
            )

        if errors:
            logger.warning(
                "Notification: %d/%d sinks succeeded, %d failed",
                len(succeeded),
                len(self._sinks),
                len(errors),
            )

        return succeeded
