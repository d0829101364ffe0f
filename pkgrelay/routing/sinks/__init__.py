"""Notification sink protocol for pkgrelay.

All sinks implement the ``NotificationSink`` protocol: a ``sink_name``
property and a ``publish(message)`` method.  The ``SinkDispatcher`` calls
``publish`` on every registered sink for every message.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pkgrelay.models.events import NotificationMessage


@runtime_checkable
class NotificationSink(Protocol):
    """Protocol that every notification sink must implement.

    Attributes
    ----------
    sink_name : str
        A unique human-readable identifier for this sink instance
        (e.g. ``"memory"``, ``"local_file"``, ``"webhook"``).
    """

    @property
    def sink_name(self) -> str:
        """Return the unique name of this sink."""
        ...

    def publish(self, message: NotificationMessage) -> None:
        """Deliver a formatted notification.

        Implementations raise on delivery failure; the dispatcher logs the
        failure and continues with the remaining sinks.
        """
        ...
