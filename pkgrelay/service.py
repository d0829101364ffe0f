"""Relay service: wires registry, backend, router, workflows and sinks together.

The service is the one place where configuration turns into live
components.  Everything it builds is either immutable (the registry, the
workflows) or owns its own I/O (the backend client, the sinks), so one
service instance can handle any number of independent events.
"""

from __future__ import annotations

import logging

import httpx

from pkgrelay.config import RelaySettings
from pkgrelay.core.backend import BackendClient
from pkgrelay.core.event_bus import LocalEventBus
from pkgrelay.core.registry import RuleRegistry
from pkgrelay.core.router import EventRouter
from pkgrelay.core.workflow import WorkflowBuilder, WorkflowExecutor
from pkgrelay.models.config import RegistryConfig
from pkgrelay.models.events import DispatchOutcome, InboundEvent
from pkgrelay.models.workflow import Workflow, WorkflowRun
from pkgrelay.routing.dispatcher import SinkDispatcher
from pkgrelay.routing.sinks import NotificationSink
from pkgrelay.routing.sinks.local_file import LocalFileSink
from pkgrelay.routing.sinks.webhook import WebhookTopicSink

logger = logging.getLogger(__name__)


class RelayService:
    """Event relay for the package engine.

    Getter events run their two-step workflow (call, then publish); every
    other routable event goes straight through the router.

    Parameters
    ----------
    settings:
        Process settings.  Uses environment defaults if not provided.
    registry_config:
        Rule table.  Defaults to ``settings.registry_config()``.
    sinks:
        Notification sinks.  Defaults to a ``LocalFileSink`` plus a
        ``WebhookTopicSink`` when a webhook URL is configured.
    transport:
        Optional ``httpx`` transport for the backend client (tests).
    """

    def __init__(
        self,
        settings: RelaySettings | None = None,
        *,
        registry_config: RegistryConfig | None = None,
        sinks: list[NotificationSink] | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.settings = settings or RelaySettings()
        self.registry = RuleRegistry.from_config(
            registry_config or self.settings.registry_config()
        )
        self.backend = BackendClient.from_settings(self.settings, transport=transport)

        self.dispatcher = SinkDispatcher()
        for sink in sinks if sinks is not None else self._default_sinks():
            self.dispatcher.register_sink(sink)

        self.router = EventRouter(self.registry, self.backend)
        self.builder = WorkflowBuilder(self.registry)
        self.executor = WorkflowExecutor(self.backend, self.dispatcher)
        self.workflows: dict[str, Workflow] = self.builder.build_all()
        self._workflows_by_key = {wf.rule.key: wf for wf in self.workflows.values()}

    def _default_sinks(self) -> list[NotificationSink]:
        sinks: list[NotificationSink] = [LocalFileSink(self.settings.notification_dir)]
        if self.settings.notify_webhook_url:
            sinks.append(
                WebhookTopicSink(
                    self.settings.notify_webhook_url,
                    self.settings.notify_timeout_seconds,
                )
            )
        return sinks

    def handle(self, event: InboundEvent) -> DispatchOutcome | WorkflowRun:
        """Process one event: getter workflow if one matches, else route it."""
        workflow = self._workflows_by_key.get((event.source, event.type))
        if workflow is not None:
            return self.executor.run(workflow, event)
        return self.router.route(event)

    def run_getter(self, name: str) -> WorkflowRun:
        """Run the workflow for a getter by name (``"health"``, ``"info"``, ...)."""
        return self.executor.run(self.builder.build_for_getter(name))

    def attach(self, bus: LocalEventBus) -> None:
        """Subscribe this service to *bus*."""
        bus.subscribe(self.handle)

    def close(self) -> None:
        self.backend.close()
        for sink in self.dispatcher.registered_sinks:
            close = getattr(sink, "close", None)
            if close is not None:
                close()

    def __enter__(self) -> RelayService:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
