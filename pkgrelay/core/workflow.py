"""Getter workflows: call the backend, then publish the result.

``WorkflowBuilder`` turns each getter rule into an immutable two-step
``Workflow``.  ``WorkflowExecutor`` drives one run through the state
machine::

    START -> CALL_BACKEND -> PUBLISH_NOTIFICATION -> COMPLETED
                         \\-> FAILED              \\-> FAILED

Every transition is checked against ``VALID_WORKFLOW_TRANSITIONS`` and
recorded on the run.  A failed backend call ends the run in FAILED without
publishing.  Nothing is retried; a re-run is a new run.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING

from pkgrelay.core.backend import BackendCallError, BackendClient
from pkgrelay.core.path_template import RuleDefinitionError
from pkgrelay.core.registry import RuleNotFoundError, RuleRegistry
from pkgrelay.core.router import MissingPathParameterError, resolve_request
from pkgrelay.errors import RelayError
from pkgrelay.models.events import BackendResponse, InboundEvent, NotificationMessage
from pkgrelay.models.workflow import (
    TERMINAL_STATES,
    VALID_WORKFLOW_TRANSITIONS,
    CallBackend,
    PublishNotification,
    Workflow,
    WorkflowRun,
    WorkflowState,
    WorkflowTransition,
)
from pkgrelay.routing.dispatcher import SinkDispatcher, SinkPublishError
from pkgrelay.routing.sinks._formatting import MalformedResultError, format_notification

if TYPE_CHECKING:
    from pkgrelay.core.event_bus import LocalEventBus

logger = logging.getLogger(__name__)


class InvalidTransitionError(RelayError, RuntimeError):
    """Raised when a requested workflow transition is not valid."""


def workflow_id_for(event_type: str) -> str:
    """Workflow ids derive from the rule's event type."""
    return f"{event_type}Workflow"


def bind_result(response: BackendResponse, binding: tuple[str, ...]) -> dict[str, object]:
    """Project the ``CallBackend`` result onto the fields the publish step consumes.

    Fields left out of *binding* are absent from the result, so
    ``format_notification`` reports any required one as missing.
    """
    return {field: getattr(response, field) for field in binding}


class WorkflowBuilder:
    """Builds getter workflows from the rules in a registry.

    Parameters
    ----------
    registry:
        The frozen rule registry.
    """

    def __init__(self, registry: RuleRegistry) -> None:
        self._registry = registry

    def build(self, event_type: str, event_source: str | None = None) -> Workflow:
        """Build the workflow for the getter bound to *event_type*.

        Raises
        ------
        RuleNotFoundError
            If no rule is registered for the event.
        RuleDefinitionError
            If the rule is not a getter (it does not publish its result).
        """
        source = event_source or self._registry.config.event_source
        rule = self._registry.lookup(source, event_type)
        if not rule.notify:
            raise RuleDefinitionError(
                f"Rule {rule.name!r} is not a getter; it has no notification step",
                rule_name=rule.name,
            )
        return Workflow(
            id=workflow_id_for(rule.event_type),
            steps=(CallBackend(rule=rule), PublishNotification()),
        )

    def build_for_getter(self, name: str) -> Workflow:
        """Build a workflow by getter name (``"health"``, ``"info"``, ...)."""
        for rule in self._registry.getters():
            if rule.name == name:
                return self.build(rule.event_type, rule.event_source)
        raise RuleNotFoundError(self._registry.config.event_source, name)

    def build_all(self) -> dict[str, Workflow]:
        """Build one workflow per registered getter, keyed by workflow id."""
        workflows: dict[str, Workflow] = {}
        for rule in self._registry.getters():
            workflow = self.build(rule.event_type, rule.event_source)
            workflows[workflow.id] = workflow
        return workflows


class _RunTrail:
    """Mutable state of one in-flight run; frozen into a ``WorkflowRun`` at the end."""

    def __init__(self, workflow_id: str) -> None:
        self.workflow_id = workflow_id
        self.state = WorkflowState.START
        self.transitions: list[WorkflowTransition] = []

    def advance(self, target: WorkflowState, reason: str = "") -> None:
        allowed = VALID_WORKFLOW_TRANSITIONS.get(self.state, set())
        if target not in allowed:
            raise InvalidTransitionError(
                f"Workflow {self.workflow_id}: cannot transition from "
                f"{self.state.value} to {target.value}. "
                f"Allowed: {sorted(s.value for s in allowed)}"
            )
        self.transitions.append(
            WorkflowTransition(from_state=self.state, to_state=target, reason=reason)
        )
        logger.debug(
            "Workflow %s: %s -> %s %s", self.workflow_id, self.state.value, target.value, reason
        )
        self.state = target

    def finish(
        self,
        *,
        response: BackendResponse | None = None,
        message: NotificationMessage | None = None,
        published_to: list[str] | None = None,
        error: str | None = None,
    ) -> WorkflowRun:
        if self.state not in TERMINAL_STATES:
            raise InvalidTransitionError(
                f"Workflow {self.workflow_id} finished in non-terminal state {self.state.value}"
            )
        return WorkflowRun(
            workflow_id=self.workflow_id,
            state=self.state,
            transitions=tuple(self.transitions),
            response=response,
            message=message,
            published_to=tuple(published_to or ()),
            error=error,
        )


class WorkflowExecutor:
    """Executes getter workflows against the backend and the sinks.

    Parameters
    ----------
    backend:
        Client used for the ``CallBackend`` step.
    dispatcher:
        Sink dispatcher used for the ``PublishNotification`` step.
    """

    def __init__(self, backend: BackendClient, dispatcher: SinkDispatcher) -> None:
        self._backend = backend
        self._dispatcher = dispatcher

    def run(self, workflow: Workflow, event: InboundEvent | None = None) -> WorkflowRun:
        """Run *workflow* once and return the terminal run record.

        *event* supplies the detail used to resolve the rule; getters
        triggered without an event resolve against an empty detail.

        Cancellation (``KeyboardInterrupt`` and other ``BaseException``)
        during the backend call propagates immediately; the notification
        step never runs.
        """
        rule = workflow.rule
        event = event or InboundEvent(source=rule.event_source, type=rule.event_type)
        trail = _RunTrail(workflow.id)

        trail.advance(WorkflowState.CALL_BACKEND)
        try:
            request = resolve_request(rule, event)
        except (MissingPathParameterError, TypeError, ValueError) as exc:
            logger.error("Workflow %s could not resolve its request: %s", workflow.id, exc)
            trail.advance(WorkflowState.FAILED, reason="request could not be resolved")
            return trail.finish(error=str(exc))
        try:
            response = self._backend.call(request)
        except BackendCallError as exc:
            logger.error("Workflow %s failed calling backend: %s", workflow.id, exc)
            trail.advance(WorkflowState.FAILED, reason="backend call failed")
            return trail.finish(response=exc.response, error=str(exc))

        trail.advance(
            WorkflowState.PUBLISH_NOTIFICATION, reason=f"backend returned {response.status_code}"
        )
        try:
            message = format_notification(bind_result(response, workflow.publish.result_binding))
            published_to = self._dispatcher.dispatch(message)
        except (MalformedResultError, SinkPublishError) as exc:
            logger.error("Workflow %s failed publishing: %s", workflow.id, exc)
            trail.advance(WorkflowState.FAILED, reason="publish failed")
            return trail.finish(response=response, error=str(exc))

        trail.advance(WorkflowState.COMPLETED)
        logger.info(
            "Workflow %s completed: %d published to %s",
            workflow.id,
            response.status_code,
            ", ".join(published_to),
        )
        return trail.finish(response=response, message=message, published_to=published_to)

    def subscribe(self, bus: LocalEventBus, workflows: Mapping[str, Workflow]) -> None:
        """Run the matching workflow for every getter event published on *bus*.

        Events that match no workflow are ignored; the router reports them.
        """
        by_key = {workflow.rule.key: workflow for workflow in workflows.values()}

        def _handle(event: InboundEvent) -> WorkflowRun | None:
            workflow = by_key.get((event.source, event.type))
            if workflow is None:
                return None
            return self.run(workflow, event)

        bus.subscribe(_handle)
