"""Getter workflow models: a two-step state machine (call, then publish)."""

from __future__ import annotations

from enum import Enum
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pkgrelay.models.events import BackendResponse, NotificationMessage
from pkgrelay.models.rules import DispatchRule


class WorkflowState(str, Enum):
    """States of a getter workflow run."""

    START = "start"
    CALL_BACKEND = "call_backend"
    PUBLISH_NOTIFICATION = "publish_notification"
    COMPLETED = "completed"
    FAILED = "failed"


# COMPLETED and FAILED are terminal.  There is no retry edge: a re-run is a
# new WorkflowRun.
VALID_WORKFLOW_TRANSITIONS: dict[WorkflowState, set[WorkflowState]] = {
    WorkflowState.START: {WorkflowState.CALL_BACKEND},
    WorkflowState.CALL_BACKEND: {
        WorkflowState.PUBLISH_NOTIFICATION,
        WorkflowState.FAILED,
    },
    WorkflowState.PUBLISH_NOTIFICATION: {
        WorkflowState.COMPLETED,
        WorkflowState.FAILED,
    },
    WorkflowState.COMPLETED: set(),
    WorkflowState.FAILED: set(),
}

TERMINAL_STATES: frozenset[WorkflowState] = frozenset(
    {WorkflowState.COMPLETED, WorkflowState.FAILED}
)


class CallBackend(BaseModel):
    """Step 1: invoke the rule's HTTP call and capture the response."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["call_backend"] = "call_backend"
    rule: DispatchRule


class PublishNotification(BaseModel):
    """Step 2: format the captured response and publish it."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["publish_notification"] = "publish_notification"
    # Fields of the CallBackend result the message is built from.
    result_binding: tuple[str, ...] = ("status_code", "status_text", "headers", "body")

    @field_validator("result_binding")
    @classmethod
    def _known_fields(cls, binding: tuple[str, ...]) -> tuple[str, ...]:
        unknown = [field for field in binding if field not in BackendResponse.model_fields]
        if unknown:
            raise ValueError(f"result_binding names unknown result field(s): {unknown}")
        return binding


WorkflowStep = Annotated[
    Union[CallBackend, PublishNotification], Field(discriminator="kind")
]


class Workflow(BaseModel):
    """A built getter workflow: exactly ``CallBackend`` then ``PublishNotification``."""

    model_config = ConfigDict(frozen=True)

    id: str
    steps: tuple[WorkflowStep, ...]

    @field_validator("steps")
    @classmethod
    def _two_ordered_steps(cls, steps: tuple) -> tuple:
        if (
            len(steps) != 2
            or not isinstance(steps[0], CallBackend)
            or not isinstance(steps[1], PublishNotification)
        ):
            raise ValueError("a workflow is exactly CallBackend then PublishNotification")
        return steps

    @property
    def call(self) -> CallBackend:
        return self.steps[0]

    @property
    def publish(self) -> PublishNotification:
        return self.steps[1]

    @property
    def rule(self) -> DispatchRule:
        return self.call.rule


class WorkflowTransition(BaseModel):
    """One recorded state change of a workflow run."""

    model_config = ConfigDict(frozen=True)

    from_state: WorkflowState
    to_state: WorkflowState
    reason: str = ""


class WorkflowRun(BaseModel):
    """The result of executing a workflow once."""

    model_config = ConfigDict(frozen=True)

    workflow_id: str
    state: WorkflowState
    transitions: tuple[WorkflowTransition, ...] = ()
    response: BackendResponse | None = None
    message: NotificationMessage | None = None
    published_to: tuple[str, ...] = ()
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.state == WorkflowState.COMPLETED
