"""pkgrelay data models: all Pydantic v2, all frozen (immutable)."""

from pkgrelay.models.config import (
    DEFAULT_GETTERS,
    DEFAULT_RULES,
    DuplicatePolicy,
    GetterSpec,
    RegistryConfig,
    RuleSpec,
    load_registry_config,
)
from pkgrelay.models.events import (
    BackendRequest,
    BackendResponse,
    DispatchOutcome,
    DispatchStatus,
    InboundEvent,
    NotificationMessage,
)
from pkgrelay.models.rules import DERIVED_PREFIX, DispatchRule, HttpMethod
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

__all__ = [
    # rules
    "DERIVED_PREFIX",
    "DispatchRule",
    "HttpMethod",
    # config
    "DEFAULT_GETTERS",
    "DEFAULT_RULES",
    "DuplicatePolicy",
    "GetterSpec",
    "RegistryConfig",
    "RuleSpec",
    "load_registry_config",
    # events
    "BackendRequest",
    "BackendResponse",
    "DispatchOutcome",
    "DispatchStatus",
    "InboundEvent",
    "NotificationMessage",
    # workflow
    "TERMINAL_STATES",
    "VALID_WORKFLOW_TRANSITIONS",
    "CallBackend",
    "PublishNotification",
    "Workflow",
    "WorkflowRun",
    "WorkflowState",
    "WorkflowTransition",
]
