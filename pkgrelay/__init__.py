"""pkgrelay: event-driven dispatch and getter workflows for the Quilt package engine.

  - Rules bind ``(event_source, event_type)`` to a backend HTTP call shape
  - Path templates are validated against their parameter bindings at startup
  - The router resolves query and path values from event detail and calls
    the backend, failing closed on missing path parameters
  - Getter workflows call the backend, then publish the result to every
    notification sink
"""

__version__ = "0.1.0"
__description__ = "Event-driven dispatch to the Quilt package engine"

from pkgrelay.core.registry import RuleRegistry
from pkgrelay.core.router import EventRouter
from pkgrelay.core.workflow import WorkflowBuilder, WorkflowExecutor
from pkgrelay.service import RelayService

__all__ = [
    "EventRouter",
    "RelayService",
    "RuleRegistry",
    "WorkflowBuilder",
    "WorkflowExecutor",
    "__version__",
]
