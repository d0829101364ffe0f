"""Event router: resolves an inbound event into a backend call and issues it.

For every event the router runs, strictly in order:

1. rule lookup by ``(source, type)``
2. unroutable events are dropped and reported
3. query parameters are resolved from ``detail`` (missing paths omitted)
4. path parameters are resolved (a missing derived value aborts dispatch)
5. the HTTP call is issued
6. the outcome is recorded and returned

Events are independent of one another.  A failure routing one event never
touches the registry or any other event, and nothing here retries.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from pkgrelay.core.backend import BackendCallError, BackendClient
from pkgrelay.core.hasher import canonical_json, compute_dispatch_key
from pkgrelay.core.path_template import render_path
from pkgrelay.core.registry import RuleNotFoundError, RuleRegistry
from pkgrelay.errors import RelayError
from pkgrelay.models.events import (
    BackendRequest,
    DispatchOutcome,
    DispatchStatus,
    InboundEvent,
)
from pkgrelay.models.rules import DispatchRule, derived_path, is_derived

if TYPE_CHECKING:
    from pkgrelay.core.event_bus import LocalEventBus

logger = logging.getLogger(__name__)


class MissingPathParameterError(RelayError, LookupError):
    """Raised when a derived path parameter is absent from the event detail."""

    def __init__(self, rule_name: str, field_path: str) -> None:
        super().__init__(
            f"Rule {rule_name!r}: path parameter {field_path!r} missing from event detail"
        )
        self.rule_name = rule_name
        self.field_path = field_path


class _Missing:
    """Sentinel for a dotted path that does not resolve."""

    _instance: _Missing | None = None

    def __new__(cls) -> _Missing:
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING = _Missing()


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


def resolve_field(detail: Any, dotted_path: str) -> Any:
    """Walk *dotted_path* through nested mappings and sequences.

    Returns ``MISSING`` when any segment is absent.  Explicit ``None``
    values count as missing.

    >>> resolve_field({"a": {"b": [10, 20]}}, "a.b.1")
    20
    """
    current = detail
    for segment in dotted_path.split("."):
        if isinstance(current, Mapping):
            if segment not in current:
                return MISSING
            current = current[segment]
        elif isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
            try:
                current = current[int(segment)]
            except (ValueError, IndexError):
                return MISSING
        else:
            return MISSING
    return MISSING if current is None else current


def stringify(value: Any) -> str:
    """Render a resolved value for use in a URL.

    Strings pass through; everything else becomes canonical JSON, so
    ``{"a": 1}`` becomes ``{"a":1}`` and ``True`` becomes ``true``.
    """
    if isinstance(value, str):
        return value
    return canonical_json(value)


def resolve_query(rule: DispatchRule, detail: Mapping[str, Any]) -> dict[str, str]:
    """Resolve the rule's query mapping; unresolvable fields are omitted."""
    query: dict[str, str] = {}
    for param, field_path in rule.query_mapping.items():
        value = resolve_field(detail, field_path)
        if value is MISSING:
            logger.debug(
                "Rule %s: query field %s absent, omitting %s", rule.name, field_path, param
            )
            continue
        query[param] = stringify(value)
    return query


def resolve_path(rule: DispatchRule, detail: Mapping[str, Any]) -> str:
    """Resolve every path parameter and render the rule's template.

    Raises ``MissingPathParameterError`` if any derived value is absent;
    no partial path is ever produced.
    """
    values: list[str] = []
    for raw in rule.path_param_values:
        if is_derived(raw):
            field_path = derived_path(raw)
            value = resolve_field(detail, field_path)
            if value is MISSING:
                raise MissingPathParameterError(rule.name, field_path)
            values.append(stringify(value))
        else:
            values.append(raw)
    return render_path(rule.path_template, values)


def resolve_request(rule: DispatchRule, event: InboundEvent) -> BackendRequest:
    """Build the outbound request for *event* under *rule*."""
    query = resolve_query(rule, event.detail)
    path = resolve_path(rule, event.detail)
    return BackendRequest(method=rule.method, path=path, query=query)


# ---------------------------------------------------------------------------
# Router
# ---------------------------------------------------------------------------


class EventRouter:
    """Routes inbound events to the backend through the rule registry.

    Parameters
    ----------
    registry:
        The frozen rule registry.  Only read, never written.
    backend:
        Client used to issue resolved calls.
    """

    def __init__(self, registry: RuleRegistry, backend: BackendClient) -> None:
        self._registry = registry
        self._backend = backend

    @property
    def registry(self) -> RuleRegistry:
        return self._registry

    def route(self, event: InboundEvent) -> DispatchOutcome:
        """Route a single event and report what happened.

        Never raises for undecodable details, unroutable events, missing
        path parameters, or backend failures; those are returned as the
        outcome status.
        """
        try:
            dispatch_key = compute_dispatch_key(event.source, event.type, event.detail)
        except (TypeError, ValueError) as exc:
            logger.warning(
                "Event %s/%s dropped: detail is not JSON: %s", event.source, event.type, exc
            )
            return DispatchOutcome(
                status=DispatchStatus.INVALID_EVENT,
                source=event.source,
                type=event.type,
                error=f"Event detail is not JSON-serializable: {exc}",
            )

        base = {"source": event.source, "type": event.type, "dispatch_key": dispatch_key}

        try:
            rule = self._registry.lookup(event.source, event.type)
        except RuleNotFoundError as exc:
            logger.warning("Unroutable event dropped: %s", exc)
            return DispatchOutcome(status=DispatchStatus.UNROUTABLE, error=str(exc), **base)

        try:
            request = resolve_request(rule, event)
        except MissingPathParameterError as exc:
            logger.error("Event %s not dispatched: %s", base["dispatch_key"], exc)
            return DispatchOutcome(
                status=DispatchStatus.MISSING_PATH_PARAMETER,
                rule_name=rule.name,
                error=str(exc),
                **base,
            )

        try:
            response = self._backend.call(request)
        except BackendCallError as exc:
            logger.error("Rule %s: backend call failed: %s", rule.name, exc)
            return DispatchOutcome(
                status=DispatchStatus.BACKEND_FAILURE,
                rule_name=rule.name,
                request=request,
                response=exc.response,
                error=str(exc),
                **base,
            )

        logger.info(
            "Dispatched %s/%s via %s: %s %s -> %d",
            event.source,
            event.type,
            rule.name,
            request.method.value,
            request.path,
            response.status_code,
        )
        return DispatchOutcome(
            status=DispatchStatus.DISPATCHED,
            rule_name=rule.name,
            request=request,
            response=response,
            **base,
        )

    def route_raw(self, payload: bytes | str | Mapping[str, Any]) -> DispatchOutcome:
        """Validate a raw bus payload, then route it."""
        try:
            if isinstance(payload, Mapping):
                event = InboundEvent.model_validate(payload)
            else:
                event = InboundEvent.model_validate_json(payload)
        except ValidationError as exc:
            logger.warning("Invalid event payload dropped: %s", exc)
            return DispatchOutcome(status=DispatchStatus.INVALID_EVENT, error=str(exc))
        return self.route(event)

    def route_many(self, events: Iterable[InboundEvent]) -> list[DispatchOutcome]:
        """Route events one by one; each outcome is independent."""
        return [self.route(event) for event in events]

    def subscribe(self, bus: LocalEventBus) -> None:
        """Attach this router to *bus* as an event handler."""
        bus.subscribe(self.route)
