"""Event, backend call and notification models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from pkgrelay.models._frozen import EMPTY, FrozenHeaderMap, FrozenStrMap
from pkgrelay.models.rules import HttpMethod


class InboundEvent(BaseModel):
    """An event delivered by the bus: ``{source, type, detail}``.

    The EventBridge spelling ``detail-type`` is accepted for ``type``.
    """

    model_config = ConfigDict(frozen=True)

    source: str
    type: str = Field(validation_alias=AliasChoices("type", "detail-type", "detail_type"))
    detail: dict[str, Any] = {}


class BackendRequest(BaseModel):
    """A fully resolved outbound call: no placeholders left in ``path``."""

    model_config = ConfigDict(frozen=True)

    method: HttpMethod
    path: str
    query: FrozenStrMap = EMPTY


class BackendResponse(BaseModel):
    """The captured result of a backend call."""

    model_config = ConfigDict(frozen=True)

    status_code: int
    status_text: str = ""
    headers: FrozenHeaderMap = EMPTY
    body: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    def header(self, name: str) -> str | None:
        """Return the first value of a header, matched case-insensitively."""
        wanted = name.lower()
        for key, values in self.headers.items():
            if key.lower() == wanted and values:
                return values[0]
        return None


class NotificationMessage(BaseModel):
    """The message published to the notification topic."""

    model_config = ConfigDict(frozen=True)

    date: str | None = None
    response_body: str
    status_code: int
    status_text: str


class DispatchStatus(str, Enum):
    """Terminal result of routing one event."""

    DISPATCHED = "dispatched"
    UNROUTABLE = "unroutable"
    INVALID_EVENT = "invalid_event"
    MISSING_PATH_PARAMETER = "missing_path_parameter"
    BACKEND_FAILURE = "backend_failure"


class DispatchOutcome(BaseModel):
    """What happened to a single event in the router."""

    model_config = ConfigDict(frozen=True)

    status: DispatchStatus
    source: str = ""
    type: str = ""
    dispatch_key: str = ""  # content hash of the event, stable across redeliveries
    rule_name: str | None = None
    request: BackendRequest | None = None
    response: BackendResponse | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == DispatchStatus.DISPATCHED
