"""Dispatch rule models: bindings from an event kind to a backend HTTP call."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from pkgrelay.models._frozen import EMPTY, FrozenStrMap

# Path parameter values starting with this prefix are read from the event
# detail ("$.bucket_name"); every other value is used literally.
DERIVED_PREFIX = "$."


class HttpMethod(str, Enum):
    """HTTP methods a rule may bind to."""

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class DispatchRule(BaseModel):
    """Binding from ``(event_source, event_type)`` to a backend call shape.

    Rules are built once at startup and never mutated afterwards.

    Examples
    --------
    >>> rule = DispatchRule(
    ...     name="CreatePackage",
    ...     event_source="quilt.pkg",
    ...     event_type="CreatePackage",
    ...     method=HttpMethod.POST,
    ...     path_template="/registries/{bucket}/packages",
    ...     path_param_values=("$.bucket_name",),
    ... )
    >>> rule.key
    ('quilt.pkg', 'CreatePackage')
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(min_length=1)
    event_source: str = Field(min_length=1)
    event_type: str = Field(min_length=1)
    method: HttpMethod = HttpMethod.GET
    path_template: str
    query_mapping: FrozenStrMap = EMPTY  # backend query param -> dotted detail path
    path_param_values: tuple[str, ...] = ()
    notify: bool = False  # getter whose result is published to the topic

    @property
    def key(self) -> tuple[str, str]:
        """The registry lookup key."""
        return (self.event_source, self.event_type)


def is_derived(value: str) -> bool:
    """Return True if a path parameter value is read from the event detail."""
    return value.startswith(DERIVED_PREFIX)


def derived_path(value: str) -> str:
    """Strip the derived-value prefix, leaving the dotted detail path."""
    return value[len(DERIVED_PREFIX):]
