"""Registry configuration: the explicit, immutable rule table.

Loaded from a TOML rules file or built from the reference deployment
defaults.  The registry receives this object at construction; nothing is
read from module-level state.
"""

from __future__ import annotations

import tomllib
from enum import Enum
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from pkgrelay.models.rules import DispatchRule, HttpMethod


class DuplicatePolicy(str, Enum):
    """What the registry does when a ``(source, type)`` key is registered twice."""

    REJECT = "reject"
    REPLACE = "replace"


class GetterSpec(BaseModel):
    """A backend getter endpoint whose result is published to the topic."""

    model_config = ConfigDict(frozen=True)

    name: str
    event_type: str
    path: str


class RuleSpec(BaseModel):
    """A rule as written in configuration.

    ``event_source`` falls back to the registry-wide source when omitted.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    event_type: str
    method: HttpMethod = HttpMethod.GET
    path_template: str
    query_mapping: dict[str, str] = {}
    path_param_values: tuple[str, ...] = ()
    notify: bool = False
    event_source: str | None = None


DEFAULT_GETTERS: tuple[GetterSpec, ...] = (
    GetterSpec(name="info", event_type="GetInfo", path="/info"),
    GetterSpec(name="health", event_type="GetHealth", path="/health"),
    GetterSpec(name="test_api_key", event_type="GetTestApiKey", path="/test_api_key"),
)

DEFAULT_RULES: tuple[RuleSpec, ...] = (
    RuleSpec(
        name="CreatePackage",
        event_type="CreatePackage",
        method=HttpMethod.POST,
        path_template="/registries/{bucket}/packages",
        path_param_values=("$.bucket_name",),
        query_mapping={
            "s3_folder": "s3_folder",
            "package_handle": "package_name",
            "metadata": "metadata",
        },
    ),
)


class RegistryConfig(BaseModel):
    """Immutable configuration handed to ``RuleRegistry``."""

    model_config = ConfigDict(frozen=True)

    event_source: str = "quilt.pkg"
    duplicate_policy: DuplicatePolicy = DuplicatePolicy.REJECT
    getters: tuple[GetterSpec, ...] = DEFAULT_GETTERS
    rules: tuple[RuleSpec, ...] = DEFAULT_RULES

    def getter_rules(self) -> list[DispatchRule]:
        """One GET rule per getter, flagged for notification."""
        return [
            DispatchRule(
                name=getter.name,
                event_source=self.event_source,
                event_type=getter.event_type,
                method=HttpMethod.GET,
                path_template=getter.path,
                notify=True,
            )
            for getter in self.getters
        ]

    def dispatch_rules(self) -> list[DispatchRule]:
        """Every configured rule, getters first, in declaration order."""
        rules = self.getter_rules()
        for entry in self.rules:
            rules.append(
                DispatchRule(
                    name=entry.name,
                    event_source=entry.event_source or self.event_source,
                    event_type=entry.event_type,
                    method=entry.method,
                    path_template=entry.path_template,
                    query_mapping=entry.query_mapping,
                    path_param_values=entry.path_param_values,
                    notify=entry.notify,
                )
            )
        return rules


def load_registry_config(path: Path | str) -> RegistryConfig:
    """Read a ``RegistryConfig`` from a TOML rules file.

    Top-level keys map onto ``RegistryConfig`` fields; ``[[getters]]`` and
    ``[[rules]]`` arrays replace the defaults when present.
    """
    with open(path, "rb") as fh:
        data = tomllib.load(fh)
    return RegistryConfig.model_validate(data)
