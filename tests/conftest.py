"""Shared test fixtures for pkgrelay."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from pkgrelay.core.backend import BackendClient
from pkgrelay.core.registry import RuleRegistry
from pkgrelay.core.router import EventRouter
from pkgrelay.models.config import RegistryConfig
from pkgrelay.models.events import InboundEvent
from pkgrelay.models.rules import DispatchRule, HttpMethod
from pkgrelay.routing.dispatcher import SinkDispatcher
from pkgrelay.routing.sinks.memory import MemoryTopicSink

BACKEND_URL = "http://backend.test"
RESPONSE_DATE = "Sun, 18 Oct 2026 12:00:00 GMT"


class FakeBackend:
    """Records every request and answers with a configurable response."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.status_code = 200
        self.body = '{"ok":true}'
        self.headers: dict[str, str] = {"Date": RESPONSE_DATE}
        self.error: Exception | None = None

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, headers=self.headers, text=self.body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def fake_backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def backend(fake_backend: FakeBackend) -> BackendClient:
    """A BackendClient wired to the fake backend."""
    client = BackendClient(BACKEND_URL, 5.0, transport=fake_backend.transport)
    yield client
    client.close()


@pytest.fixture
def registry_config() -> RegistryConfig:
    return RegistryConfig()


@pytest.fixture
def registry(registry_config: RegistryConfig) -> RuleRegistry:
    """A frozen registry holding the reference rules."""
    return RuleRegistry.from_config(registry_config)


@pytest.fixture
def router(registry: RuleRegistry, backend: BackendClient) -> EventRouter:
    return EventRouter(registry, backend)


@pytest.fixture
def memory_sink() -> MemoryTopicSink:
    return MemoryTopicSink()


@pytest.fixture
def sink_dispatcher(memory_sink: MemoryTopicSink) -> SinkDispatcher:
    dispatcher = SinkDispatcher()
    dispatcher.register_sink(memory_sink)
    return dispatcher


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


@pytest.fixture
def make_rule() -> Callable[..., DispatchRule]:
    """Factory fixture: build a DispatchRule with sensible defaults."""

    def _factory(
        name: str = "GetHealth",
        event_type: str = "GetHealth",
        path_template: str = "/health",
        **overrides: Any,
    ) -> DispatchRule:
        defaults: dict[str, Any] = {
            "name": name,
            "event_source": "quilt.pkg",
            "event_type": event_type,
            "method": HttpMethod.GET,
            "path_template": path_template,
        }
        defaults.update(overrides)
        return DispatchRule(**defaults)

    return _factory


@pytest.fixture
def make_event() -> Callable[..., InboundEvent]:
    """Factory fixture: build an InboundEvent with sensible defaults."""

    def _factory(
        event_type: str = "GetHealth",
        detail: dict[str, Any] | None = None,
        source: str = "quilt.pkg",
    ) -> InboundEvent:
        return InboundEvent(source=source, type=event_type, detail=detail or {})

    return _factory


@pytest.fixture
def create_package_detail() -> dict[str, Any]:
    return {
        "bucket_name": "b1",
        "s3_folder": "f1",
        "package_name": "p1",
        "metadata": {"a": 1},
    }
