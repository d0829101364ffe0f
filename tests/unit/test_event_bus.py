"""Unit tests for LocalEventBus: validation and handler isolation."""

from __future__ import annotations

import pytest

from pkgrelay.core.event_bus import EventValidationError, LocalEventBus
from pkgrelay.models.events import DispatchStatus, InboundEvent


class TestReceive:
    def test_valid_event(self):
        event = LocalEventBus.receive(b'{"source": "quilt.pkg", "type": "GetInfo"}')
        assert event == InboundEvent(source="quilt.pkg", type="GetInfo", detail={})

    @pytest.mark.parametrize(
        "raw",
        ["not json", "[1, 2]", '{"source": "quilt.pkg"}', '{"type": "GetInfo"}'],
    )
    def test_invalid_payloads(self, raw: str):
        with pytest.raises(EventValidationError):
            LocalEventBus.receive(raw)

    def test_serialize_then_receive(self, make_event):
        event = make_event("CreatePackage", {"bucket_name": "b1"})
        assert LocalEventBus.receive(LocalEventBus.serialize(event)) == event


class TestPublish:
    def test_every_handler_receives(self, make_event):
        bus = LocalEventBus()
        seen: list[str] = []
        bus.subscribe(lambda e: seen.append("a"))
        bus.subscribe(lambda e: seen.append("b"))
        bus.publish(make_event())
        assert seen == ["a", "b"]

    def test_failing_handler_does_not_block_others(self, make_event):
        bus = LocalEventBus()

        def boom(event: InboundEvent) -> None:
            raise RuntimeError("boom")

        bus.subscribe(boom)
        bus.subscribe(lambda e: "ok")
        results = bus.publish(make_event())
        assert isinstance(results[0], RuntimeError)
        assert results[1] == "ok"

    def test_router_subscription(self, router, make_event):
        bus = LocalEventBus()
        router.subscribe(bus)
        [outcome] = bus.publish_raw('{"source": "quilt.pkg", "type": "GetHealth"}')
        assert outcome.status == DispatchStatus.DISPATCHED
