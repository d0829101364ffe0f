"""Unit tests for SinkDispatcher and the notification sinks."""

from __future__ import annotations

import json
from pathlib import Path

import httpx
import pytest

from pkgrelay.models.events import NotificationMessage
from pkgrelay.routing.dispatcher import SinkDispatcher, SinkPublishError
from pkgrelay.routing.sinks import NotificationSink
from pkgrelay.routing.sinks.local_file import LocalFileSink
from pkgrelay.routing.sinks.memory import MemoryTopicSink
from pkgrelay.routing.sinks.webhook import WebhookTopicSink, wire_payload


def _message(status_code: int = 200) -> NotificationMessage:
    return NotificationMessage(
        date="Sun, 18 Oct 2026 12:00:00 GMT",
        response_body='{"ok":true}',
        status_code=status_code,
        status_text="OK",
    )


class _FailingSink:
    @property
    def sink_name(self) -> str:
        return "failing_sink"

    def publish(self, message: NotificationMessage) -> None:
        raise RuntimeError("Sink failure for testing")


class TestSinkDispatcher:
    def test_dispatch_to_multiple_sinks(self):
        dispatcher = SinkDispatcher()
        sink_a, sink_b = MemoryTopicSink("a"), MemoryTopicSink("b")
        dispatcher.register_sink(sink_a)
        dispatcher.register_sink(sink_b)

        assert dispatcher.dispatch(_message()) == ["a", "b"]
        assert sink_a.pending_count == sink_b.pending_count == 1

    def test_partial_failure_tolerated(self):
        dispatcher = SinkDispatcher()
        good = MemoryTopicSink("good")
        dispatcher.register_sink(good)
        dispatcher.register_sink(_FailingSink())

        assert dispatcher.dispatch(_message()) == ["good"]

    def test_all_fail_raises(self):
        dispatcher = SinkDispatcher()
        dispatcher.register_sink(_FailingSink())
        with pytest.raises(SinkPublishError, match="All 1 sinks failed"):
            dispatcher.dispatch(_message())

    def test_no_sinks_raises(self):
        with pytest.raises(SinkPublishError):
            SinkDispatcher().dispatch(_message())

    def test_register_duplicate_ignored(self):
        dispatcher = SinkDispatcher()
        sink = MemoryTopicSink()
        dispatcher.register_sink(sink)
        dispatcher.register_sink(sink)
        assert len(dispatcher.registered_sinks) == 1


class TestSinks:
    def test_sinks_satisfy_protocol(self, tmp_path: Path):
        assert isinstance(MemoryTopicSink(), NotificationSink)
        assert isinstance(LocalFileSink(tmp_path), NotificationSink)

    def test_memory_flush_clears(self):
        sink = MemoryTopicSink()
        sink.publish(_message())
        assert sink.flush() == [_message()]
        assert sink.pending_count == 0

    def test_local_file_round_trip(self, tmp_path: Path):
        sink = LocalFileSink(tmp_path / "out")
        sink.publish(_message())
        sink.publish(_message())  # redelivery rewrites the same file

        [path] = sink.list_messages()
        assert sink.read_message(path) == _message()

    def test_webhook_posts_wire_payload(self):
        received: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(202)

        sink = WebhookTopicSink(
            "http://topic.test/publish", 2.0, transport=httpx.MockTransport(handler)
        )
        sink.publish(_message())
        sink.close()

        assert json.loads(received[0].content) == wire_payload(_message())
        assert wire_payload(_message())["statusCode"] == 200

    def test_webhook_error_status_raises(self):
        sink = WebhookTopicSink(
            "http://topic.test/publish",
            2.0,
            transport=httpx.MockTransport(lambda request: httpx.Response(500)),
        )
        with pytest.raises(httpx.HTTPStatusError):
            sink.publish(_message())
