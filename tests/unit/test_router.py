"""Unit tests for the EventRouter and its resolution helpers."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from pkgrelay.core.registry import RuleRegistry
from pkgrelay.core.router import (
    MISSING,
    EventRouter,
    MissingPathParameterError,
    resolve_field,
    resolve_path,
    resolve_query,
)
from pkgrelay.models.events import DispatchStatus
from pkgrelay.models.rules import HttpMethod


class TestResolveField:
    def test_nested_mapping(self):
        assert resolve_field({"a": {"b": "c"}}, "a.b") == "c"

    def test_list_index(self):
        assert resolve_field({"a": [1, 2]}, "a.1") == 2

    def test_missing_segment(self):
        assert resolve_field({"a": {}}, "a.b") is MISSING

    def test_none_counts_as_missing(self):
        assert resolve_field({"a": None}, "a") is MISSING

    def test_walk_into_scalar(self):
        assert resolve_field({"a": "text"}, "a.b") is MISSING


class TestResolveQuery:
    def test_missing_fields_are_omitted(self, make_rule):
        rule = make_rule(query_mapping={"s3_folder": "s3_folder", "package_handle": "package_name"})
        assert resolve_query(rule, {"s3_folder": "f1"}) == {"s3_folder": "f1"}

    def test_structured_values_become_compact_json(self, make_rule):
        rule = make_rule(query_mapping={"metadata": "metadata", "n": "n", "flag": "flag"})
        query = resolve_query(rule, {"metadata": {"b": 2, "a": 1}, "n": 3, "flag": True})
        assert query == {"metadata": '{"a":1,"b":2}', "n": "3", "flag": "true"}


class TestResolvePath:
    def test_literal_values(self, make_rule):
        rule = make_rule(path_template="/registries/{bucket}/packages", path_param_values=("b9",))
        assert resolve_path(rule, {}) == "/registries/b9/packages"

    def test_derived_values(self, make_rule):
        rule = make_rule(
            path_template="/registries/{bucket}/packages",
            path_param_values=("$.bucket_name",),
        )
        assert resolve_path(rule, {"bucket_name": "b1"}) == "/registries/b1/packages"

    def test_missing_derived_value_raises(self, make_rule):
        rule = make_rule(
            name="CreatePackage",
            path_template="/registries/{bucket}/packages",
            path_param_values=("$.bucket_name",),
        )
        with pytest.raises(MissingPathParameterError) as info:
            resolve_path(rule, {})
        assert info.value.field_path == "bucket_name"
        assert info.value.rule_name == "CreatePackage"


class TestEventRouter:
    def test_getter_dispatch(self, router, fake_backend, make_event):
        outcome = router.route(make_event("GetHealth"))

        assert outcome.status == DispatchStatus.DISPATCHED
        assert outcome.rule_name == "health"
        assert len(fake_backend.requests) == 1
        sent = fake_backend.requests[0]
        assert sent.method == "GET"
        assert sent.url.path == "/health"
        assert sent.url.query == b""

    def test_create_package_dispatch(self, router, fake_backend, make_event, create_package_detail):
        outcome = router.route(make_event("CreatePackage", create_package_detail))

        assert outcome.ok
        assert outcome.request.method == HttpMethod.POST
        assert outcome.request.path == "/registries/b1/packages"
        assert outcome.request.query == {
            "s3_folder": "f1",
            "package_handle": "p1",
            "metadata": '{"a":1}',
        }
        url = str(fake_backend.requests[0].url)
        assert "s3_folder=f1" in url
        assert "package_handle=p1" in url
        assert "metadata=%7B%22a%22%3A1%7D" in url

    def test_missing_path_parameter_makes_no_call(
        self, router, fake_backend, make_event, create_package_detail
    ):
        del create_package_detail["bucket_name"]
        outcome = router.route(make_event("CreatePackage", create_package_detail))

        assert outcome.status == DispatchStatus.MISSING_PATH_PARAMETER
        assert "bucket_name" in outcome.error
        assert fake_backend.requests == []

    def test_partial_query_still_dispatches(self, router, fake_backend, make_event):
        outcome = router.route(make_event("CreatePackage", {"bucket_name": "b1"}))
        assert outcome.ok
        assert outcome.request.query == {}

    def test_unroutable_event(self, router, fake_backend, make_event):
        outcome = router.route(make_event("createpackage"))
        assert outcome.status == DispatchStatus.UNROUTABLE
        assert fake_backend.requests == []

    def test_backend_failure_is_reported(self, router, fake_backend, make_event):
        fake_backend.status_code = 503
        fake_backend.body = "unavailable"
        outcome = router.route(make_event("GetInfo"))

        assert outcome.status == DispatchStatus.BACKEND_FAILURE
        assert outcome.response.status_code == 503
        assert len(fake_backend.requests) == 1  # no retry

    def test_dispatch_key_is_stable(self, router, make_event, create_package_detail):
        first = router.route(make_event("CreatePackage", create_package_detail))
        second = router.route(make_event("CreatePackage", dict(create_package_detail)))
        assert first.dispatch_key == second.dispatch_key
        assert first.dispatch_key.startswith("sha256:")

    def test_unserializable_detail_is_invalid_event(self, router, fake_backend, make_event):
        for event_type in ("GetHealth", "NoSuchEvent"):
            outcome = router.route(
                make_event(event_type, {"at": datetime(2026, 10, 18, tzinfo=timezone.utc)})
            )
            assert outcome.status == DispatchStatus.INVALID_EVENT
            assert outcome.type == event_type
            assert "JSON" in outcome.error
        assert fake_backend.requests == []

    def test_query_placeholder_rule_is_unroutable_not_a_crash(
        self, backend, fake_backend, make_rule, make_event
    ):
        registry = RuleRegistry()
        errors = registry.register_all(
            [
                make_rule(
                    name="Tagged",
                    event_type="Tagged",
                    path_template="/r/{bucket}/packages?h={handle}",
                    path_param_values=("$.b", "$.h"),
                )
            ]
        )
        registry.freeze()

        router = EventRouter(registry, backend)
        outcome = router.route(make_event("Tagged", {"b": "b1", "h": "h1"}))
        assert len(errors) == 1
        assert outcome.status == DispatchStatus.UNROUTABLE
        assert fake_backend.requests == []

    def test_route_raw_accepts_detail_type(self, router, fake_backend):
        outcome = router.route_raw(
            '{"source": "quilt.pkg", "detail-type": "GetHealth", "detail": {}}'
        )
        assert outcome.ok

    def test_route_raw_invalid_payload(self, router, fake_backend):
        outcome = router.route_raw('{"detail": {}}')
        assert outcome.status == DispatchStatus.INVALID_EVENT
        assert fake_backend.requests == []

    def test_route_many_isolates_failures(self, router, make_event, create_package_detail):
        outcomes = router.route_many(
            [
                make_event("Unknown"),
                make_event("CreatePackage", {}),
                make_event("CreatePackage", create_package_detail),
            ]
        )
        assert [o.status for o in outcomes] == [
            DispatchStatus.UNROUTABLE,
            DispatchStatus.MISSING_PATH_PARAMETER,
            DispatchStatus.DISPATCHED,
        ]
