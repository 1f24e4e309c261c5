"""Tests for DispatchService using a mocked HTTP transport."""

import json

import httpx
import pytest

from src.config import Settings
from src.service.dispatch_service import (
    DeploymentResult,
    DispatchService,
    subscription_id_from,
    tenant_headers,
)
from src.translator import FlowTranslator, translate_flow
from tests.conftest import (
    FLOW_ID,
    make_change,
    make_edge,
    make_history,
    make_rule,
    make_source,
    make_switch,
    make_update,
    set_rule,
)


class FakePlatform:
    """Records requests and answers like the broker and the rule engine."""

    def __init__(self, fail_rules: bool = False, fail_subscriptions: bool = False):
        self.requests: list[httpx.Request] = []
        self.fail_rules = fail_rules
        self.fail_subscriptions = fail_subscriptions
        self._next_id = 100

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path
        if request.method == "DELETE":
            return httpx.Response(204)
        if path == "/v2/subscriptions":
            if self.fail_subscriptions:
                return httpx.Response(500, text="broker down")
            self._next_id += 1
            return httpx.Response(201, headers={"Location": f"/v2/subscriptions/sub{self._next_id}"})
        if path == "/rules":
            if self.fail_rules:
                return httpx.Response(400, json={"error": "bad rule"})
            return httpx.Response(201, json={})
        return httpx.Response(404)

    def bodies(self, path: str) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.url.path == path and r.content]


def _service(platform: FakePlatform) -> DispatchService:
    return DispatchService(Settings(), client=httpx.Client(transport=httpx.MockTransport(platform)))


def _switch_flow(settings):
    return translate_flow(
        [
            make_source(wires=["sw"]),
            make_switch("sw", [make_rule("eq", 100)], [["change"]]),
            make_change("change", [set_rule("payload.result", "yes")], ["update"]),
            make_update(),
        ],
        FLOW_ID,
        settings=settings,
    )


def _edge_flow(settings):
    return translate_flow(
        [
            make_source(wires=["edge"]),
            make_edge("edge", [make_rule("edge-up", 100)], [["change"]]),
            make_change("change", [set_rule("payload.result", "up")], ["update"]),
            make_update(),
        ],
        FLOW_ID,
        settings=settings,
    )


class TestDeploy:
    """Tests for DispatchService.deploy."""

    def test_fixed_flow(self, settings):
        """One subscription, then the rule referencing its id."""
        platform = FakePlatform()

        deployment = _service(platform).deploy(_switch_flow(settings))

        assert deployment.ok
        assert deployment.subscription_ids == ["sub101"]
        assert deployment.rule_names == ["rule_6a666fff_bfb128_1"]

        [subscription] = platform.bodies("/v2/subscriptions")
        assert subscription["subject"]["condition"]["expression"] == {"q": "attr1 == 100"}
        [rule] = platform.bodies("/rules")
        assert rule["text"].endswith('(cast(subscriptionId?, String) = "sub101")]')

    def test_correlated_rule_after_both_subscriptions(self, settings):
        """The rule is only sent once both subscriptions exist."""
        platform = FakePlatform()

        deployment = _service(platform).deploy(_edge_flow(settings))

        assert [r.url.path for r in platform.requests] == [
            "/v2/subscriptions",
            "/v2/subscriptions",
            "/rules",
        ]
        assert deployment.subscription_ids == ["sub101", "sub102"]
        [rule] = platform.bodies("/rules")
        assert '"sub101") -> ev2 = ' in rule["text"]

    def test_history_needs_no_rule(self, settings):
        platform = FakePlatform()
        result = translate_flow(
            [make_source(wires=["history"]), make_history()], FLOW_ID, settings=settings
        )

        deployment = _service(platform).deploy(result)

        assert deployment.ok
        assert deployment.rule_names == []
        [subscription] = platform.bodies("/v2/subscriptions")
        assert subscription["notification"]["http"]["url"] == "http://cygnus:5050/notify"

    def test_tenant_headers_forwarded(self, settings):
        """Tenant headers reach both the broker and the rule engine."""
        platform = FakePlatform()

        _service(platform).deploy(_switch_flow(settings), tenant_headers("smartcity", "/parking"))

        assert all(r.headers["fiware-service"] == "smartcity" for r in platform.requests)
        assert all(r.headers["fiware-servicepath"] == "/parking" for r in platform.requests)

    def test_broker_failure_recorded(self, settings):
        """A rejected subscription is reported and its rule never sent."""
        platform = FakePlatform(fail_subscriptions=True)

        deployment = _service(platform).deploy(_switch_flow(settings))

        assert not deployment.ok
        assert "HTTP 500" in deployment.errors[0]
        assert platform.bodies("/rules") == []

    def test_rule_failure_recorded(self, settings):
        platform = FakePlatform(fail_rules=True)

        deployment = _service(platform).deploy(_switch_flow(settings))

        assert deployment.subscription_ids == ["sub101"]
        assert deployment.rule_names == []
        assert deployment.errors == ["rule rule_6a666fff_bfb128_1: HTTP 400"]

    def test_transport_error_recorded(self, settings):
        """Connection errors are recorded, not raised."""

        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        service = DispatchService(
            Settings(), client=httpx.Client(transport=httpx.MockTransport(refuse))
        )

        deployment = service.deploy(_switch_flow(settings))

        assert not deployment.ok
        assert "connection refused" in deployment.errors[0]


class TestRemove:
    """Tests for DispatchService.remove."""

    def test_deletes_rules_and_subscriptions(self):
        platform = FakePlatform()
        deployment = DeploymentResult(
            flow_id=FLOW_ID, subscription_ids=["s1", "s2"], rule_names=["rule_x_1"]
        )

        errors = _service(platform).remove(deployment, tenant_headers("smartcity"))

        assert errors == []
        assert [(r.method, r.url.path) for r in platform.requests] == [
            ("DELETE", "/rules/rule_x_1"),
            ("DELETE", "/v2/subscriptions/s1"),
            ("DELETE", "/v2/subscriptions/s2"),
        ]
        assert platform.requests[0].headers["fiware-servicepath"] == "/"


@pytest.mark.parametrize(
    "location,expected",
    [
        ("/v2/subscriptions/abc123", "abc123"),
        ("/v2/subscriptions/abc123/", "abc123"),
        ("", None),
    ],
)
def test_subscription_id_from_location(location, expected):
    """The id is the last segment of the Location header."""
    headers = {"Location": location} if location else {}

    assert subscription_id_from(httpx.Response(201, headers=headers)) == expected


def test_tenant_headers_without_service():
    assert tenant_headers(None) == {}


def test_default_settings_match_translator(monkeypatch):
    """Without explicit settings both sides use the same endpoints."""
    monkeypatch.setenv("BROKER_URL", "http://elsewhere:1026")

    assert DispatchService().settings == FlowTranslator().settings == Settings()
