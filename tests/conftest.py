"""Shared test fixtures and helpers."""

from typing import Any

import pytest

from src.config import Settings

FLOW_ID = "6a666fff.bfb128"
INPUT_DEVICE_ID = "input-device-id"
OUTPUT_DEVICE_ID = "output-device-id"

SQUARE = [
    {"latitude": 1, "longitude": 1},
    {"latitude": 1, "longitude": 2},
    {"latitude": 2, "longitude": 2},
    {"latitude": 2, "longitude": 1},
]


def make_source(node_id: str = "source", wires: list[str] | None = None, **fields: Any) -> dict:
    """Descriptor of a device emitting events, wired on its single port."""
    return {
        "id": node_id,
        "type": "device out",
        "z": "flow",
        "_device_id": fields.pop("device_id", INPUT_DEVICE_ID),
        "_device_type": fields.pop("device_type", "device"),
        "wires": [wires or []],
        **fields,
    }


def make_rule(t: str, v: Any = None, vt: str = "num", v2: Any = None, v2t: str = "num") -> dict:
    rule: dict[str, Any] = {"t": t}
    if v is not None:
        rule["v"] = v
        rule["vt"] = vt
    if v2 is not None:
        rule["v2"] = v2
        rule["v2t"] = v2t
    return rule


def make_switch(
    node_id: str,
    rules: list[dict],
    wires: list[list[str]],
    prop: str = "payload.attr1",
) -> dict:
    return {"id": node_id, "type": "switch", "property": prop, "rules": rules, "wires": wires}


def make_edge(
    node_id: str,
    rules: list[dict],
    wires: list[list[str]],
    prop: str = "payload.attr1",
) -> dict:
    return {"id": node_id, "type": "edgedetection", "property": prop, "rules": rules, "wires": wires}


def make_geofence(
    node_id: str,
    geofence_filter: str,
    wires: list[str],
    points: list[dict] | None = None,
    mode: str = "polyline",
) -> dict:
    return {
        "id": node_id,
        "type": "geofence",
        "points": SQUARE if points is None else points,
        "mode": mode,
        "filter": geofence_filter,
        "wires": [wires],
    }


def make_change(node_id: str, rules: list[dict], wires: list[str]) -> dict:
    return {"id": node_id, "type": "change", "rules": rules, "wires": [wires]}


def set_rule(p: str, to: Any, tot: str = "str") -> dict:
    return {"t": "set", "p": p, "to": to, "tot": tot}


def make_template(
    node_id: str, template: str, wires: list[str], field: str = "payload"
) -> dict:
    return {"id": node_id, "type": "template", "field": field, "template": template, "wires": [wires]}


def make_update(node_id: str = "update", attrs: str = "payload") -> dict:
    return {
        "id": node_id,
        "type": "device in",
        "_device_id": OUTPUT_DEVICE_ID,
        "_device_type": "virtual",
        "attrs": attrs,
        "wires": [],
    }


def make_http_post(node_id: str = "post", url: str = "http://example.com/hook", method: str = "POST") -> dict:
    return {"id": node_id, "type": "http request out", "url": url, "method": method, "body": "payload", "wires": []}


def make_email(node_id: str = "email", subject: str = "Alert", body: str = "payload") -> dict:
    return {
        "id": node_id,
        "type": "e-mail",
        "to": "ops@example.com",
        "from": "flows@example.com",
        "subject": subject,
        "server": "smtp.example.com",
        "body": body,
        "wires": [],
    }


def make_history(node_id: str = "history") -> dict:
    return {"id": node_id, "type": "history", "wires": []}


@pytest.fixture
def settings() -> Settings:
    """Default endpoints, independent of the environment."""
    return Settings()
