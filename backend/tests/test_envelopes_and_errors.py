# tests/test_envelopes_and_errors.py
from __future__ import annotations

import json

from farmreport.schemas.common import API_VERSION, fail, meta_now, ok

from _helpers import is_enveloped, unwrap


def test_ok_envelope_shape():
    resp = ok(data={"x": 1}, meta=meta_now(farm_id=3, lot="L1", buildings=None))
    body = json.loads(resp.body)
    assert resp.status_code == 200
    assert is_enveloped(body)
    assert unwrap(body) == {"x": 1}
    assert body["error"] is None
    assert body["meta"]["farm_id"] == 3
    assert body["meta"]["params"] == {"lot": "L1"}
    assert body["meta"]["version"] == API_VERSION


def test_fail_envelope_shape():
    resp = fail("UPSTREAM_UNAVAILABLE", "down", status_code=502, details={"upstream_status": None})
    body = json.loads(resp.body)
    assert resp.status_code == 502
    assert body["ok"] is False and body["data"] is None
    assert body["error"]["code"] == "UPSTREAM_UNAVAILABLE"
    assert body["meta"]["params"] is None


def test_route_errors_are_enveloped(make_client):
    c = make_client("RESPONSABLE_FERME")
    r = c.get("/api/weekly-summary", params={"lot": "L1", "week": "S1", "farm_id": 12345})
    assert r.status_code == 403
    body = r.json()
    assert is_enveloped(body) and body["ok"] is False
    assert body["meta"]["params"]["lot"] == "L1"
