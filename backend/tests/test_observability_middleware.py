from __future__ import annotations

import json

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient
from starlette.types import Scope

from farmreport.observability import middleware as middleware_module
from farmreport.observability.instrument import log_job
from farmreport.observability.middleware import (
    register_request_middleware,
    unhandled_exception_handler,
)


def _build_app():
    app = FastAPI()
    register_request_middleware(app)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    return app


def test_request_context_adds_request_id_header():
    app = _build_app()

    @app.get("/ok")
    def ok_route():
        return {"ok": True}

    client = TestClient(app)
    resp = client.get("/ok", headers={"X-Request-Id": "given-id"})
    assert resp.status_code == 200
    assert resp.headers.get("X-Request-Id") == "given-id"


def test_unhandled_exception_returns_request_id():
    scope: Scope = {"type": "http", "method": "GET", "path": "/", "headers": []}
    request = Request(scope)
    request.state.request_id = "abc-123"
    response = unhandled_exception_handler(request, RuntimeError("boom"))
    assert response.status_code == 500
    body = json.loads(response.body)
    assert body["ok"] is False
    assert body["request_id"] == "abc-123"


def test_log_job_passes_result_through():
    @log_job("unit.sync")
    def build():
        return [1, 2, 3]

    assert build() == [1, 2, 3]


@pytest.mark.anyio
async def test_log_job_reraises_async_errors():
    @log_job("unit.async")
    async def explode():
        raise RuntimeError("upstream gone")

    with pytest.raises(RuntimeError):
        await explode()


class _RecordingLogger:
    def __init__(self):
        self.events = []

    def info(self, event, **fields):
        self.events.append({"event": event, **fields})

    exception = info


def _completed(recorder):
    return [e for e in recorder.events if e["event"] == "request.completed"]


def test_authenticated_requests_carry_caller_role(make_client, monkeypatch):
    recorder = _RecordingLogger()
    monkeypatch.setattr(middleware_module, "logger", recorder)

    c = make_client("RESPONSABLE_FERME")
    resp = c.get("/api/permissions")
    assert resp.status_code == 200

    completed = _completed(recorder)
    assert completed and completed[-1]["role"] == "RESPONSABLE_FERME"
    assert completed[-1]["farm_id"] == 7
    assert completed[-1]["all_farms"] is False

    metrics = c.get("/metrics").text
    assert 'report_requests_total{path="/api/permissions",role="RESPONSABLE_FERME"}' in metrics


def test_public_routes_log_without_caller(client, monkeypatch):
    recorder = _RecordingLogger()
    monkeypatch.setattr(middleware_module, "logger", recorder)

    client.get("/api/health")
    completed = _completed(recorder)
    assert completed and "role" not in completed[-1]


def test_credentials_are_redacted():
    from farmreport.observability.logging import _redact_credentials

    out = _redact_credentials(None, "info", {"event": "x", "token": "abc", "farm_id": 7})
    assert out == {"event": "x", "token": "***", "farm_id": 7}
