from fastapi.testclient import TestClient

from _helpers import LOT, WEEK


def test_request_id_header(client: TestClient):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.headers.get("x-request-id")


def test_metrics_expose_request_and_upstream_counters(client: TestClient, memory_source):
    memory_source.failures.add(("stock", "B1", "Femelle"))
    client.get("/api/weekly-summary", params={"lot": LOT, "week": WEEK, "buildings": "B1"})

    resp = client.get("/metrics")
    assert resp.status_code == 200
    assert "http_requests_total" in resp.text
    assert 'upstream_fetch_failures_total{resource="stock"}' in resp.text


def test_latency_health_stats(client: TestClient):
    for _ in range(3):
        client.get("/api/weekly-summary", params={"lot": LOT, "week": WEEK, "buildings": "B1"})
    resp = client.get("/api/health/latency")
    assert resp.status_code == 200
    entries = {p["path"]: p for p in resp.json()["paths"]}
    row = entries["/api/weekly-summary"]
    assert row["p95_ms"] >= row["p50_ms"]
    assert row["sample_size"] >= 3
