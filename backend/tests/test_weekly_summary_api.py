from __future__ import annotations

from _helpers import FARM_ID, LOT, WEEK, is_enveloped, unwrap


def _get(client, **params):
    params.setdefault("lot", LOT)
    params.setdefault("week", WEEK)
    params.setdefault("buildings", "B1,B2")
    return client.get("/api/weekly-summary", params=params)


def test_weekly_summary_envelope(client):
    r = _get(client)
    assert r.status_code == 200, r.text
    body = r.json()
    assert is_enveloped(body) and body["ok"] is True
    assert body["meta"]["farm_id"] == FARM_ID

    data = unwrap(body)
    assert data["startCount"] == 1499
    assert [row["mortalityCount"] for row in data["rows"]] == [5, 5, 0]
    assert data["rows"][2]["tempMin"] is None
    assert data["setup"]["strain"] == "PREMIUM"
    assert data["stock"]["remainingAtWeekEnd"] == 1481
    assert data["degradedKeys"] == []
    assert r.headers["Cache-Control"] == "no-store"


def test_default_buildings_when_omitted(client, memory_source):
    r = client.get("/api/weekly-summary", params={"lot": LOT, "week": WEEK})
    assert r.status_code == 200, r.text
    assert unwrap(r.json())["buildings"] == ["B1", "B2", "B3", "B4"]
    assert len(memory_source.calls) == 4 * 2 * 4


def test_degraded_key_reported(client, memory_source):
    memory_source.failures.add(("production", "B1", "Mâle"))
    r = _get(client)
    assert r.status_code == 200
    data = unwrap(r.json())
    assert data["degradedKeys"] == ["B1|Mâle"]
    assert data["production"]["saleCount"] == 0


def test_missing_lot_is_validation_error(client):
    r = client.get("/api/weekly-summary", params={"week": WEEK})
    assert r.status_code == 422


def test_blank_building_list_rejected(client):
    r = _get(client, buildings=" , ")
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "NO_BUILDINGS"


def test_farm_required_without_selection(make_client):
    c = make_client("ADMINISTRATEUR", farm_id=None, all_farms_mode=True)
    r = _get(c)
    assert r.status_code == 422
    assert r.json()["error"]["code"] == "FARM_REQUIRED"


def test_farm_manager_limited_to_assigned_farms(make_client):
    c = make_client("RESPONSABLE_FERME", farm_ids=[FARM_ID])
    assert _get(c).status_code == 200

    r = _get(c, farm_id=99)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "FORBIDDEN_FARM"


def test_backoffice_can_read_any_farm(make_client):
    c = make_client("BACKOFFICE_EMPLOYER", farm_id=None)
    r = _get(c, farm_id=FARM_ID)
    assert r.status_code == 200
    assert unwrap(r.json())["farmId"] == FARM_ID


def test_requires_token(make_client):
    from fastapi.testclient import TestClient
    from farmreport.main import app

    with TestClient(app) as anon:
        assert _get(anon).status_code in (401, 403)
