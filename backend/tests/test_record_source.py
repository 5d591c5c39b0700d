from __future__ import annotations

import httpx
import pytest

from farmreport.services.record_source import (
    DAILY_REPORTS_PATH,
    SETUP_PATH,
    WEEKLY_RECORDS_PATH,
    WEEKLY_STOCK_PATH,
    HttpRecordSource,
    UpstreamError,
    distinct_dates,
)

pytestmark = pytest.mark.anyio


def _source(handler):
    return HttpRecordSource(
        "http://upstream.test/",
        token="abc",
        transport=httpx.MockTransport(handler),
    )


async def test_weekly_records_forward_token_and_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["auth"] = request.headers.get("authorization")
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json=[{"recordDate": "2024-03-08", "mortaliteNbre": 2}])

    async with _source(handler) as source:
        records = await source.list_weekly_records(7, "L24", "Mâle", "B1", "S2")

    assert seen["auth"] == "Bearer abc"
    assert seen["path"] == WEEKLY_RECORDS_PATH
    assert seen["params"] == {"farmId": "7", "lot": "L24", "sex": "Mâle", "batiment": "B1", "semaine": "S2"}
    assert records[0].mortality_count == 2


async def test_missing_setup_is_none():
    def handler(request):
        assert request.url.path == SETUP_PATH
        return httpx.Response(404)

    async with _source(handler) as source:
        assert await source.get_setup(7, "L24", "Mâle", "B1") is None


async def test_empty_stock_body_is_none():
    def handler(request):
        assert request.url.path == WEEKLY_STOCK_PATH
        return httpx.Response(204)

    async with _source(handler) as source:
        assert await source.get_weekly_stock(7, "L24", "S2", "Mâle", "B1") is None


async def test_server_error_raises_upstream_error():
    def handler(request):
        return httpx.Response(500, text="boom")

    async with _source(handler) as source:
        with pytest.raises(UpstreamError) as excinfo:
            await source.list_weekly_records(7, "L24", "Mâle", "B1", "S2")
    assert excinfo.value.status_code == 500


async def test_transport_error_is_wrapped():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    async with _source(handler) as source:
        with pytest.raises(UpstreamError):
            await source.get_weekly_production(7, "L24", "S2", "Mâle", "B1")


async def test_report_dates_are_distinct_days():
    def handler(request):
        assert request.url.path == DAILY_REPORTS_PATH
        assert "farmId" not in request.url.params
        return httpx.Response(200, json=[
            {"reportDate": "2024-03-10"},
            {"reportDate": "2024-03-10T12:00:00"},
            {"reportDate": "2024-03-08"},
            {"reportDate": None},
        ])

    async with _source(handler) as source:
        assert await source.list_report_dates() == ["2024-03-10", "2024-03-08"]


def test_distinct_dates_keeps_first_seen_order():
    assert distinct_dates(["b", "a", "b", "", None]) == ["b", "a"]


async def test_bad_metadata_does_not_drop_the_rows():
    def handler(request):
        return httpx.Response(200, json=[
            {"recordDate": "2024-03-08", "mortaliteNbre": 3, "createdAt": "n/a", "id": "x", "farmId": "?"},
            {"recordDate": "2024-03-09", "mortaliteNbre": 4},
        ])

    async with _source(handler) as source:
        records = await source.list_weekly_records(7, "L24", "Mâle", "B1", "S2")

    assert [r.mortality_count for r in records] == [3, 4]
    assert records[0].created_at is None
    assert records[0].id is None and records[0].farm_id is None


async def test_unreadable_row_is_skipped_alone():
    def handler(request):
        return httpx.Response(200, json=["garbage", {"recordDate": "2024-03-09", "mortaliteNbre": 4}])

    async with _source(handler) as source:
        records = await source.list_weekly_records(7, "L24", "Mâle", "B1", "S2")

    assert [r.record_date for r in records] == ["2024-03-09"]
