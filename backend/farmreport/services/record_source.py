# farmreport/services/record_source.py
"""
Read-only access to the upstream farm backend.

Only fetching lives here; nothing in this module aggregates. Every call is
independent so the weekly summary can fan them out concurrently.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Tuple

import httpx
import structlog
from pydantic import ValidationError

from farmreport.schemas.records import (
    DailyRecord,
    DailyReport,
    LotSetup,
    WeeklyProduction,
    WeeklyStock,
)

SETUP_PATH = "/api/suivi-technique-setup/by-sex"
WEEKLY_RECORDS_PATH = "/api/suivi-technique-hebdo"
WEEKLY_PRODUCTION_PATH = "/api/suivi-production-hebdo"
WEEKLY_STOCK_PATH = "/api/suivi-stock"
DAILY_REPORTS_PATH = "/api/daily-reports"

logger = structlog.get_logger(__name__)


class UpstreamError(RuntimeError):
    """The upstream backend could not be reached or answered with an error."""

    def __init__(self, message: str, *, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class RecordSource(Protocol):
    async def get_setup(self, farm_id: int, lot: str, sex: str, building: str) -> Optional[LotSetup]: ...

    async def list_weekly_records(
        self, farm_id: int, lot: str, sex: str, building: str, week: str
    ) -> List[DailyRecord]: ...

    async def get_weekly_production(
        self, farm_id: int, lot: str, week: str, sex: str, building: str
    ) -> Optional[WeeklyProduction]: ...

    async def get_weekly_stock(
        self, farm_id: int, lot: str, week: str, sex: str, building: str
    ) -> Optional[WeeklyStock]: ...

    async def list_report_dates(self, farm_id: Optional[int] = None) -> List[str]: ...


class HttpRecordSource:
    """RecordSource backed by the farm REST API; forwards the caller's bearer token."""

    def __init__(
        self,
        base_url: str,
        *,
        token: Optional[str] = None,
        timeout: Optional[float] = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        headers = {"Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "HttpRecordSource":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, path: str, params: Dict[str, Any], *, allow_missing: bool = False) -> Any:
        clean = {k: v for k, v in params.items() if v is not None}
        try:
            resp = await self._client.get(path, params=clean)
        except httpx.HTTPError as ex:
            raise UpstreamError(f"GET {path} failed: {ex}") from ex

        if allow_missing and resp.status_code == 404:
            return None
        if resp.status_code == 204:
            return None
        if resp.status_code >= 400:
            raise UpstreamError(
                f"GET {path} returned {resp.status_code}: {resp.text[:200]}",
                status_code=resp.status_code,
            )
        if not resp.content:
            return None
        return resp.json()

    async def get_setup(self, farm_id: int, lot: str, sex: str, building: str) -> Optional[LotSetup]:
        body = await self._get_json(
            SETUP_PATH,
            {"farmId": farm_id, "lot": lot, "sex": sex, "batiment": building},
            allow_missing=True,
        )
        return LotSetup.model_validate(body) if body else None

    async def list_weekly_records(
        self, farm_id: int, lot: str, sex: str, building: str, week: str
    ) -> List[DailyRecord]:
        body = await self._get_json(
            WEEKLY_RECORDS_PATH,
            {"farmId": farm_id, "lot": lot, "sex": sex, "batiment": building, "semaine": week},
        )
        return _validate_rows(DailyRecord, body, WEEKLY_RECORDS_PATH)

    async def get_weekly_production(
        self, farm_id: int, lot: str, week: str, sex: str, building: str
    ) -> Optional[WeeklyProduction]:
        body = await self._get_json(
            WEEKLY_PRODUCTION_PATH,
            {"farmId": farm_id, "lot": lot, "semaine": week, "sex": sex, "batiment": building},
            allow_missing=True,
        )
        return WeeklyProduction.model_validate(body) if body else None

    async def get_weekly_stock(
        self, farm_id: int, lot: str, week: str, sex: str, building: str
    ) -> Optional[WeeklyStock]:
        body = await self._get_json(
            WEEKLY_STOCK_PATH,
            {"farmId": farm_id, "lot": lot, "semaine": week, "sex": sex, "batiment": building},
            allow_missing=True,
        )
        return WeeklyStock.model_validate(body) if body else None

    async def list_report_dates(self, farm_id: Optional[int] = None) -> List[str]:
        body = await self._get_json(DAILY_REPORTS_PATH, {"farmId": farm_id})
        reports = _validate_rows(DailyReport, body, DAILY_REPORTS_PATH)
        return distinct_dates(r.report_date for r in reports)


def _validate_rows(model, body, path: str) -> list:
    """Validate a list payload row by row; an unreadable row is dropped alone."""
    rows = []
    for index, item in enumerate(body or []):
        try:
            rows.append(model.model_validate(item))
        except ValidationError as ex:
            logger.warning("upstream.row_skipped", path=path, index=index, errors=ex.error_count())
    return rows


def distinct_dates(values) -> List[str]:
    """Unique non-empty dates, first-seen order."""
    seen: Dict[str, None] = {}
    for value in values:
        if value:
            seen.setdefault(value, None)
    return list(seen)


SourceKey = Tuple[str, str]  # (building, sex)


@dataclass
class InMemoryRecordSource:
    """
    RecordSource over plain dicts, for local runs and tests.

    Any entry in `failures` (keyed by (resource, building, sex)) raises
    UpstreamError when requested.
    """

    farm_id: int = 1
    lot: str = "L1"
    setups: Dict[SourceKey, LotSetup] = field(default_factory=dict)
    records: Dict[Tuple[str, str, str], List[DailyRecord]] = field(default_factory=dict)
    production: Dict[Tuple[str, str, str], WeeklyProduction] = field(default_factory=dict)
    stock: Dict[Tuple[str, str, str], WeeklyStock] = field(default_factory=dict)
    report_dates: Dict[Optional[int], List[str]] = field(default_factory=dict)
    failures: set = field(default_factory=set)
    calls: List[Tuple[str, str, str]] = field(default_factory=list)

    def _check(self, resource: str, building: str, sex: str) -> None:
        self.calls.append((resource, building, sex))
        if (resource, building, sex) in self.failures:
            raise UpstreamError(f"{resource} unavailable for {building}/{sex}")

    def _matches(self, farm_id: int, lot: str) -> bool:
        return farm_id == self.farm_id and lot == self.lot

    async def get_setup(self, farm_id, lot, sex, building):
        self._check("setup", building, sex)
        if not self._matches(farm_id, lot):
            return None
        return self.setups.get((building, sex))

    async def list_weekly_records(self, farm_id, lot, sex, building, week):
        self._check("records", building, sex)
        if not self._matches(farm_id, lot):
            return []
        return list(self.records.get((building, sex, week), []))

    async def get_weekly_production(self, farm_id, lot, week, sex, building):
        self._check("production", building, sex)
        if not self._matches(farm_id, lot):
            return None
        return self.production.get((building, sex, week))

    async def get_weekly_stock(self, farm_id, lot, week, sex, building):
        self._check("stock", building, sex)
        if not self._matches(farm_id, lot):
            return None
        return self.stock.get((building, sex, week))

    async def list_report_dates(self, farm_id=None):
        if ("dates", "", "") in self.failures:
            raise UpstreamError("daily reports unavailable")
        return distinct_dates(self.report_dates.get(farm_id, []))


__all__ = [
    "HttpRecordSource",
    "InMemoryRecordSource",
    "RecordSource",
    "UpstreamError",
    "distinct_dates",
]
