# farmreport/routers/weekly_summary.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from farmreport.config import get_settings
from farmreport.core.security import Principal, get_current_principal
from farmreport.core.upstream import get_record_source
from farmreport.schemas.common import fail, meta_now, ok
from farmreport.services.permissions import can_access_farm
from farmreport.services.record_source import RecordSource
from farmreport.services.weekly_summary import load_weekly_summary, summary_to_dict

router = APIRouter(prefix="/api/weekly-summary", tags=["weekly-summary"])


def _split_buildings(raw: Optional[str]) -> List[str]:
    if not raw:
        return list(get_settings().BUILDINGS_DEFAULT)
    return [b.strip() for b in raw.split(",") if b.strip()]


@router.get("")
async def get_weekly_summary(
    lot: str = Query(..., min_length=1, description="Lot identifier"),
    week: str = Query(..., min_length=1, description="Week label, e.g. S3"),
    farm_id: Optional[int] = Query(None, description="Farm; defaults to the session's selected farm"),
    buildings: Optional[str] = Query(None, description="Comma-separated buildings, e.g. B1,B2"),
    principal: Principal = Depends(get_current_principal),
    source: RecordSource = Depends(get_record_source),
):
    """
    Consolidated weekly production summary for one lot and week, across every
    requested building and both sexes.

    Rows are rebuilt from the upstream records on every call. A building/sex
    whose data could not be fetched counts as empty and is listed in
    `degradedKeys`.
    """
    target_farm = principal.resolve_farm(farm_id)
    meta = meta_now(farm_id=target_farm, lot=lot, week=week, buildings=buildings)

    if target_farm is None:
        return fail(
            "FARM_REQUIRED",
            "Select a farm to view the weekly summary.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            meta=meta,
        )
    if not can_access_farm(principal.role, target_farm, principal.assigned_farm_ids):
        return fail(
            "FORBIDDEN_FARM",
            f"Farm {target_farm} is outside your assigned farms.",
            status_code=status.HTTP_403_FORBIDDEN,
            meta=meta,
        )

    building_list = _split_buildings(buildings)
    if not building_list:
        return fail(
            "NO_BUILDINGS",
            "At least one building is required.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            meta=meta,
        )

    summary = await load_weekly_summary(
        source,
        farm_id=target_farm,
        lot=lot.strip(),
        week=week.strip(),
        buildings=building_list,
    )
    return ok(data=summary_to_dict(summary), meta=meta)
