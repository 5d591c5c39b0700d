# farmreport/routers/report_days.py
from __future__ import annotations

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, Query, status

from farmreport.core.security import Principal, get_current_principal
from farmreport.core.upstream import get_record_source
from farmreport.schemas.common import fail, meta_now, ok
from farmreport.services.bucketing import item_to_dict
from farmreport.services.permissions import can_access_farm, is_allowed, Action
from farmreport.services.record_source import RecordSource, UpstreamError
from farmreport.services.report_days import load_report_day_overview

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/report-days", tags=["report-days"])


@router.get("/overview")
async def report_days_overview(
    farm_id: Optional[int] = Query(None, description="Farm; all-farms sessions may omit it"),
    principal: Principal = Depends(get_current_principal),
    source: RecordSource = Depends(get_record_source),
):
    """
    Saved report days, most recent first. Complete weeks (7 days inside one
    week-of-month) are grouped; every other date is listed on its own.
    """
    target_farm = principal.resolve_farm(farm_id)
    meta = meta_now(farm_id=target_farm)

    if target_farm is not None and not can_access_farm(
        principal.role, target_farm, principal.assigned_farm_ids
    ):
        return fail(
            "FORBIDDEN_FARM",
            f"Farm {target_farm} is outside your assigned farms.",
            status_code=status.HTTP_403_FORBIDDEN,
            meta=meta,
        )
    if target_farm is None and not principal.sees_all_farms:
        return fail(
            "FARM_REQUIRED",
            "Select a farm to list saved report days.",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            meta=meta,
        )

    try:
        items = await load_report_day_overview(source, target_farm)
    except UpstreamError as ex:
        logger.warning("report_dates.upstream_failed", farm_id=target_farm, error=str(ex))
        return fail(
            "UPSTREAM_UNAVAILABLE",
            "Saved report days could not be loaded.",
            status_code=status.HTTP_502_BAD_GATEWAY,
            details={"upstream_status": ex.status_code},
            meta=meta,
        )

    return ok(
        data={
            "items": [item_to_dict(i) for i in items],
            "canCreate": is_allowed(principal.role, Action.CREATE, False),
        },
        meta=meta,
    )
