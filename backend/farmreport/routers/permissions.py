# farmreport/routers/permissions.py
from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from farmreport.core.security import Principal, get_current_principal
from farmreport.schemas.common import meta_now, ok
from farmreport.schemas.permissions import RowPermissionsQuery
from farmreport.services.permissions import (
    annotate_rows,
    can_access_all_farms,
    can_manage_users,
    decide,
    has_full_access,
    is_read_only,
)

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


@router.get("")
def get_permissions(
    persisted: bool = Query(False, description="Whether the target row/cell already has a storage id"),
    principal: Principal = Depends(get_current_principal),
):
    decision = decide(principal.role, persisted)
    return ok(
        data={
            "role": principal.role.value,
            "decision": decision.to_dict(),
            "isReadOnly": is_read_only(principal.role),
            "hasFullAccess": has_full_access(principal.role),
            "canManageUsers": can_manage_users(principal.role),
            "canAccessAllFarms": can_access_all_farms(principal.role),
            "farmIds": list(principal.assigned_farm_ids),
        },
        meta=meta_now(farm_id=principal.farm_id, persisted=persisted),
    )


@router.post("/rows")
def get_row_permissions(
    body: RowPermissionsQuery,
    principal: Principal = Depends(get_current_principal),
):
    """Per-row decisions: saved rows may be locked while new rows in the same view stay editable."""
    rows = annotate_rows(principal.role, body.row_ids)
    return ok(
        data=[
            {"rowId": r.row_id, "persisted": r.persisted, **r.decision.to_dict()}
            for r in rows
        ],
        meta=meta_now(farm_id=principal.farm_id, count=len(rows)),
    )
