from fastapi import APIRouter

from farmreport.config import get_settings
from farmreport.schemas.common import ok, meta_now

router = APIRouter(prefix="/api/health", tags=["health"])

@router.get("")
def healthcheck():
    # Liveness only; the upstream backend is not probed here
    settings = get_settings()
    return ok(
        data={"status": "ok", "env": settings.ENV, "upstream": settings.UPSTREAM_BASE_URL},
        meta=meta_now(),
    )
