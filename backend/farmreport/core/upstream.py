from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends

from farmreport.config import get_settings
from farmreport.core.security import Principal, get_current_principal
from farmreport.services.record_source import HttpRecordSource, RecordSource


async def get_record_source(
    principal: Principal = Depends(get_current_principal),
) -> AsyncGenerator[RecordSource, None]:
    """One upstream client per request, authenticated as the caller."""
    settings = get_settings()
    source = HttpRecordSource(
        settings.UPSTREAM_BASE_URL,
        token=principal.token,
        timeout=settings.upstream_timeout,
    )
    try:
        yield source
    finally:
        await source.aclose()
