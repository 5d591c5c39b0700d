# farmreport/services/report_days.py
from __future__ import annotations

from typing import List, Optional

from farmreport.observability.instrument import log_job
from farmreport.services.bucketing import OverviewItem, build_overview_items
from farmreport.services.record_source import RecordSource


@log_job("report_days.overview")
async def load_report_day_overview(source: RecordSource, farm_id: Optional[int]) -> List[OverviewItem]:
    """Saved report dates for a farm (or every farm when None), bucketed for navigation."""
    dates = await source.list_report_dates(farm_id)
    return build_overview_items(dates)
