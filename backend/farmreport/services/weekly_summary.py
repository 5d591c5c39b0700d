# farmreport/services/weekly_summary.py
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Dict, List, Mapping, Optional, Sequence, Tuple

import structlog

from farmreport.observability.instrument import log_job
from farmreport.observability.metrics import UPSTREAM_FAILURES
from farmreport.schemas.records import DailyRecord, LotSetup, WeeklyProduction, WeeklyStock
from farmreport.services.aggregation import (
    ReportingKey,
    WeeklyAggregate,
    aggregate_week,
    reporting_keys,
)
from farmreport.services.record_source import RecordSource
from farmreport.services.week_totals import (
    ProductionSummary,
    SetupSummary,
    StockSummary,
    summarize_production,
    summarize_setups,
    summarize_stock,
)

logger = structlog.get_logger("weekly_summary")


@dataclass
class WeekInputs:
    """Everything fetched for one (farm, lot, week); one slot per key and resource."""

    keys: List[ReportingKey]
    setups: Dict[ReportingKey, Optional[LotSetup]] = field(default_factory=dict)
    records: Dict[ReportingKey, List[DailyRecord]] = field(default_factory=dict)
    production: Dict[ReportingKey, Optional[WeeklyProduction]] = field(default_factory=dict)
    stock: Dict[ReportingKey, Optional[WeeklyStock]] = field(default_factory=dict)
    failures: List[Tuple[str, str]] = field(default_factory=list)


@dataclass(frozen=True)
class WeeklySummary:
    farm_id: int
    lot: str
    week: str
    buildings: Tuple[str, ...]
    aggregate: WeeklyAggregate
    setup: SetupSummary
    production: ProductionSummary
    stock: StockSummary
    degraded_keys: Tuple[str, ...] = ()


def _fallback(resource: str) -> Any:
    return [] if resource == "records" else None


async def fetch_week_inputs(
    source: RecordSource,
    *,
    farm_id: int,
    lot: str,
    week: str,
    buildings: Sequence[str],
) -> WeekInputs:
    """
    Fan out every (key, resource) request at once and wait for all of them.

    A request that fails only empties its own slot; the others are neither
    cancelled nor delayed.
    """
    keys = reporting_keys(buildings)
    inputs = WeekInputs(keys=keys)

    slots: List[Tuple[str, ReportingKey]] = []
    calls: List[Awaitable[Any]] = []
    for key in keys:
        sex = key.sex.value
        requests = {
            "setup": source.get_setup(farm_id, lot, sex, key.building),
            "records": source.list_weekly_records(farm_id, lot, sex, key.building, week),
            "production": source.get_weekly_production(farm_id, lot, week, sex, key.building),
            "stock": source.get_weekly_stock(farm_id, lot, week, sex, key.building),
        }
        for resource, call in requests.items():
            slots.append((resource, key))
            calls.append(call)

    results = await asyncio.gather(*calls, return_exceptions=True)

    targets: Mapping[str, Dict[ReportingKey, Any]] = {
        "setup": inputs.setups,
        "records": inputs.records,
        "production": inputs.production,
        "stock": inputs.stock,
    }
    for (resource, key), result in zip(slots, results):
        if isinstance(result, BaseException):
            UPSTREAM_FAILURES.labels(resource=resource).inc()
            logger.warning(
                "upstream.fetch_failed",
                resource=resource,
                key=key.label(),
                error=str(result) or type(result).__name__,
            )
            inputs.failures.append((resource, key.label()))
            result = _fallback(resource)
        elif result is None and resource == "records":
            result = []
        targets[resource][key] = result

    return inputs


def summarize_week(
    inputs: WeekInputs,
    *,
    farm_id: int,
    lot: str,
    week: str,
) -> WeeklySummary:
    """Pure part: turn fetched inputs into the consolidated weekly summary."""
    keys = inputs.keys
    aggregate = aggregate_week(inputs.records, keys=keys)
    setup = summarize_setups(keys, inputs.setups)
    production = summarize_production(keys, inputs.production)
    stock = summarize_stock(
        keys,
        inputs.stock,
        inputs.setups,
        start_count=aggregate.start_count,
        weekly_mortality=aggregate.totals.mortality_count,
        production=production,
    )
    buildings = tuple(dict.fromkeys(k.building for k in keys))
    degraded = tuple(sorted({label for _, label in inputs.failures}))
    return WeeklySummary(
        farm_id=farm_id,
        lot=lot,
        week=week,
        buildings=buildings,
        aggregate=aggregate,
        setup=setup,
        production=production,
        stock=stock,
        degraded_keys=degraded,
    )


@log_job("weekly_summary.load")
async def load_weekly_summary(
    source: RecordSource,
    *,
    farm_id: int,
    lot: str,
    week: str,
    buildings: Sequence[str],
) -> WeeklySummary:
    inputs = await fetch_week_inputs(
        source, farm_id=farm_id, lot=lot, week=week, buildings=buildings
    )
    return summarize_week(inputs, farm_id=farm_id, lot=lot, week=week)


def summary_to_dict(summary: WeeklySummary) -> dict:
    agg = summary.aggregate
    production = summary.production
    return {
        "farmId": summary.farm_id,
        "lot": summary.lot,
        "week": summary.week,
        "buildings": list(summary.buildings),
        "setup": {
            "initialCount": summary.setup.initial_count,
            "placementDate": summary.setup.placement_date,
            "strain": summary.setup.strain,
        },
        "startCount": agg.start_count,
        "effectiveStartCount": agg.effective_start_count,
        "rows": [
            {
                "recordDate": r.record_date,
                "ageInDays": r.age_in_days,
                "mortalityCount": r.mortality_count,
                "mortalityPercent": r.mortality_percent,
                "cumulativeMortality": r.cumulative_mortality,
                "cumulativeMortalityPercent": r.cumulative_mortality_percent,
                "waterLiters": r.water_liters,
                "tempMin": r.temp_min,
                "tempMax": r.temp_max,
            }
            for r in agg.rows
        ],
        "totals": {
            "mortalityCount": agg.totals.mortality_count,
            "waterLiters": agg.totals.water_liters,
        },
        "production": {
            "reportCount": production.report_count,
            "reportWeight": production.report_weight,
            "saleCount": production.sale_count,
            "saleWeight": production.sale_weight,
            "consumptionCount": production.consumption_count,
            "consumptionWeight": production.consumption_weight,
            "otherCount": production.other_count,
            "otherWeight": production.other_weight,
            "totalCount": production.total_count,
            "totalWeight": production.total_weight,
        },
        "stock": {
            "remainingAtWeekEnd": summary.stock.remaining_at_week_end,
            "liveWeightKg": summary.stock.live_weight_kg,
            "feedStock": summary.stock.feed_stock,
        },
        "degradedKeys": list(summary.degraded_keys),
    }


__all__ = [
    "WeekInputs",
    "WeeklySummary",
    "fetch_week_inputs",
    "load_weekly_summary",
    "summarize_week",
    "summary_to_dict",
]
