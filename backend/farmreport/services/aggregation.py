# farmreport/services/aggregation.py
"""
Weekly aggregation engine.

Merges the per-(building, sex) daily records of one lot/week into a single
series keyed by record date, with running cumulative mortality. Everything in
here is pure: the same inputs always give the same rows, and nothing is cached
between calls.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from functools import reduce
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from farmreport.schemas.records import SEXES, DailyRecord, Sex
from farmreport.utils.numeric import max_optional, min_optional, percent


@dataclass(frozen=True, order=True)
class ReportingKey:
    building: str
    sex: Sex

    def label(self) -> str:
        return f"{self.building}|{self.sex.value}"


def reporting_keys(buildings: Iterable[str]) -> List[ReportingKey]:
    """Buildings x sexes in chain order: B1 Mâle, B1 Femelle, B2 Mâle..."""
    keys: List[ReportingKey] = []
    seen = set()
    for building in buildings:
        name = (building or "").strip()
        if not name or name in seen:
            continue
        seen.add(name)
        keys.extend(ReportingKey(name, sex) for sex in SEXES)
    return keys


@dataclass(frozen=True)
class DayAccumulator:
    """Running per-date totals. Counts start at zero, optional fields at None."""

    record_date: str
    mortality_count: int = 0
    water_liters: float = 0.0
    age_in_days: Optional[int] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None

    def merge(self, record: DailyRecord) -> "DayAccumulator":
        return replace(
            self,
            mortality_count=self.mortality_count + (record.mortality_count or 0),
            water_liters=self.water_liters + (record.water_liters or 0.0),
            age_in_days=min_optional(self.age_in_days, record.age_in_days),
            temp_min=min_optional(self.temp_min, record.temp_min),
            temp_max=max_optional(self.temp_max, record.temp_max),
        )


@dataclass(frozen=True)
class AggregatedDayRow:
    record_date: str
    age_in_days: Optional[int]
    mortality_count: int
    mortality_percent: float
    cumulative_mortality: int
    cumulative_mortality_percent: float
    water_liters: float
    temp_min: Optional[float]
    temp_max: Optional[float]


@dataclass(frozen=True)
class WeeklyTotals:
    mortality_count: int = 0
    water_liters: float = 0.0


@dataclass(frozen=True)
class WeeklyAggregate:
    rows: Tuple[AggregatedDayRow, ...] = ()
    totals: WeeklyTotals = field(default_factory=WeeklyTotals)
    # Raw sum of the first known start count of every key
    start_count: int = 0
    # Denominator actually used for percentages
    effective_start_count: int = 1


def start_count_for(records: Sequence[DailyRecord]) -> Optional[int]:
    """First start count carried by a record, in the order the list was supplied."""
    for record in records:
        if record.start_count is not None:
            return record.start_count
    return None


def total_start_count(records_by_key: Mapping[ReportingKey, Sequence[DailyRecord]]) -> int:
    total = 0
    for records in records_by_key.values():
        first = start_count_for(records or ())
        if first is not None:
            total += first
    return total


def _fold(acc: Dict[str, DayAccumulator], record: DailyRecord) -> Dict[str, DayAccumulator]:
    if not record.record_date:
        return acc
    current = acc.get(record.record_date) or DayAccumulator(record_date=record.record_date)
    acc[record.record_date] = current.merge(record)
    return acc


def fold_days(records: Iterable[DailyRecord]) -> Dict[str, DayAccumulator]:
    return reduce(_fold, records, {})


def build_rows(days: Mapping[str, DayAccumulator], effective_start: int) -> List[AggregatedDayRow]:
    rows: List[AggregatedDayRow] = []
    running = 0
    # ISO dates sort lexicographically in calendar order
    for record_date in sorted(days):
        day = days[record_date]
        running += day.mortality_count
        rows.append(
            AggregatedDayRow(
                record_date=record_date,
                age_in_days=day.age_in_days,
                mortality_count=day.mortality_count,
                mortality_percent=percent(day.mortality_count, effective_start),
                cumulative_mortality=running,
                cumulative_mortality_percent=percent(running, effective_start),
                water_liters=day.water_liters,
                temp_min=day.temp_min,
                temp_max=day.temp_max,
            )
        )
    return rows


def aggregate_week(
    records_by_key: Mapping[ReportingKey, Sequence[DailyRecord]],
    keys: Optional[Sequence[ReportingKey]] = None,
) -> WeeklyAggregate:
    """
    Consolidate every key's daily records into one row per date.

    `keys` fixes the walk order (and therefore float summation order); it
    defaults to the mapping's own order. Keys absent from the mapping count as
    "no data".
    """
    ordered = list(keys) if keys is not None else list(records_by_key.keys())
    scoped = {k: list(records_by_key.get(k) or ()) for k in ordered}

    start = total_start_count(scoped)
    effective = max(start, 1)

    stream = (record for k in ordered for record in scoped[k])
    rows = build_rows(fold_days(stream), effective)

    totals = WeeklyTotals(
        mortality_count=sum(r.mortality_count for r in rows),
        water_liters=sum((r.water_liters for r in rows), 0.0),
    )
    return WeeklyAggregate(
        rows=tuple(rows),
        totals=totals,
        start_count=start,
        effective_start_count=effective,
    )


__all__ = [
    "AggregatedDayRow",
    "DayAccumulator",
    "ReportingKey",
    "WeeklyAggregate",
    "WeeklyTotals",
    "aggregate_week",
    "build_rows",
    "fold_days",
    "reporting_keys",
    "start_count_for",
    "total_start_count",
]
