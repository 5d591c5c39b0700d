# farmreport/services/week_totals.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence

from farmreport.schemas.records import LotSetup, WeeklyProduction, WeeklyStock
from farmreport.services.aggregation import ReportingKey


@dataclass(frozen=True)
class SetupSummary:
    initial_count: int = 0
    placement_date: Optional[str] = None
    strain: Optional[str] = None


@dataclass(frozen=True)
class ProductionSummary:
    report_count: float = 0.0
    report_weight: float = 0.0
    sale_count: float = 0.0
    sale_weight: float = 0.0
    consumption_count: float = 0.0
    consumption_weight: float = 0.0
    other_count: float = 0.0
    other_weight: float = 0.0

    @property
    def total_count(self) -> float:
        return self.report_count + self.sale_count + self.consumption_count + self.other_count

    @property
    def total_weight(self) -> float:
        return self.report_weight + self.sale_weight + self.consumption_weight + self.other_weight

    @property
    def exits_count(self) -> float:
        # Carry-over stays in the building; only these leave the flock
        return self.sale_count + self.consumption_count + self.other_count


@dataclass(frozen=True)
class StockSummary:
    remaining_at_week_end: float = 0.0
    live_weight_kg: float = 0.0
    feed_stock: Optional[float] = None


def summarize_setups(
    keys: Sequence[ReportingKey],
    setups: Mapping[ReportingKey, Optional[LotSetup]],
) -> SetupSummary:
    """Total placed head count; date and strain come from the first key that has them."""
    total = 0
    placement_date: Optional[str] = None
    strain: Optional[str] = None
    for key in keys:
        setup = setups.get(key)
        if setup is None:
            continue
        if setup.initial_count is not None:
            total += setup.initial_count
        if placement_date is None and setup.placement_date:
            placement_date = setup.placement_date
        if strain is None and setup.strain:
            strain = setup.strain
    return SetupSummary(initial_count=total, placement_date=placement_date, strain=strain)


def summarize_production(
    keys: Sequence[ReportingKey],
    production: Mapping[ReportingKey, Optional[WeeklyProduction]],
) -> ProductionSummary:
    fields = ProductionSummary.__dataclass_fields__.keys()
    sums = dict.fromkeys(fields, 0.0)
    for key in keys:
        entry = production.get(key)
        if entry is None:
            continue
        for name in fields:
            value = getattr(entry, name)
            if value is not None:
                sums[name] += value
    return ProductionSummary(**sums)


def last_active_setup(
    keys: Sequence[ReportingKey],
    setups: Mapping[ReportingKey, Optional[LotSetup]],
) -> Optional[ReportingKey]:
    """Last key in chain order that has a saved setup."""
    last = None
    for key in keys:
        if setups.get(key) is not None:
            last = key
    return last


def summarize_stock(
    keys: Sequence[ReportingKey],
    stock: Mapping[ReportingKey, Optional[WeeklyStock]],
    setups: Mapping[ReportingKey, Optional[LotSetup]],
    *,
    start_count: int,
    weekly_mortality: int,
    production: ProductionSummary,
) -> StockSummary:
    """
    Remaining head count is start - mortality - exits over the consolidated
    week, floored at zero. Per-key remaining counts from the backend are never
    summed: they are chained across buildings (B2 start = B1 remaining).
    """
    remaining = max(0.0, float(start_count) - weekly_mortality - production.exits_count)

    live_weight = 0.0
    for key in keys:
        entry = stock.get(key)
        if entry is not None and entry.live_weight_kg is not None:
            live_weight += entry.live_weight_kg

    feed_stock = None
    last = last_active_setup(keys, setups)
    if last is not None and stock.get(last) is not None:
        feed_stock = stock[last].feed_stock

    return StockSummary(
        remaining_at_week_end=remaining,
        live_weight_kg=live_weight,
        feed_stock=feed_stock,
    )


__all__ = [
    "ProductionSummary",
    "SetupSummary",
    "StockSummary",
    "last_active_setup",
    "summarize_production",
    "summarize_setups",
    "summarize_stock",
]
