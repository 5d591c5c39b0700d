# farmreport/services/bucketing.py
"""
Saved-days overview: groups report dates into complete weeks and loose days.

A bucket is (year, month, week-of-month) with week-of-month = ceil(day / 7).
Only a bucket holding exactly 7 dates becomes a week; anything else stays as
individual days. Buckets never span two months, so a 7-day run across a month
boundary is shown as 7 days.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from typing import Dict, Iterable, List, Tuple, Union

import structlog

logger = structlog.get_logger(__name__)

MONTHS_FR = (
    "janvier", "février", "mars", "avril", "mai", "juin",
    "juillet", "août", "septembre", "octobre", "novembre", "décembre",
)

WEEK_SIZE = 7

BucketKey = Tuple[int, int, int]


@dataclass(frozen=True)
class DayItem:
    date: str
    type: str = "day"

    @property
    def earliest(self) -> str:
        return self.date

    @property
    def label(self) -> str:
        return format_date_dmy(self.date)


@dataclass(frozen=True)
class WeekItem:
    label: str
    dates: Tuple[str, ...]
    type: str = "week"

    @property
    def earliest(self) -> str:
        return self.dates[0]


OverviewItem = Union[DayItem, WeekItem]


def week_of_month(d: date) -> int:
    return (d.day + WEEK_SIZE - 1) // WEEK_SIZE


def bucket_key(d: date) -> BucketKey:
    return d.year, d.month, week_of_month(d)


def week_label(d: date) -> str:
    return f"S{week_of_month(d)} de {MONTHS_FR[d.month - 1]} {d.year}"


def format_date_dmy(iso: str) -> str:
    """2024-03-05 -> 5/3/2024"""
    d = date.fromisoformat(iso)
    return f"{d.day}/{d.month}/{d.year}"


def _parse_dates(values: Iterable[str]) -> List[date]:
    parsed = set()
    for raw in values:
        if raw is None:
            continue
        try:
            parsed.add(date.fromisoformat(str(raw).strip()[:10]))
        except ValueError:
            logger.warning("report_dates.unparsable", value=repr(raw))
    return sorted(parsed)


def build_overview_items(unique_dates: Iterable[str]) -> List[OverviewItem]:
    """Bucket dates and return items most recent first."""
    buckets: Dict[BucketKey, List[date]] = {}
    for d in _parse_dates(unique_dates):
        buckets.setdefault(bucket_key(d), []).append(d)

    items: List[OverviewItem] = []
    for bucket_dates in buckets.values():
        ordered = sorted(bucket_dates)
        if len(ordered) == WEEK_SIZE:
            items.append(
                WeekItem(
                    label=week_label(ordered[0]),
                    dates=tuple(d.isoformat() for d in ordered),
                )
            )
        else:
            items.extend(DayItem(date=d.isoformat()) for d in ordered)

    items.sort(key=lambda item: item.earliest, reverse=True)
    return items


def item_to_dict(item: OverviewItem) -> dict:
    if isinstance(item, WeekItem):
        return {"type": item.type, "label": item.label, "dates": list(item.dates)}
    return {"type": item.type, "date": item.date, "label": item.label}


__all__ = [
    "DayItem",
    "MONTHS_FR",
    "OverviewItem",
    "WeekItem",
    "bucket_key",
    "build_overview_items",
    "format_date_dmy",
    "item_to_dict",
    "week_label",
    "week_of_month",
]
