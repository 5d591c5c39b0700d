# farmreport/utils/numeric.py
from __future__ import annotations

import math
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float]


def coerce_float(value) -> Optional[float]:
    """
    Best-effort float conversion that returns None when the value cannot be parsed.
    NaN and infinities count as unparsable.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        out = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(out) or math.isinf(out):
        return None
    return out


def coerce_int(value) -> Optional[int]:
    """
    Best-effort integer conversion with support for numeric strings/floats.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        as_float = coerce_float(value)
        if as_float is None:
            return None
        return int(as_float)


def percent(numerator: Number, denominator: Number) -> float:
    """
    numerator / denominator * 100 rounded half-up to two decimals.
    The denominator is floored at 1.
    """
    base = max(denominator, 1)
    raw = Decimal(str(numerator)) * Decimal(100) / Decimal(str(base))
    return float(raw.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def min_optional(current: Optional[Number], candidate: Optional[Number]) -> Optional[Number]:
    if candidate is None:
        return current
    if current is None:
        return candidate
    return min(current, candidate)


def max_optional(current: Optional[Number], candidate: Optional[Number]) -> Optional[Number]:
    if candidate is None:
        return current
    if current is None:
        return candidate
    return max(current, candidate)


__all__ = ["coerce_float", "coerce_int", "percent", "min_optional", "max_optional"]
