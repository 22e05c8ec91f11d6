from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

_CENT = Decimal("0.01")


def round_money(value: Any) -> float:
    """Round to cents, half away from zero (0.125 -> 0.13).

    Goes through ``repr`` of the float so 1.005 rounds the way a cashier
    would expect instead of following its binary representation.
    """
    try:
        dec = Decimal(repr(float(value)))
    except (TypeError, ValueError, InvalidOperation):
        return 0.0
    return float(dec.quantize(_CENT, rounding=ROUND_HALF_UP))


def round_percent(value: float) -> int:
    try:
        dec = Decimal(repr(float(value)))
    except (TypeError, ValueError, InvalidOperation):
        return 0
    return int(dec.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_float(value: Any, default: float = 0.0) -> float:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        value = value.strip().replace(",", ".")
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def to_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    if value is None or value == "":
        return default
    try:
        return int(float(str(value).strip().replace(",", ".")))
    except (TypeError, ValueError):
        return default


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))
