"""Rounding helpers shared by every report surface."""

from decimal import ROUND_HALF_UP, Decimal
from typing import Union

Number = Union[int, float]


def round_half_up(value: Number, digits: int = 0) -> Number:
    """Round halves away from zero, unlike the built-in banker's rounding."""
    quantum = Decimal(1).scaleb(-digits)
    rounded = Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if digits == 0 else float(rounded)


def percent(count: Number, total: Number) -> int:
    """Integer percentage of ``count`` over ``total``; 0 when there is no total."""
    if not total:
        return 0
    return round_half_up(100 * count / total)


def format_percent(value: Number) -> str:
    if isinstance(value, float):
        return f"{value:.1f}%"
    return f"{value}%"
