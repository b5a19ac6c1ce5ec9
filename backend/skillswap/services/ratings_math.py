"""Rating arithmetic shared by the aggregator and its tests."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable

EMPTY_AVERAGE = 0.0


def round_rating(value: float | Decimal) -> float:
    """Round half-up to one decimal place (4.25 -> 4.3)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def average_rating(ratings: Iterable[int]) -> tuple[float, int]:
    """
    Plain mean of the given star ratings.

    Returns:
        (average rounded to one decimal, count); (0.0, 0) when empty
    """
    values = [int(r) for r in ratings]
    if not values:
        return EMPTY_AVERAGE, 0
    mean = Decimal(sum(values)) / Decimal(len(values))
    return round_rating(mean), len(values)
