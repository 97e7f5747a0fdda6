'''
Tutor rating aggregate.
'''
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable


def aggregate_ratings(ratings: Iterable[int | float | Decimal]) -> tuple[Decimal, int]:
    """
    Returns (mean rounded to one decimal, count) for a tutor's review ratings.
    No reviews yields (0.0, 0).
    """
    values = [Decimal(str(r)) for r in ratings]
    if not values:
        return Decimal("0.0"), 0
    mean = sum(values) / len(values)
    return mean.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP), len(values)
