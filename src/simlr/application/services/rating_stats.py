"""Rating aggregation: count, average, median and 10-bin histogram.

Hey future me - stats are recomputed from the raw scores on EVERY read and write.
There is no cached aggregate column anywhere, so a rating write and the stats in
its response can never disagree.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

MIN_SCORE = 1
MAX_SCORE = 10


@dataclass(frozen=True)
class RatingStats:
    """Aggregate over one album's ratings."""

    count: int
    average: float | None
    median: float | None
    histogram: list[int] = field(default_factory=lambda: [0] * MAX_SCORE)

    def to_dict(self) -> dict[str, Any]:
        return {
            "avg": self.average,
            "median": self.median,
            "count": self.count,
            "histogram": list(self.histogram),
        }


def round_one_decimal(numerator: int | float, denominator: int = 1) -> float:
    """Round ``numerator / denominator`` to 1 decimal, halves away from zero.

    Works on exact Decimal division so 8.45 rounds to 8.5, not 8.4.
    """
    value = Decimal(str(numerator)) / Decimal(denominator)
    return float(value.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def median(scores: list[int]) -> float | None:
    if not scores:
        return None
    ordered = sorted(scores)
    mid = len(ordered) // 2
    if len(ordered) % 2 == 1:
        return float(ordered[mid])
    return (ordered[mid - 1] + ordered[mid]) / 2


def histogram(scores: Iterable[int]) -> list[int]:
    """Index 0 ↔ score 1 … index 9 ↔ score 10. Out-of-range scores are ignored."""
    bins = [0] * MAX_SCORE
    for score in scores:
        if MIN_SCORE <= score <= MAX_SCORE:
            bins[score - 1] += 1
    return bins


def compute_rating_stats(scores: Iterable[int]) -> RatingStats:
    """Compute the aggregate for a list of scores.

    Example:
        >>> compute_rating_stats([8, 9, 7, 8, 10])
        RatingStats(count=5, average=8.4, median=8.0, histogram=[0, 0, 0, 0, 0, 0, 1, 2, 1, 1])
    """
    values = list(scores)
    if not values:
        return RatingStats(count=0, average=None, median=None, histogram=[0] * MAX_SCORE)
    return RatingStats(
        count=len(values),
        average=round_one_decimal(sum(values), len(values)),
        median=median(values),
        histogram=histogram(values),
    )
