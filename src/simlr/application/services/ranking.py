"""Ranking of posts and similarity edges by new / top / hot."""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Generic, TypeVar

from simlr.infrastructure.persistence.models import ensure_utc_aware

DEFAULT_EPOCH = 1134028003.0
DEFAULT_DIVISOR = 45000.0

T = TypeVar("T")


class SortOrder(str, Enum):
    NEW = "new"
    TOP = "top"
    HOT = "hot"


def hot_score(
    score: int,
    created_at: datetime,
    *,
    epoch: float = DEFAULT_EPOCH,
    divisor: float = DEFAULT_DIVISOR,
) -> float:
    """Reddit-style hot score.

    sign(score) * log10(max(|score|, 1)) + (created_at - epoch) / divisor

    Every ``divisor`` seconds of age is worth one order of magnitude of votes.
    """
    order = math.log10(max(abs(score), 1))
    sign = (score > 0) - (score < 0)
    seconds = ensure_utc_aware(created_at).timestamp()
    return sign * order + (seconds - epoch) / divisor


@dataclass
class Ranked(Generic[T]):
    """An item paired with the numbers it is ranked on."""

    item: T
    score: int
    created_at: datetime


def sort_ranked(
    items: Sequence[Ranked[T]],
    sort: SortOrder,
    *,
    epoch: float = DEFAULT_EPOCH,
    divisor: float = DEFAULT_DIVISOR,
) -> list[Ranked[T]]:
    """Order ranked items.

    Sorting is stable: pass candidates newest-first and ties keep that order.
    """
    if sort is SortOrder.NEW:
        return sorted(items, key=lambda r: ensure_utc_aware(r.created_at), reverse=True)
    if sort is SortOrder.TOP:
        return sorted(items, key=lambda r: r.score, reverse=True)
    return sorted(
        items,
        key=lambda r: hot_score(r.score, r.created_at, epoch=epoch, divisor=divisor),
        reverse=True,
    )
