from __future__ import annotations

from statistics import median
from typing import Iterable, Optional

from .constants import UNKNOWN_ESTIMATE
from .schemas import EstimationStats


def calculate_estimation_stats(estimates: Iterable[float]) -> Optional[EstimationStats]:
    """Summarise revealed estimates, ignoring "?" votes.

    Returns ``None`` when nobody cast a numeric vote.
    """
    values = sorted(v for v in estimates if v != UNKNOWN_ESTIMATE)
    if not values:
        return None
    return EstimationStats(
        min=values[0],
        max=values[-1],
        average=round(sum(values) / len(values), 1),
        median=median(values),
        consensus=all(v == values[0] for v in values),
    )


__all__ = ["calculate_estimation_stats"]
