"""Gas price statistics shared by the detectors.

All functions operate on an instantaneous snapshot of gas prices (wei).
Mean and standard deviation are undefined for an empty snapshot and
raise; percentile helpers return the neutral 50 instead.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Sequence

import numpy as np

NEUTRAL_PERCENTILE = 50


def round_half_up(value: float | Decimal, places: int = 0) -> Decimal:
    """Round half away from zero (not banker's rounding)."""
    exponent = Decimal(1).scaleb(-places)
    return Decimal(str(value)).quantize(exponent, rounding=ROUND_HALF_UP)


def _as_array(prices: Sequence[int]) -> np.ndarray:
    if len(prices) == 0:
        raise ValueError("Gas statistics require at least one price")
    return np.asarray(prices, dtype=np.float64)


def mean(prices: Sequence[int]) -> float:
    """Arithmetic mean of gas prices."""
    return float(np.mean(_as_array(prices)))


def stddev(prices: Sequence[int]) -> float:
    """Population standard deviation of gas prices."""
    return float(np.std(_as_array(prices)))


def percentile_rank(prices: Sequence[int], reference: float) -> int:
    """Percentage of prices at or below ``reference``, rounded half-up."""
    if len(prices) == 0:
        return NEUTRAL_PERCENTILE
    arr = np.sort(np.asarray(prices, dtype=np.float64))
    at_or_below = int(np.count_nonzero(arr <= reference))
    return int(round_half_up(Decimal(at_or_below * 100) / Decimal(len(arr))))


def batch_percentile(prices: Sequence[int]) -> int:
    """Percentile rank of the batch median (upper median for even sizes)."""
    if len(prices) == 0:
        return NEUTRAL_PERCENTILE
    ordered = sorted(prices)
    return percentile_rank(ordered, ordered[len(ordered) // 2])


def price_at_rank(prices: Sequence[int], fraction: float) -> int:
    """Price found at index ``floor(fraction * n)`` of the sorted prices."""
    if len(prices) == 0:
        raise ValueError("Cannot rank an empty price list")
    ordered = sorted(prices)
    index = min(math.floor(len(ordered) * fraction), len(ordered) - 1)
    return ordered[index]


@dataclass(frozen=True)
class GasSnapshot:
    """Statistics of one batch, computed once and shared."""

    count: int
    mean: float | None
    stddev: float | None
    percentile: int

    @classmethod
    def from_prices(cls, prices: Sequence[int]) -> GasSnapshot:
        """Compute the snapshot; mean/stddev stay None for an empty batch."""
        if len(prices) == 0:
            return cls(count=0, mean=None, stddev=None, percentile=NEUTRAL_PERCENTILE)
        return cls(
            count=len(prices),
            mean=mean(prices),
            stddev=stddev(prices),
            percentile=batch_percentile(prices),
        )
