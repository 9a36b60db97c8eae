"""Front-running detector.

Flags statistically anomalous gas competition in a batch: a crowded
mempool, many transactions bidding above the average, extreme outliers
and high overall gas volatility.
"""

from __future__ import annotations

from mev_scanner.core.config import DetectorThresholds
from mev_scanner.core.gas_stats import GasSnapshot, round_half_up
from mev_scanner.core.logging import ScanLogger
from mev_scanner.data.models import DetectionResult, TransactionBatch

VOLATILITY_PATTERN = "High gas price volatility detected"


def _pct_above(multiplier: float) -> int:
    """Express a gas multiplier as percent above average (1.3 -> 30)."""
    return int(round_half_up((multiplier - 1) * 100))


class FrontRunDetector:
    """Score a batch for priority-gas competition.

    Usage:
        detector = FrontRunDetector()
        result = detector.detect(batch)
    """

    def __init__(
        self,
        thresholds: DetectorThresholds | None = None,
        logger: ScanLogger | None = None,
    ) -> None:
        self.thresholds = thresholds or DetectorThresholds()
        self.logger = logger

    def detect(
        self,
        batch: TransactionBatch,
        snapshot: GasSnapshot | None = None,
    ) -> DetectionResult:
        """Run all front-running checks over the batch.

        Args:
            batch: Pending transactions to inspect.
            snapshot: Precomputed gas statistics for the same batch.

        Returns:
            DetectionResult with the capped score and matched patterns.
        """
        if batch.is_empty:
            return DetectionResult(score=0)

        t = self.thresholds
        snapshot = snapshot or GasSnapshot.from_prices(batch.gas_prices)
        avg, spread = snapshot.mean, snapshot.stddev
        if avg is None or spread is None:
            return DetectionResult(score=0)

        gas_prices = batch.gas_prices
        patterns: list[str] = []
        score = 0

        if len(batch) > t.busy_mempool_size:
            patterns.append(f"High mempool activity: {len(batch)} competing transactions")
            score += t.busy_mempool_score

        elevated = sum(1 for g in gas_prices if g > avg * t.elevated_gas_multiplier)
        if elevated > t.elevated_gas_min_count:
            pct = _pct_above(t.elevated_gas_multiplier)
            patterns.append(f"{elevated} transactions with gas prices >{pct}% above average")
            score += t.elevated_gas_score

        # Independent of the elevated count; the two filters overlap
        extreme = sum(1 for g in gas_prices if g > avg * t.extreme_gas_multiplier)
        if extreme > 0:
            pct = _pct_above(t.extreme_gas_multiplier)
            patterns.append(f"{extreme} transactions with gas prices >{pct}% above average")
            score += t.extreme_gas_score

        if spread > avg * t.volatility_ratio:
            patterns.append(VOLATILITY_PATTERN)
            score += t.volatility_score

        result = DetectionResult(score=min(t.max_score, score), patterns=tuple(patterns))

        if self.logger and result.patterns:
            self.logger.debug(
                "Front-run patterns matched",
                {
                    "score": result.score,
                    "mean_gas_wei": avg,
                    "stddev_gas_wei": spread,
                    "patterns": list(result.patterns),
                },
            )

        return result
