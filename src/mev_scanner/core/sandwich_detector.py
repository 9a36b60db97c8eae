"""Sandwich attack detector.

Looks for the footprint of a front-run/back-run pair around a victim swap:
1. Senders with several pending transactions on consecutive nonces
2. Those senders outbidding the batch average gas price
3. Clusters of near-identical transaction values across the batch

Each signal adds a fixed contribution; the total is capped at 100.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from mev_scanner.core.config import DetectorThresholds
from mev_scanner.core.gas_stats import GasSnapshot
from mev_scanner.core.logging import ScanLogger
from mev_scanner.data.models import DetectionResult, PendingTransaction, TransactionBatch

SIMILAR_VALUES_PATTERN = "Similar transaction values detected (potential coordinated attack)"


class SandwichDetector:
    """Score a batch for coordinated sandwich activity.

    Usage:
        detector = SandwichDetector()
        result = detector.detect(batch)
        print(result.score, result.patterns)
    """

    def __init__(
        self,
        thresholds: DetectorThresholds | None = None,
        logger: ScanLogger | None = None,
    ) -> None:
        """Initialize detector.

        Args:
            thresholds: Trigger levels and score contributions.
            logger: Optional scan logger.
        """
        self.thresholds = thresholds or DetectorThresholds()
        self.logger = logger

    def detect(
        self,
        batch: TransactionBatch,
        snapshot: GasSnapshot | None = None,
    ) -> DetectionResult:
        """Run all sandwich checks over the batch.

        Args:
            batch: Pending transactions to inspect. Never modified.
            snapshot: Precomputed gas statistics for the same batch.

        Returns:
            DetectionResult with the capped score and matched patterns.
        """
        if len(batch) < 2:
            return DetectionResult(score=0)

        snapshot = snapshot or GasSnapshot.from_prices(batch.gas_prices)
        patterns: list[str] = []
        score = 0

        for sender, txs in self._group_by_sender(batch.transactions).items():
            if len(txs) < 2:
                continue

            if self._has_sequential_nonces(txs):
                patterns.append(
                    f"Sequential transactions from {sender[:10]}... (potential sandwich)"
                )
                score += self.thresholds.sequential_nonce_score

            if self._has_high_gas(txs, snapshot.mean):
                patterns.append(f"High gas prices detected from {sender[:10]}...")
                score += self.thresholds.sender_high_gas_score

        clusters = find_value_clusters(batch.values, self.thresholds.value_cluster_tolerance)
        if clusters:
            patterns.append(SIMILAR_VALUES_PATTERN)
            score += self.thresholds.value_cluster_score

        result = DetectionResult(
            score=min(self.thresholds.max_score, score),
            patterns=tuple(patterns),
        )

        if self.logger and result.patterns:
            self.logger.debug(
                "Sandwich patterns matched",
                {"score": result.score, "patterns": list(result.patterns)},
            )

        return result

    @staticmethod
    def _group_by_sender(
        transactions: Sequence[PendingTransaction],
    ) -> dict[str, list[PendingTransaction]]:
        """Group transactions by sender, keeping first-seen order."""
        groups: dict[str, list[PendingTransaction]] = {}
        for tx in transactions:
            groups.setdefault(tx.sender, []).append(tx)
        return groups

    @staticmethod
    def _has_sequential_nonces(txs: list[PendingTransaction]) -> bool:
        """Check that sorted nonces form a contiguous run."""
        nonces = sorted(tx.nonce for tx in txs)
        return all(b == a + 1 for a, b in zip(nonces, nonces[1:]))

    def _has_high_gas(self, txs: list[PendingTransaction], batch_mean: float | None) -> bool:
        """Check whether any transaction outbids the batch mean by the multiplier."""
        if batch_mean is None:
            return False
        limit = batch_mean * self.thresholds.sender_high_gas_multiplier
        return any(tx.gas_price > limit for tx in txs)


def find_value_clusters(
    values: Sequence[Decimal],
    tolerance: Decimal = Decimal("0.1"),
) -> list[list[Decimal]]:
    """Greedily cluster sorted values that sit close to their neighbour.

    Two adjacent sorted values join the same cluster when their gap is
    strictly below ``tolerance`` times the larger one. Only clusters with
    at least two members are returned.

    Args:
        values: Transaction values in any order.
        tolerance: Relative gap allowed between neighbours.

    Returns:
        List of clusters, each sorted ascending.
    """
    if not values:
        return []

    ordered = sorted(values)
    clusters: list[list[Decimal]] = []
    current = [ordered[0]]

    for prev, value in zip(ordered, ordered[1:]):
        if abs(value - prev) < value * tolerance:
            current.append(value)
        else:
            if len(current) > 1:
                clusters.append(current)
            current = [value]

    if len(current) > 1:
        clusters.append(current)
    return clusters
