"""Risk aggregation.

Combines the sandwich and front-run detector results into a single
weighted score, an attack classification and a fiat loss estimate.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from mev_scanner.core.config import EngineConfig
from mev_scanner.core.gas_stats import round_half_up
from mev_scanner.data.models import AttackType, DetectionResult


@dataclass(frozen=True)
class AggregatedRisk:
    """Intermediate result handed to the advisory step."""

    risk_score: int
    attack_type: AttackType
    estimated_loss_usd: Decimal
    detected_patterns: tuple[str, ...]


class RiskAggregator:
    """Weight and classify detector outputs.

    Usage:
        aggregator = RiskAggregator(config)
        risk = aggregator.aggregate(sandwich, front_run, amount_in, "ETH")
    """

    def __init__(self, config: EngineConfig | None = None) -> None:
        self.config = config or EngineConfig()

    def aggregate(
        self,
        sandwich: DetectionResult,
        front_run: DetectionResult,
        amount_in: Decimal,
        token_in: str,
    ) -> AggregatedRisk:
        """Combine both detector results.

        Args:
            sandwich: Sandwich detector output.
            front_run: Front-run detector output.
            amount_in: Trade size in token_in units.
            token_in: Symbol used to pick the fiat reference multiplier.

        Returns:
            AggregatedRisk with score, classification, loss and patterns.
        """
        return AggregatedRisk(
            risk_score=self.combined_score(sandwich.score, front_run.score),
            attack_type=self.classify(sandwich.score, front_run.score),
            estimated_loss_usd=self.estimate_loss(
                amount_in, sandwich.score, front_run.score, token_in
            ),
            detected_patterns=sandwich.patterns + front_run.patterns,
        )

    def combined_score(self, sandwich_score: int, frontrun_score: int) -> int:
        """Weighted average of the two sub-scores, rounded half-up."""
        weighted = (
            Decimal(sandwich_score) * self.config.sandwich_weight
            + Decimal(frontrun_score) * self.config.frontrun_weight
        )
        return int(round_half_up(weighted))

    def classify(self, sandwich_score: int, frontrun_score: int) -> AttackType:
        """Pick the dominant attack type.

        Ties go to front-run. BACK_RUN is never returned.
        """
        threshold = self.config.classification_threshold
        if sandwich_score > frontrun_score and sandwich_score > threshold:
            return AttackType.SANDWICH
        if frontrun_score > threshold:
            return AttackType.FRONT_RUN
        return AttackType.NONE

    def estimate_loss(
        self,
        amount_in: Decimal,
        sandwich_score: int,
        frontrun_score: int,
        token_in: str,
    ) -> Decimal:
        """Expected fiat loss for the trade, rounded to cents."""
        sandwich_loss = amount_in * self.config.sandwich_loss_rate * sandwich_score / 100
        frontrun_loss = amount_in * self.config.frontrun_loss_rate * frontrun_score / 100
        loss = (sandwich_loss + frontrun_loss) * self.config.reference_multiplier(token_in)
        return round_half_up(loss, places=2)
