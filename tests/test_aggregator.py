"""Tests for risk aggregation."""

from __future__ import annotations

from decimal import Decimal

import pytest

from mev_scanner.core.aggregator import RiskAggregator
from mev_scanner.core.config import EngineConfig
from mev_scanner.data.models import AttackType, DetectionResult


class TestCombinedScore:
    """Tests for weighted score combination."""

    @pytest.fixture
    def aggregator(self) -> RiskAggregator:
        """Aggregator with default weights."""
        return RiskAggregator()

    @pytest.mark.parametrize(
        "sandwich,front_run,expected",
        [
            (0, 0, 0),
            (55, 0, 33),
            (0, 15, 6),
            (0, 90, 36),
            (100, 100, 100),
            (1, 1, 1),
            (5, 0, 3),  # 3.0
            (0, 5, 2),  # 2.0
            (25, 0, 15),  # 15.0
            (1, 2, 1),  # 0.6 + 0.8 = 1.4
            (2, 1, 2),  # 1.2 + 0.4 = 1.6
        ],
    )
    def test_weights(
        self, aggregator: RiskAggregator, sandwich: int, front_run: int, expected: int
    ) -> None:
        """Sandwich weighs 0.6 and front-run 0.4."""
        assert aggregator.combined_score(sandwich, front_run) == expected

    def test_halves_round_up(self) -> None:
        """x.5 rounds up, not to even."""
        config = EngineConfig(sandwich_weight=Decimal("0.5"), frontrun_weight=Decimal("0.5"))
        aggregator = RiskAggregator(config)
        assert aggregator.combined_score(1, 0) == 1
        assert aggregator.combined_score(5, 0) == 3

    def test_bounded(self, aggregator: RiskAggregator) -> None:
        """Scores in range always combine into range."""
        for sandwich in range(0, 101, 5):
            for front_run in range(0, 101, 5):
                assert 0 <= aggregator.combined_score(sandwich, front_run) <= 100


class TestClassify:
    """Tests for attack classification."""

    @pytest.fixture
    def aggregator(self) -> RiskAggregator:
        """Aggregator with default threshold."""
        return RiskAggregator()

    def test_sandwich_dominates(self, aggregator: RiskAggregator) -> None:
        """Sandwich wins when strictly higher and above threshold."""
        assert aggregator.classify(55, 0) == AttackType.SANDWICH

    def test_front_run(self, aggregator: RiskAggregator) -> None:
        """Front-run wins when above threshold and not beaten."""
        assert aggregator.classify(0, 90) == AttackType.FRONT_RUN
        assert aggregator.classify(60, 90) == AttackType.FRONT_RUN

    def test_tie_goes_to_front_run(self, aggregator: RiskAggregator) -> None:
        """Equal sub-scores above the threshold classify as front-run."""
        assert aggregator.classify(55, 55) == AttackType.FRONT_RUN
        assert aggregator.classify(100, 100) == AttackType.FRONT_RUN

    def test_threshold_is_strict(self, aggregator: RiskAggregator) -> None:
        """A sub-score of exactly 50 does not classify."""
        assert aggregator.classify(50, 50) == AttackType.NONE
        assert aggregator.classify(50, 0) == AttackType.NONE
        assert aggregator.classify(0, 50) == AttackType.NONE

    def test_sandwich_not_above_threshold_falls_through(
        self, aggregator: RiskAggregator
    ) -> None:
        """A higher sandwich score under the threshold lets front-run be checked."""
        assert aggregator.classify(45, 40) == AttackType.NONE

    def test_never_back_run(self, aggregator: RiskAggregator) -> None:
        """The back-run value is never produced."""
        results = {
            aggregator.classify(s, f) for s in range(0, 101, 5) for f in range(0, 101, 5)
        }
        assert AttackType.BACK_RUN not in results
        assert results == {AttackType.SANDWICH, AttackType.FRONT_RUN, AttackType.NONE}


class TestEstimateLoss:
    """Tests for fiat loss estimation."""

    def test_default_multiplier(self) -> None:
        """Loss uses the 3% / 1.5% rates scaled by score and the default multiplier."""
        aggregator = RiskAggregator()
        assert aggregator.estimate_loss(Decimal("1000"), 55, 0, "USDC") == Decimal("33000.00")
        assert aggregator.estimate_loss(Decimal("1000"), 0, 90, "USDC") == Decimal("27000.00")

    def test_zero_scores(self) -> None:
        """No signals, no loss."""
        assert RiskAggregator().estimate_loss(Decimal("5"), 0, 0, "ETH") == Decimal("0.00")

    def test_per_token_multiplier(self) -> None:
        """Token symbols pick their own multiplier, case-insensitively."""
        config = EngineConfig(reference_multipliers={"USDC": Decimal("1")})
        aggregator = RiskAggregator(config)
        assert aggregator.estimate_loss(Decimal("1000"), 100, 0, "usdc") == Decimal("30.00")
        assert aggregator.estimate_loss(Decimal("1"), 100, 0, "ETH") == Decimal("60.00")

    def test_rounds_to_cents(self) -> None:
        """Losses are rounded half-up to two places."""
        config = EngineConfig(default_reference_multiplier=Decimal("1"))
        aggregator = RiskAggregator(config)
        # 0.5 * 0.03 * 0.01 = 0.00015
        assert aggregator.estimate_loss(Decimal("0.5"), 1, 0, "X") == Decimal("0.00")
        # 100 * 0.015 * 0.33 = 0.495
        assert aggregator.estimate_loss(Decimal("100"), 0, 33, "X") == Decimal("0.50")


class TestAggregate:
    """Tests for the full aggregation step."""

    def test_patterns_concatenated_in_order(self) -> None:
        """Sandwich patterns come first, duplicates kept."""
        sandwich = DetectionResult(score=55, patterns=("a", "b"))
        front_run = DetectionResult(score=15, patterns=("b", "c"))
        risk = RiskAggregator().aggregate(sandwich, front_run, Decimal("10"), "ETH")

        assert risk.detected_patterns == ("a", "b", "b", "c")
        assert risk.risk_score == 39
        assert risk.attack_type == AttackType.SANDWICH
        # (10 * 0.03 * 0.55 + 10 * 0.015 * 0.15) * 2000
        assert risk.estimated_loss_usd == Decimal("375.00")
