"""MEV risk engine.

Implements the scan pipeline for one intended swap:
1. Validate the venue against the configured table
2. Compute gas statistics for the supplied batch once
3. Run the sandwich and front-run detectors (independent, optionally
   on a two-worker fork/join)
4. Aggregate into a score, attack classification and loss estimate
5. Generate protection advice

The engine holds no state besides its frozen configuration, so one
instance can serve concurrent scans.
"""

from __future__ import annotations

import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from mev_scanner import __version__
from mev_scanner.core.advisory import (
    optimal_slippage,
    protection_suggestions,
    recommend_gas_price,
)
from mev_scanner.core.aggregator import RiskAggregator
from mev_scanner.core.config import EngineConfig
from mev_scanner.core.frontrun_detector import FrontRunDetector
from mev_scanner.core.gas_stats import GasSnapshot
from mev_scanner.core.logging import ScanLogger
from mev_scanner.core.sandwich_detector import SandwichDetector
from mev_scanner.data.models import (
    DetectionResult,
    RiskAssessment,
    TransactionBatch,
    VenueConfig,
)


@dataclass(frozen=True)
class ScanRequest:
    """One swap to assess together with its captured mempool batch."""

    token_in: str
    token_out: str
    amount_in: Decimal | str
    venue_id: str
    batch: TransactionBatch


class RiskEngine:
    """Score pending-transaction batches for MEV exposure.

    Usage:
        engine = RiskEngine(EngineConfig())
        venue = engine.resolve_venue("uniswap-v2")
        batch = loader.load(venue)
        assessment = engine.scan("USDC", "ETH", "1000", "uniswap-v2", batch)
        print(assessment.risk_score, assessment.attack_type)
    """

    def __init__(
        self,
        config: EngineConfig | None = None,
        logger: ScanLogger | None = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Immutable engine configuration.
            logger: Optional scan logger.
        """
        self.config = config or EngineConfig()
        self.logger = logger
        self.sandwich_detector = SandwichDetector(self.config.thresholds, logger)
        self.frontrun_detector = FrontRunDetector(self.config.thresholds, logger)
        self.aggregator = RiskAggregator(self.config)

    def resolve_venue(self, venue_id: str) -> VenueConfig:
        """Return the venue entry for an identifier.

        Raises:
            UnsupportedVenue: If the identifier is not configured.
        """
        return self.config.get_venue(venue_id)

    def scan(
        self,
        token_in: str,
        token_out: str,
        amount_in: Decimal | str | int,
        venue_id: str,
        batch: TransactionBatch,
    ) -> RiskAssessment:
        """Assess MEV risk for a swap against a mempool snapshot.

        Args:
            token_in: Symbol of the token sold.
            token_out: Symbol of the token bought.
            amount_in: Trade size in token_in units.
            venue_id: Venue identifier (e.g. "uniswap-v2").
            batch: Pending transactions captured for the venue.

        Returns:
            Immutable RiskAssessment.

        Raises:
            UnsupportedVenue: If venue_id is not configured. Raised before
                any detector runs.
        """
        self.resolve_venue(venue_id)
        amount = Decimal(str(amount_in))
        scan_id = str(uuid.uuid4())[:8]

        if self.logger:
            self.logger.log_event(
                "scan_started",
                {
                    "scan_id": scan_id,
                    "venue_id": venue_id,
                    "token_in": token_in,
                    "token_out": token_out,
                    "amount_in": str(amount),
                    "batch_size": len(batch),
                    "batch_source": batch.source,
                },
            )

        snapshot = GasSnapshot.from_prices(batch.gas_prices)
        sandwich, front_run = self._run_detectors(batch, snapshot)

        if self.logger:
            self.logger.log_event(
                "detector_result",
                {
                    "scan_id": scan_id,
                    "sandwich_score": sandwich.score,
                    "frontrun_score": front_run.score,
                    "gas_mean_wei": snapshot.mean,
                    "gas_stddev_wei": snapshot.stddev,
                },
            )

        risk = self.aggregator.aggregate(sandwich, front_run, amount, token_in)
        competing = len(batch)

        assessment = RiskAssessment(
            token_in=token_in,
            token_out=token_out,
            amount_in=amount,
            venue_id=venue_id,
            risk_score=risk.risk_score,
            sandwich_score=sandwich.score,
            frontrun_score=front_run.score,
            attack_type=risk.attack_type,
            estimated_loss_usd=risk.estimated_loss_usd,
            competing_txs=competing,
            gas_price_percentile=snapshot.percentile,
            detected_patterns=risk.detected_patterns,
            protection_suggestions=tuple(
                protection_suggestions(
                    risk.risk_score, risk.attack_type, snapshot.percentile, competing
                )
            ),
            recommended_gas_price_gwei=recommend_gas_price(
                batch.gas_prices,
                rank=self.config.recommended_gas_rank,
                default_gwei=self.config.default_gas_price_gwei,
            ),
            optimal_slippage=optimal_slippage(risk.risk_score),
        )

        if self.logger:
            self.logger.log_event(
                "scan_completed",
                {
                    "scan_id": scan_id,
                    "risk_score": assessment.risk_score,
                    "attack_type": assessment.attack_type.value,
                    "estimated_loss_usd": str(assessment.estimated_loss_usd),
                    "pattern_count": len(assessment.detected_patterns),
                },
            )
            self.logger.log_metric("risk_score", assessment.risk_score, {"scan_id": scan_id})

        return assessment

    def _run_detectors(
        self,
        batch: TransactionBatch,
        snapshot: GasSnapshot,
    ) -> tuple[DetectionResult, DetectionResult]:
        """Run both detectors, forking when configured to."""
        if not self.config.parallel_detectors:
            return (
                self.sandwich_detector.detect(batch, snapshot),
                self.frontrun_detector.detect(batch, snapshot),
            )

        with ThreadPoolExecutor(max_workers=2) as pool:
            sandwich_future = pool.submit(self.sandwich_detector.detect, batch, snapshot)
            frontrun_future = pool.submit(self.frontrun_detector.detect, batch, snapshot)
            return sandwich_future.result(), frontrun_future.result()

    def status(self, data_sources: dict[str, bool] | None = None) -> dict[str, Any]:
        """Health and configuration summary of the engine.

        Args:
            data_sources: Mempool sources enabled by the caller, if known.
        """
        return {
            "status": "operational",
            "version": __version__,
            "supported_venues": sorted(self.config.venues),
            "data_sources": dict(data_sources or {}),
            "default_reference_multiplier": str(self.config.default_reference_multiplier),
            "reference_multipliers": {
                symbol: str(value)
                for symbol, value in sorted(self.config.reference_multipliers.items())
            },
            "parallel_detectors": self.config.parallel_detectors,
        }


def run_scan_batch(
    requests: list[ScanRequest],
    engine: RiskEngine,
    max_workers: int = 1,
) -> list[RiskAssessment]:
    """Scan several independent requests.

    Args:
        requests: Swaps to assess.
        engine: Configured risk engine.
        max_workers: Thread count; 1 scans sequentially.

    Returns:
        Assessments in the same order as ``requests``.

    Raises:
        UnsupportedVenue: If any request names an unknown venue.
    """

    def _scan(request: ScanRequest) -> RiskAssessment:
        return engine.scan(
            request.token_in,
            request.token_out,
            request.amount_in,
            request.venue_id,
            request.batch,
        )

    if max_workers <= 1:
        return [_scan(request) for request in requests]

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(pool.map(_scan, requests))
