"""Engine configuration.

The risk engine never reads ambient state. Everything it needs (venue
table, fiat reference multipliers, scoring thresholds) is handed to it as
one immutable ``EngineConfig`` at construction time. ``load_engine_config``
is the single place where the process environment (and a ``.env`` file)
is consulted.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from types import MappingProxyType

from dotenv import load_dotenv

from mev_scanner.core.exceptions import ConfigError, UnsupportedVenue
from mev_scanner.data.constants import (
    DEFAULT_GAS_PRICE_GWEI,
    DEFAULT_REFERENCE_MULTIPLIER,
    VENUE_ADDRESSES,
)
from mev_scanner.data.models import VenueConfig


def default_venues() -> dict[str, VenueConfig]:
    """Build the static venue table."""
    return {
        venue_id: VenueConfig(venue_id=venue_id, **addresses)
        for venue_id, addresses in VENUE_ADDRESSES.items()
    }


@dataclass(frozen=True)
class DetectorThresholds:
    """Trigger levels and score contributions for both detectors."""

    # Sandwich detector
    sequential_nonce_score: int = 30
    sender_high_gas_multiplier: float = 1.5
    sender_high_gas_score: int = 25
    value_cluster_tolerance: Decimal = Decimal("0.1")  # 10% of the larger value
    value_cluster_score: int = 20

    # Front-run detector
    busy_mempool_size: int = 30
    busy_mempool_score: int = 15
    elevated_gas_multiplier: float = 1.3
    elevated_gas_min_count: int = 5
    elevated_gas_score: int = 25
    extreme_gas_multiplier: float = 2.0
    extreme_gas_score: int = 35
    volatility_ratio: float = 0.5
    volatility_score: int = 15

    max_score: int = 100


@dataclass(frozen=True)
class EngineConfig:
    """Immutable configuration for RiskEngine."""

    venues: Mapping[str, VenueConfig] = field(default_factory=default_venues)

    # Fiat value of one unit of token_in, keyed by upper-case symbol
    reference_multipliers: Mapping[str, Decimal] = field(default_factory=dict)
    default_reference_multiplier: Decimal = Decimal(DEFAULT_REFERENCE_MULTIPLIER)

    # Loss model: share of the trade lost at a detector score of 100
    sandwich_loss_rate: Decimal = Decimal("0.03")
    frontrun_loss_rate: Decimal = Decimal("0.015")

    # Aggregation
    sandwich_weight: Decimal = Decimal("0.6")
    frontrun_weight: Decimal = Decimal("0.4")
    classification_threshold: int = 50

    # Advice
    recommended_gas_rank: float = 0.65
    default_gas_price_gwei: int = DEFAULT_GAS_PRICE_GWEI

    thresholds: DetectorThresholds = field(default_factory=DetectorThresholds)

    # Run the two detectors on a two-worker fork/join
    parallel_detectors: bool = False

    def __post_init__(self) -> None:
        # Read-only views over private copies of the caller's tables
        object.__setattr__(self, "venues", MappingProxyType(dict(self.venues)))
        object.__setattr__(
            self, "reference_multipliers", MappingProxyType(dict(self.reference_multipliers))
        )

    def reference_multiplier(self, token: str) -> Decimal:
        """Fiat conversion constant for a token symbol."""
        return self.reference_multipliers.get(
            token.upper(), self.default_reference_multiplier
        )

    def get_venue(self, venue_id: str) -> VenueConfig:
        """Look up a venue.

        Raises:
            UnsupportedVenue: If the identifier is not configured.
        """
        venue = self.venues.get(venue_id)
        if venue is None:
            raise UnsupportedVenue(venue_id, sorted(self.venues))
        return venue


def _parse_decimal(name: str, raw: str) -> Decimal:
    try:
        value = Decimal(raw)
    except InvalidOperation as e:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from e
    if not value.is_finite() or value <= 0:
        raise ConfigError(f"{name} must be positive, got {raw!r}")
    return value


def _parse_reference_prices(raw: str) -> dict[str, Decimal]:
    """Parse ``"ETH=2000,WBTC=60000"`` into a multiplier table."""
    prices: dict[str, Decimal] = {}
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        symbol, sep, price = item.partition("=")
        if not sep or not symbol.strip():
            raise ConfigError(
                f"MEV_REFERENCE_PRICES entries must look like SYMBOL=PRICE, got {item!r}"
            )
        prices[symbol.strip().upper()] = _parse_decimal(
            "MEV_REFERENCE_PRICES", price.strip()
        )
    return prices


def load_engine_config(env_file: str | None = None) -> EngineConfig:
    """Load engine configuration from the environment.

    Recognized variables:
        MEV_REFERENCE_PRICE_USD: Default fiat multiplier (default: 2000).
        MEV_REFERENCE_PRICES: Per-token multipliers, e.g. ``ETH=2000,WBTC=60000``.
        MEV_DEFAULT_GAS_GWEI: Gas recommendation for an empty mempool (default: 30).
        MEV_PARALLEL_DETECTORS: ``true`` to run detectors concurrently.

    Args:
        env_file: Optional path to a .env file (default: search from cwd).

    Returns:
        Frozen EngineConfig.

    Raises:
        ConfigError: If a variable is malformed.
    """
    load_dotenv(env_file)

    default_multiplier = _parse_decimal(
        "MEV_REFERENCE_PRICE_USD",
        os.getenv("MEV_REFERENCE_PRICE_USD", DEFAULT_REFERENCE_MULTIPLIER),
    )
    reference_prices = _parse_reference_prices(os.getenv("MEV_REFERENCE_PRICES", ""))

    raw_gas = os.getenv("MEV_DEFAULT_GAS_GWEI", str(DEFAULT_GAS_PRICE_GWEI))
    try:
        default_gas = int(raw_gas)
    except ValueError as e:
        raise ConfigError(f"MEV_DEFAULT_GAS_GWEI must be an integer, got {raw_gas!r}") from e

    parallel = os.getenv("MEV_PARALLEL_DETECTORS", "").lower() == "true"

    return EngineConfig(
        reference_multipliers=reference_prices,
        default_reference_multiplier=default_multiplier,
        default_gas_price_gwei=default_gas,
        parallel_detectors=parallel,
    )
