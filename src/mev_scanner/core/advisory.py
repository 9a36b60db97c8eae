"""Protection advice.

Turns an aggregated risk into ordered, human-readable suggestions plus
two numeric recommendations: a gas price and a slippage tolerance.
The wording below is relied on by downstream integrations; keep it
byte-for-byte stable.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Sequence

from mev_scanner.core.gas_stats import price_at_rank, round_half_up
from mev_scanner.data.constants import DEFAULT_GAS_PRICE_GWEI, WEI_PER_GWEI
from mev_scanner.data.models import AttackType

PRIVATE_RPC = "🛡️ Use Flashbots Protect RPC to avoid public mempool exposure"
PRIVATE_RELAY = "⚡ Consider using a private transaction relay service"
SLIPPAGE_WIDE = "📊 Increase slippage tolerance to 2-3% to prevent transaction reverts"
SLIPPAGE_MODERATE = "📊 Set slippage tolerance to 1-2% for better execution"
RAISE_GAS = "⛽ Increase gas price to 60th-70th percentile for faster execution"
CONGESTION_WAIT = "⏰ High mempool congestion - consider waiting 2-5 minutes"
SPLIT_TRADES = "🔄 Split large trades into smaller chunks"
SANDWICH_WARNING = "🥪 Sandwich attack detected - use private RPC or increase gas significantly"
SANDWICH_ROUTING = "🔐 Consider using CowSwap or 1inch Fusion for MEV protection"
FRONT_RUN_WARNING = "🏃 Front-running detected - increase gas price or use private mempool"
AGGREGATOR_ROUTING = "🔀 Consider using MEV-protected DEX aggregators (CowSwap, 1inch Fusion)"
MONITOR = "👁️ Monitor transaction closely and be prepared to cancel if needed"

# (score strictly above, slippage percent), checked in order
SLIPPAGE_TIERS: tuple[tuple[int, Decimal], ...] = (
    (70, Decimal("3.0")),
    (50, Decimal("2.0")),
    (30, Decimal("1.5")),
)
BASE_SLIPPAGE = Decimal("1.0")


def protection_suggestions(
    risk_score: int,
    attack_type: AttackType,
    gas_percentile: int,
    competing_txs: int,
) -> list[str]:
    """Build the ordered suggestion list for a scan.

    Args:
        risk_score: Combined score (0-100).
        attack_type: Classified attack.
        gas_percentile: Gas price percentile reported for the batch.
        competing_txs: Number of transactions in the batch.

    Returns:
        Suggestions in display order.
    """
    suggestions: list[str] = []

    if risk_score > 60:
        suggestions.append(PRIVATE_RPC)
        suggestions.append(PRIVATE_RELAY)

    if risk_score > 40:
        suggestions.append(SLIPPAGE_WIDE)
    elif risk_score > 20:
        suggestions.append(SLIPPAGE_MODERATE)

    if gas_percentile < 40:
        suggestions.append(RAISE_GAS)

    if competing_txs > 40:
        suggestions.append(CONGESTION_WAIT)
        suggestions.append(SPLIT_TRADES)

    if attack_type == AttackType.SANDWICH:
        suggestions.append(SANDWICH_WARNING)
        suggestions.append(SANDWICH_ROUTING)
    elif attack_type == AttackType.FRONT_RUN:
        suggestions.append(FRONT_RUN_WARNING)

    suggestions.append(AGGREGATOR_ROUTING)

    if risk_score > 50:
        suggestions.append(MONITOR)

    return suggestions


def optimal_slippage(risk_score: int) -> Decimal:
    """Slippage tolerance (percent) for a given risk score."""
    for above, slippage in SLIPPAGE_TIERS:
        if risk_score > above:
            return slippage
    return BASE_SLIPPAGE


def recommend_gas_price(
    gas_prices: Sequence[int],
    rank: float = 0.65,
    default_gwei: int = DEFAULT_GAS_PRICE_GWEI,
) -> int:
    """Gas price (gwei) that would outbid ``rank`` of the batch.

    Falls back to ``default_gwei`` for an empty batch or when the picked
    price is zero.
    """
    if len(gas_prices) == 0:
        return default_gwei
    picked_wei = price_at_rank(gas_prices, rank)
    if picked_wei == 0:
        return default_gwei
    return int(round_half_up(Decimal(picked_wei) / Decimal(WEI_PER_GWEI)))
