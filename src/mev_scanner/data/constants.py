"""Constants for the MEV protection scanner.

Venue (DEX) addresses on Ethereum mainnet, swap selectors and
unit conversions.
"""

from __future__ import annotations

# =============================================================================
# Supported venues (Ethereum mainnet)
# =============================================================================

VENUE_ADDRESSES: dict[str, dict[str, str]] = {
    "uniswap-v2": {
        "router": "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D",
        "factory": "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f",
        "name": "Uniswap V2",
    },
    "uniswap-v3": {
        "router": "0xE592427A0AEce92De3Edee1F18E0157C05861564",
        "factory": "0x1F98431c8aD98523631AE4a59f267346ea31F984",
        "name": "Uniswap V3",
    },
    "sushiswap": {
        "router": "0xd9e1cE17f2641f24aE83637ab66a2cca9C378B9F",
        "factory": "0xC0AEe478e3658e2610c5F7A4A2E1777cE9e4f2Ac",
        "name": "SushiSwap",
    },
    "curve": {
        "router": "0x8e764bE4288B842791989DB5b8ec067279829809",
        "factory": "0xB9fC157394Af804a3578134A6585C0dc9cc990d4",
        "name": "Curve",
    },
}

# =============================================================================
# Router function selectors (UniswapV2Router02 style)
# =============================================================================

SWAP_SELECTORS: dict[str, str] = {
    "0x38ed1739": "swapExactTokensForTokens",
    "0x8803dbee": "swapTokensForExactTokens",
    "0x7ff36ab5": "swapExactETHForTokens",
    "0xfb3bdb41": "swapETHForExactTokens",
}

# =============================================================================
# Units
# =============================================================================

WEI_PER_GWEI = 10**9

# =============================================================================
# Scoring defaults
# =============================================================================

# Fiat value of one unit of the input token when no per-asset value is set
DEFAULT_REFERENCE_MULTIPLIER = "2000"

# Fallback gas recommendation for an empty mempool (gwei)
DEFAULT_GAS_PRICE_GWEI = 30

# =============================================================================
# Synthetic mempool parameters
# =============================================================================

SYNTHETIC_BASE_GAS_GWEI = 30
SYNTHETIC_GAS_SPREAD_GWEI = 20  # +/- half of this around the base
SYNTHETIC_MIN_GAS_GWEI = 20
SYNTHETIC_MIN_TXS = 20
SYNTHETIC_MAX_TXS = 50  # exclusive
SYNTHETIC_MAX_VALUE = 10.0
SYNTHETIC_ATTACK_PROBABILITY = 0.3
SYNTHETIC_ATTACK_GAS_PREMIUM_GWEI = 15
SYNTHETIC_ATTACK_VALUE = "5.0"
