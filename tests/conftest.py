"""Pytest configuration and fixtures for MEV scanner tests."""

from __future__ import annotations

import itertools
from decimal import Decimal
from pathlib import Path
from typing import Callable

import pytest

from mev_scanner.core.config import EngineConfig, default_venues
from mev_scanner.data.constants import WEI_PER_GWEI
from mev_scanner.data.models import PendingTransaction, TransactionBatch, VenueConfig

ATTACKER = "0x" + "a" * 40

ENV_VARS = [
    "MEV_REFERENCE_PRICE_USD",
    "MEV_REFERENCE_PRICES",
    "MEV_DEFAULT_GAS_GWEI",
    "MEV_PARALLEL_DETECTORS",
    "MEMPOOL_RPC_URL",
]

TxFactory = Callable[..., PendingTransaction]
BatchFactory = Callable[..., TransactionBatch]


@pytest.fixture(autouse=True)
def clean_scanner_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep scanner configuration out of the ambient environment."""
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def temp_log_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for log files."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def config() -> EngineConfig:
    """Default engine configuration."""
    return EngineConfig()


@pytest.fixture
def venue() -> VenueConfig:
    """Uniswap V2 venue entry."""
    return default_venues()["uniswap-v2"]


@pytest.fixture
def make_tx(venue: VenueConfig) -> TxFactory:
    """Factory for pending transactions with unique hashes and senders."""
    counter = itertools.count(1)

    def _make(
        gas_gwei: int = 30,
        value: Decimal | str = "1",
        sender: str | None = None,
        nonce: int = 0,
    ) -> PendingTransaction:
        n = next(counter)
        return PendingTransaction(
            hash=f"0x{n:064x}",
            sender=sender or f"0x{n:040x}",
            recipient=venue.router,
            value=Decimal(value),
            gas_price=gas_gwei * WEI_PER_GWEI,
            payload="0x38ed1739" + "00" * 32,
            nonce=nonce,
        )

    return _make


@pytest.fixture
def make_batch(venue: VenueConfig) -> BatchFactory:
    """Factory wrapping transactions into a batch for the default venue."""

    def _make(transactions: list[PendingTransaction], source: str = "test") -> TransactionBatch:
        return TransactionBatch(venue=venue, transactions=tuple(transactions), source=source)

    return _make


@pytest.fixture
def empty_batch(make_batch: BatchFactory) -> TransactionBatch:
    """Batch with no competing transactions."""
    return make_batch([])


@pytest.fixture
def sandwich_batch(make_tx: TxFactory, make_batch: BatchFactory) -> TransactionBatch:
    """18 unrelated swaps at 32 gwei plus an attacker pair at twice the mean.

    Mean gas is 36 gwei, the attacker pays 72 gwei on nonces 4 and 5.
    Values are powers of two so no value cluster forms.
    """
    txs = [make_tx(gas_gwei=32, value=Decimal(2) ** i) for i in range(18)]
    txs.insert(9, make_tx(gas_gwei=72, value=Decimal(2) ** 18, sender=ATTACKER, nonce=4))
    txs.append(make_tx(gas_gwei=72, value=Decimal(2) ** 19, sender=ATTACKER, nonce=5))
    return make_batch(txs)


@pytest.fixture
def flat_batch(make_tx: TxFactory, make_batch: BatchFactory) -> TransactionBatch:
    """40 unrelated swaps at an identical gas price."""
    return make_batch([make_tx(gas_gwei=30, value=Decimal(2) ** i) for i in range(40)])


@pytest.fixture
def gas_war_batch(make_tx: TxFactory, make_batch: BatchFactory) -> TransactionBatch:
    """35 swaps: 28 at 20 gwei and 7 bidding 100 gwei.

    Mean gas is 36 gwei with a population stddev of 32 gwei.
    """
    txs = [make_tx(gas_gwei=20, value=Decimal(2) ** i) for i in range(28)]
    txs += [make_tx(gas_gwei=100, value=Decimal(2) ** (28 + i)) for i in range(7)]
    return make_batch(txs)
