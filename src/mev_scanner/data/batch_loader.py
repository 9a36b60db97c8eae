"""Pending-transaction batch loaders.

A loader captures one mempool snapshot for a venue. The risk engine
never calls loaders; the caller picks one, loads a batch and passes it
in. Available sources:
- Synthetic mempool (seeded, reproducible)
- JSON/CSV files
- Live node via web3 (``pending`` block)
- Fallback wrapper that swaps in a second loader when the first fails
"""

from __future__ import annotations

import csv
import json
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from decimal import Decimal
from pathlib import Path
from typing import Any

import numpy as np
from dotenv import load_dotenv
from pydantic import ValidationError
from web3 import Web3

from mev_scanner.core.exceptions import BatchLoadError, ScannerError
from mev_scanner.core.logging import ScanLogger
from mev_scanner.data.constants import (
    SWAP_SELECTORS,
    SYNTHETIC_ATTACK_GAS_PREMIUM_GWEI,
    SYNTHETIC_ATTACK_PROBABILITY,
    SYNTHETIC_ATTACK_VALUE,
    SYNTHETIC_BASE_GAS_GWEI,
    SYNTHETIC_GAS_SPREAD_GWEI,
    SYNTHETIC_MAX_TXS,
    SYNTHETIC_MAX_VALUE,
    SYNTHETIC_MIN_GAS_GWEI,
    SYNTHETIC_MIN_TXS,
    WEI_PER_GWEI,
)
from mev_scanner.data.models import PendingTransaction, TransactionBatch, VenueConfig

CSV_FIELDS = ["hash", "from", "to", "value", "gasPrice", "input", "nonce"]


class BatchLoader(ABC):
    """Source of pending-transaction snapshots."""

    name: str = "unknown"

    @abstractmethod
    def load(self, venue: VenueConfig) -> TransactionBatch:
        """Capture a batch of pending transactions sent to the venue.

        Raises:
            BatchLoadError: If the source cannot be read.
        """


class SyntheticBatchLoader(BatchLoader):
    """Generate a plausible mempool around a 30 gwei base fee.

    Produces 20-49 swaps to the venue router and, with 30% probability,
    an attacker pair (same sender, consecutive nonces, elevated gas).
    Seeded loaders replay the same sequence of batches.
    """

    name = "synthetic"

    def __init__(
        self,
        seed: int | None = None,
        attack_probability: float = SYNTHETIC_ATTACK_PROBABILITY,
    ) -> None:
        """Initialize generator.

        Args:
            seed: Random seed (None for non-deterministic batches).
            attack_probability: Chance of injecting a sandwich pair.
        """
        self.seed = seed
        self.attack_probability = attack_probability
        self._rng = np.random.default_rng(seed)

    def load(self, venue: VenueConfig) -> TransactionBatch:
        count = int(self._rng.integers(SYNTHETIC_MIN_TXS, SYNTHETIC_MAX_TXS))
        txs = [self._random_swap(venue) for _ in range(count)]

        if self._rng.random() < self.attack_probability:
            txs.extend(self._attack_pair(venue))

        return TransactionBatch(venue=venue, transactions=tuple(txs), source=self.name)

    def _hex(self, num_bytes: int) -> str:
        return "0x" + self._rng.bytes(num_bytes).hex()

    def _swap_payload(self) -> str:
        selectors = list(SWAP_SELECTORS)
        selector = selectors[int(self._rng.integers(len(selectors)))]
        return selector + self._rng.bytes(32).hex()

    def _random_swap(self, venue: VenueConfig) -> PendingTransaction:
        variation = (self._rng.random() - 0.5) * SYNTHETIC_GAS_SPREAD_GWEI
        gas_gwei = max(SYNTHETIC_MIN_GAS_GWEI, SYNTHETIC_BASE_GAS_GWEI + variation)
        value = self._rng.random() * SYNTHETIC_MAX_VALUE

        return PendingTransaction(
            hash=self._hex(32),
            sender=self._hex(20),
            recipient=venue.router,
            value=Decimal(f"{value:.4f}"),
            gas_price=int(round(gas_gwei * WEI_PER_GWEI)),
            payload=self._swap_payload(),
            nonce=int(self._rng.integers(0, 100)),
        )

    def _attack_pair(self, venue: VenueConfig) -> list[PendingTransaction]:
        attacker = self._hex(20)
        gas_price = (SYNTHETIC_BASE_GAS_GWEI + SYNTHETIC_ATTACK_GAS_PREMIUM_GWEI) * WEI_PER_GWEI
        return [
            PendingTransaction(
                hash=self._hex(32),
                sender=attacker,
                recipient=venue.router,
                value=Decimal(SYNTHETIC_ATTACK_VALUE),
                gas_price=gas_price,
                payload=self._swap_payload(),
                nonce=nonce,
            )
            for nonce in (1, 2)  # front-run, back-run
        ]


class FileBatchLoader(BatchLoader):
    """Load a batch from a JSON or CSV file.

    Expected JSON format (JSON-RPC or snake_case field names):
        [
            {"hash": "0xab..", "from": "0x12..", "to": "0x7a..",
             "value": "1.5", "gasPrice": "30000000000", "input": "0x38ed1739..",
             "nonce": 4}
        ]
    A top-level object with a ``transactions`` key is accepted too.

    Expected CSV format:
        hash,from,to,value,gasPrice,input,nonce
    """

    name = "file"

    def __init__(self, file_path: str | Path, logger: ScanLogger | None = None) -> None:
        self.path = Path(file_path)
        self.logger = logger

    def load(self, venue: VenueConfig) -> TransactionBatch:
        try:
            if self.path.suffix.lower() == ".csv":
                rows = self._read_csv()
            else:
                rows = self._read_json()
            txs = tuple(PendingTransaction.model_validate(row) for row in rows)
            batch = TransactionBatch(venue=venue, transactions=txs, source=self.name)
        except (OSError, ValueError) as e:
            raise BatchLoadError(f"Cannot load batch from {self.path}: {e}") from e

        if self.logger:
            self.logger.info(
                f"Loaded {len(batch)} transactions from file",
                {"file": str(self.path), "count": len(batch)},
            )
        return batch

    def _read_json(self) -> list[dict[str, Any]]:
        with open(self.path) as f:
            data = json.load(f)
        if isinstance(data, dict):
            data = data.get("transactions", [])
        if not isinstance(data, list):
            raise ValueError("expected a list of transactions")
        return data

    def _read_csv(self) -> list[dict[str, Any]]:
        with open(self.path, newline="") as f:
            return [
                {key: value.strip() for key, value in row.items() if value is not None}
                for row in csv.DictReader(f)
            ]


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _raw_hash(raw: Any) -> str:
    if isinstance(raw, Mapping):
        return _to_hex(raw.get("hash", ""))
    return ""


class Web3BatchLoader(BatchLoader):
    """Read pending transactions sent to the venue router from a node.

    Uses the ``pending`` block with full transactions, which most
    execution clients expose over JSON-RPC.

    Usage:
        loader = Web3BatchLoader.from_rpc_url(os.environ["MEMPOOL_RPC_URL"])
        batch = loader.load(venue)
    """

    name = "web3"

    def __init__(
        self,
        web3: Web3,
        max_transactions: int = 100,
        logger: ScanLogger | None = None,
    ) -> None:
        """Initialize loader.

        Args:
            web3: Connected Web3 instance.
            max_transactions: Upper bound on the batch size.
            logger: Optional scan logger.
        """
        self.web3 = web3
        self.max_transactions = max_transactions
        self.logger = logger

    @classmethod
    def from_rpc_url(
        cls,
        rpc_url: str,
        max_transactions: int = 100,
        logger: ScanLogger | None = None,
    ) -> Web3BatchLoader:
        """Create a loader backed by an HTTP provider."""
        return cls(Web3(Web3.HTTPProvider(rpc_url)), max_transactions, logger)

    def load(self, venue: VenueConfig) -> TransactionBatch:
        try:
            block = self.web3.eth.get_block("pending", full_transactions=True)
            pending = list(block["transactions"])
        except Exception as e:
            raise BatchLoadError(f"Failed to fetch pending block: {e}") from e

        router = venue.router.lower()
        txs: list[PendingTransaction] = []
        for raw in pending:
            if len(txs) >= self.max_transactions:
                break
            try:
                to = raw.get("to")
                if not to or str(to).lower() != router:
                    continue
                tx = self._convert(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                if self.logger:
                    self.logger.warning(
                        "Skipping malformed pending transaction",
                        {"hash": _raw_hash(raw), "error": str(e)},
                    )
                continue
            txs.append(tx)

        if self.logger:
            self.logger.info(
                f"Fetched {len(txs)} pending transactions for {venue.name}",
                {"venue_id": venue.venue_id, "count": len(txs)},
            )
        try:
            return TransactionBatch(venue=venue, transactions=tuple(txs), source=self.name)
        except ValidationError as e:
            raise BatchLoadError(f"Invalid pending block: {e}") from e

    @staticmethod
    def _convert(raw: Any) -> PendingTransaction:
        """Convert a web3 transaction dict to a PendingTransaction."""
        gas_price = raw.get("gasPrice") or raw.get("maxFeePerGas") or 0
        return PendingTransaction(
            hash=_to_hex(raw["hash"]),
            sender=str(raw["from"]),
            recipient=str(raw["to"]),
            value=Web3.from_wei(raw.get("value", 0), "ether"),
            gas_price=int(gas_price),
            payload=_to_hex(raw.get("input", "0x")),
            nonce=int(raw["nonce"]),
        )


class FallbackBatchLoader(BatchLoader):
    """Use ``fallback`` whenever ``primary`` fails to load.

    The engine never retries; this wrapper is how callers guarantee it
    always receives a batch.
    """

    def __init__(
        self,
        primary: BatchLoader,
        fallback: BatchLoader,
        logger: ScanLogger | None = None,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.logger = logger
        self.name = f"{primary.name}+{fallback.name}"

    def load(self, venue: VenueConfig) -> TransactionBatch:
        try:
            return self.primary.load(venue)
        except ScannerError as e:
            if self.logger:
                self.logger.warning(
                    f"{self.primary.name} loader failed, using {self.fallback.name}",
                    {"venue_id": venue.venue_id, "error": str(e)},
                )
            return self.fallback.load(venue)


def loader_from_env(
    seed: int | None = None,
    logger: ScanLogger | None = None,
) -> BatchLoader:
    """Pick a loader from the environment.

    ``MEMPOOL_RPC_URL`` set: live node with synthetic fallback.
    Otherwise: synthetic mempool only.
    """
    load_dotenv()
    synthetic = SyntheticBatchLoader(seed=seed)
    rpc_url = os.getenv("MEMPOOL_RPC_URL", "")
    if not rpc_url:
        return synthetic
    return FallbackBatchLoader(
        Web3BatchLoader.from_rpc_url(rpc_url, logger=logger),
        synthetic,
        logger,
    )


def describe_sources() -> dict[str, bool]:
    """Which mempool sources the environment enables."""
    load_dotenv()
    has_rpc = bool(os.getenv("MEMPOOL_RPC_URL"))
    return {"rpc": has_rpc, "synthetic": not has_rpc}


def save_batch_to_json(batch: TransactionBatch, file_path: str | Path) -> None:
    """Save a batch's transactions to a JSON file FileBatchLoader can read.

    Args:
        batch: Batch to save.
        file_path: Output file path.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    data = [tx.model_dump(mode="json", by_alias=True) for tx in batch.transactions]
    with open(path, "w") as f:
        json.dump(data, f, indent=2)


def save_batch_to_csv(batch: TransactionBatch, file_path: str | Path) -> None:
    """Save a batch's transactions to a CSV file FileBatchLoader can read.

    Args:
        batch: Batch to save.
        file_path: Output file path.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)

    with open(path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for tx in batch.transactions:
            writer.writerow(tx.model_dump(mode="json", by_alias=True))
