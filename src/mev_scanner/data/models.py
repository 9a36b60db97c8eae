"""Data models for MEV risk scanning.

Pydantic models for representing:
- Pending mempool transactions and the batch captured for one scan
- Venue (DEX) configuration
- Per-detector results
- The final risk assessment returned to callers

All models are frozen: a batch is a snapshot and nothing downstream
mutates it.
"""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class AttackType(str, Enum):
    """Classification of the most likely MEV attack."""

    SANDWICH = "sandwich"
    FRONT_RUN = "front-run"
    BACK_RUN = "back-run"  # Declared for interface compatibility, never scored
    NONE = "none"


def _normalize_address(v: object) -> str:
    if not isinstance(v, str):
        raise ValueError(f"address must be a hex string, got {type(v).__name__}")
    if not v.startswith("0x"):
        v = "0x" + v
    return v.lower()


class PendingTransaction(BaseModel):
    """A single mempool entry competing for inclusion.

    Accepts both the snake_case field names and the JSON-RPC names
    (``from``, ``to``, ``gasPrice``, ``input``) so raw node dumps load as-is.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    hash: str = Field(description="Transaction hash, unique within a batch")
    sender: str = Field(alias="from")
    recipient: str = Field(alias="to", description="Usually a router contract")
    value: Decimal = Field(ge=0, description="Amount sent, in ether units")
    gas_price: int = Field(ge=0, alias="gasPrice", description="Gas price in wei")
    payload: str = Field(default="0x", alias="input", description="Raw calldata (hex)")
    nonce: int = Field(ge=0)

    @field_validator("sender", "recipient", mode="before")
    @classmethod
    def normalize_address(cls, v: object) -> str:
        """Store addresses lowercase with a 0x prefix."""
        return _normalize_address(v)

    @property
    def selector(self) -> str | None:
        """4-byte function selector of the payload, if present."""
        if len(self.payload) < 10:
            return None
        return self.payload[:10].lower()


class VenueConfig(BaseModel):
    """Router/factory pair of a supported DEX."""

    model_config = ConfigDict(frozen=True)

    venue_id: str
    router: str
    factory: str
    name: str


class TransactionBatch(BaseModel):
    """Snapshot of pending transactions collected against one venue.

    Created fresh for each scan and discarded afterwards.
    """

    model_config = ConfigDict(frozen=True)

    venue: VenueConfig
    transactions: tuple[PendingTransaction, ...] = ()
    source: str = Field(default="unknown", description="Loader that produced the batch")
    captured_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("transactions")
    @classmethod
    def unique_hashes(
        cls, v: tuple[PendingTransaction, ...]
    ) -> tuple[PendingTransaction, ...]:
        """Reject batches that contain the same hash twice."""
        seen: set[str] = set()
        for tx in v:
            if tx.hash in seen:
                raise ValueError(f"Duplicate transaction hash in batch: {tx.hash}")
            seen.add(tx.hash)
        return v

    def __len__(self) -> int:
        return len(self.transactions)

    @property
    def is_empty(self) -> bool:
        """True when no competing transactions were captured."""
        return not self.transactions

    @property
    def gas_prices(self) -> list[int]:
        """Gas prices (wei) in arrival order."""
        return [tx.gas_price for tx in self.transactions]

    @property
    def values(self) -> list[Decimal]:
        """Transaction values in arrival order."""
        return [tx.value for tx in self.transactions]


class DetectionResult(BaseModel):
    """Risk contribution and matched patterns from one detector."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=100)
    patterns: tuple[str, ...] = ()


class RiskAssessment(BaseModel):
    """Final output of a scan.

    Immutable; the caller serializes it into its own response envelope.
    """

    model_config = ConfigDict(frozen=True)

    # Request echo
    token_in: str
    token_out: str
    amount_in: Decimal
    venue_id: str

    # Scores
    risk_score: int = Field(ge=0, le=100)
    sandwich_score: int = Field(ge=0, le=100)
    frontrun_score: int = Field(ge=0, le=100)
    attack_type: AttackType

    # Exposure
    estimated_loss_usd: Decimal = Field(ge=0)
    competing_txs: int = Field(ge=0)
    gas_price_percentile: int = Field(ge=0, le=100)
    detected_patterns: tuple[str, ...] = ()

    # Advice
    protection_suggestions: tuple[str, ...] = ()
    recommended_gas_price_gwei: int = Field(ge=0)
    optimal_slippage: Decimal = Field(gt=0, description="Slippage tolerance in percent")

    @property
    def recommended_gas_price(self) -> str:
        """Recommended gas price formatted as ``"<n> gwei"``."""
        return f"{self.recommended_gas_price_gwei} gwei"

    @property
    def is_at_risk(self) -> bool:
        """True when an attack type was classified."""
        return self.attack_type != AttackType.NONE
