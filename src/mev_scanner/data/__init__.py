"""Data handling modules for MEV risk scanning."""

from mev_scanner.data.models import (
    AttackType,
    DetectionResult,
    PendingTransaction,
    RiskAssessment,
    TransactionBatch,
    VenueConfig,
)
from mev_scanner.data.batch_loader import (
    BatchLoader,
    FallbackBatchLoader,
    FileBatchLoader,
    SyntheticBatchLoader,
    Web3BatchLoader,
    describe_sources,
    loader_from_env,
    save_batch_to_csv,
    save_batch_to_json,
)

__all__ = [
    # Models
    "AttackType",
    "DetectionResult",
    "PendingTransaction",
    "RiskAssessment",
    "TransactionBatch",
    "VenueConfig",
    # Batch loaders
    "BatchLoader",
    "FallbackBatchLoader",
    "FileBatchLoader",
    "SyntheticBatchLoader",
    "Web3BatchLoader",
    "describe_sources",
    "loader_from_env",
    "save_batch_to_csv",
    "save_batch_to_json",
]
