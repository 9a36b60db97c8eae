"""Core modules for MEV risk scoring."""

from mev_scanner.core.logging import LogEntry, ScanLogger, verify_entries, verify_log_integrity
from mev_scanner.core.exceptions import (
    BatchLoadError,
    ConfigError,
    ScannerError,
    UnsupportedVenue,
)
from mev_scanner.core.config import (
    DetectorThresholds,
    EngineConfig,
    default_venues,
    load_engine_config,
)
from mev_scanner.core.gas_stats import GasSnapshot
from mev_scanner.core.sandwich_detector import SandwichDetector, find_value_clusters
from mev_scanner.core.frontrun_detector import FrontRunDetector
from mev_scanner.core.aggregator import AggregatedRisk, RiskAggregator
from mev_scanner.core.advisory import (
    optimal_slippage,
    protection_suggestions,
    recommend_gas_price,
)
from mev_scanner.core.engine import RiskEngine, ScanRequest, run_scan_batch

__all__ = [
    # Logging
    "LogEntry",
    "ScanLogger",
    "verify_entries",
    "verify_log_integrity",
    # Errors
    "BatchLoadError",
    "ConfigError",
    "ScannerError",
    "UnsupportedVenue",
    # Configuration
    "DetectorThresholds",
    "EngineConfig",
    "default_venues",
    "load_engine_config",
    # Detection
    "GasSnapshot",
    "SandwichDetector",
    "FrontRunDetector",
    "find_value_clusters",
    # Aggregation and advice
    "AggregatedRisk",
    "RiskAggregator",
    "optimal_slippage",
    "protection_suggestions",
    "recommend_gas_price",
    # Engine
    "RiskEngine",
    "ScanRequest",
    "run_scan_batch",
]
