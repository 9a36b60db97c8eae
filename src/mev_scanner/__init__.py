"""MEV Protection Scanner.

Scores how exposed a pending DEX swap is to sandwich and front-running
attacks, based on a snapshot of competing mempool transactions, and
suggests how to protect it.
"""

__version__ = "1.0.0"

from mev_scanner.core.engine import RiskEngine, ScanRequest, run_scan_batch
from mev_scanner.core.exceptions import ScannerError, UnsupportedVenue

__all__ = [
    "RiskEngine",
    "ScanRequest",
    "ScannerError",
    "UnsupportedVenue",
    "run_scan_batch",
    "__version__",
]
