"""Command-line interface for the MEV protection scanner.

Provides CLI entry points for:
- Scanning an intended swap against a mempool snapshot
- Reporting engine status and configured data sources

Batches come from a file, the synthetic mempool, or (when
``MEMPOOL_RPC_URL`` is set) a live node with synthetic fallback.
"""

from __future__ import annotations

import argparse
import json
import sys
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

from mev_scanner.core.config import load_engine_config
from mev_scanner.core.engine import RiskEngine
from mev_scanner.core.exceptions import ScannerError
from mev_scanner.core.logging import ScanLogger
from mev_scanner.data.batch_loader import (
    BatchLoader,
    FileBatchLoader,
    SyntheticBatchLoader,
    describe_sources,
    loader_from_env,
)
from mev_scanner.data.models import RiskAssessment


def _positive_decimal(raw: str) -> Decimal:
    """argparse type for trade sizes."""
    try:
        value = Decimal(raw)
    except InvalidOperation:
        raise argparse.ArgumentTypeError(f"not a number: {raw!r}") from None
    if not value.is_finite() or value <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {raw!r}")
    return value


def _assessment_to_dict(assessment: RiskAssessment) -> dict[str, Any]:
    """Convert a RiskAssessment to the JSON response envelope."""
    return {
        "risk_score": assessment.risk_score,
        "attack_type": assessment.attack_type.value,
        "estimated_loss_usd": float(assessment.estimated_loss_usd),
        "protection_suggestions": list(assessment.protection_suggestions),
        "competing_txs": assessment.competing_txs,
        "gas_price_percentile": assessment.gas_price_percentile,
        "detected_patterns": list(assessment.detected_patterns),
        "recommended_gas_price": assessment.recommended_gas_price,
        "optimal_slippage": float(assessment.optimal_slippage),
    }


def _select_loader(args: argparse.Namespace, logger: ScanLogger) -> BatchLoader:
    if args.batch:
        return FileBatchLoader(args.batch, logger)
    if args.synthetic:
        return SyntheticBatchLoader(seed=args.seed)
    return loader_from_env(seed=args.seed, logger=logger)


def _print_report(assessment: RiskAssessment, source: str) -> None:
    print("=" * 60)
    print("MEV Risk Assessment")
    print("=" * 60)
    print(f"Swap: {assessment.amount_in} {assessment.token_in} -> {assessment.token_out}")
    print(f"Venue: {assessment.venue_id}")
    print(f"Batch source: {source}")
    print()
    print(f"Risk score: {assessment.risk_score}/100")
    print(f"  Sandwich: {assessment.sandwich_score}")
    print(f"  Front-run: {assessment.frontrun_score}")
    print(f"Attack type: {assessment.attack_type.value}")
    print(f"Estimated loss: ${assessment.estimated_loss_usd}")
    print(f"Competing transactions: {assessment.competing_txs}")
    print(f"Gas price percentile: {assessment.gas_price_percentile}")
    print()

    if assessment.detected_patterns:
        print("Detected patterns:")
        for pattern in assessment.detected_patterns:
            print(f"  - {pattern}")
        print()

    print("Recommendations:")
    print(f"  Gas price: {assessment.recommended_gas_price}")
    print(f"  Slippage tolerance: {assessment.optimal_slippage}%")
    for suggestion in assessment.protection_suggestions:
        print(f"  {suggestion}")
    print()


def run_scan(args: argparse.Namespace) -> None:
    """CLI entry point for scanning a swap."""
    config = load_engine_config()
    logger = ScanLogger.create_session(
        "scan",
        log_dir=args.log_dir,
        console_level="DEBUG" if args.verbose else "WARNING",
    )

    try:
        engine = RiskEngine(config, logger)
        venue = engine.resolve_venue(args.venue)
        loader = _select_loader(args, logger)
        batch = loader.load(venue)

        assessment = engine.scan(
            args.token_in,
            args.token_out,
            args.amount_in,
            args.venue,
            batch,
        )
    finally:
        logger.close()

    _print_report(assessment, batch.source)

    if args.output_json:
        args.output_json.parent.mkdir(parents=True, exist_ok=True)
        with open(args.output_json, "w", encoding="utf-8") as f:
            json.dump(_assessment_to_dict(assessment), f, indent=2, ensure_ascii=False)
        print(f"Results saved to {args.output_json}")

    if logger.json_log_path is not None:
        print(f"Scan log written to {logger.json_log_path}")


def run_status(args: argparse.Namespace) -> None:
    """CLI entry point for printing engine status."""
    engine = RiskEngine(load_engine_config())
    print(json.dumps(engine.status(describe_sources()), indent=2))


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="mev-scan",
        description="Score pending DEX swaps for sandwich and front-running risk",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Scan command
    scan_parser = subparsers.add_parser("scan", help="Assess MEV risk for a swap")

    swap_group = scan_parser.add_argument_group("swap")
    swap_group.add_argument("--token-in", required=True, help="Symbol of the token sold")
    swap_group.add_argument("--token-out", required=True, help="Symbol of the token bought")
    swap_group.add_argument(
        "--amount-in",
        type=_positive_decimal,
        required=True,
        help="Trade size in token-in units",
    )
    swap_group.add_argument(
        "--venue",
        default="uniswap-v2",
        help="Venue identifier (default: uniswap-v2)",
    )

    input_group = scan_parser.add_argument_group("input")
    source = input_group.add_mutually_exclusive_group()
    source.add_argument(
        "--batch",
        type=Path,
        help="Path to a pending-transaction batch (CSV or JSON)",
    )
    source.add_argument(
        "--synthetic",
        action="store_true",
        help="Generate a synthetic mempool batch",
    )
    input_group.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for synthetic batches",
    )

    output_group = scan_parser.add_argument_group("output")
    output_group.add_argument(
        "--output-json",
        type=Path,
        help="Path to save the assessment as JSON",
    )
    output_group.add_argument(
        "--log-dir",
        type=Path,
        help="Directory for the hash-chained scan log",
    )
    output_group.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    scan_parser.set_defaults(func=run_scan)

    # Status command
    status_parser = subparsers.add_parser("status", help="Show engine status")
    status_parser.set_defaults(func=run_status)

    return parser


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point with subcommands."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return

    try:
        args.func(args)
    except ScannerError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
