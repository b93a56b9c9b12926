#!/usr/bin/env python3
"""
Find where a Solana wallet's SOL went.

This script scans the full transaction history of a wallet, totals the SOL
moved between the wallet and every counterparty it transacted with, and
writes a CSV report sorted by the size of the movement.
"""

import argparse
import asyncio
import os
import signal
import sys
from typing import List, Optional

from rugscan.lib.config import (
    DEFAULT_BATCH_SIZE,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_RPC_URL,
    ScanConfig,
)
from rugscan.lib.errors import InvalidInputError
from rugscan.lib.formatters import format_sol, write_csv
from rugscan.lib.models import ScanResult
from rugscan.lib.progress import ProgressReporter
from rugscan.lib.scanner import CounterpartyScanner

RPC_URL_ENV_VAR = "SOLANA_RPC_URL"

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130


def log(message: str) -> None:
    """Log a message with scan prefix."""
    print(f"[scan] {message}", file=sys.stderr)


def default_rpc_url() -> str:
    return os.environ.get(RPC_URL_ENV_VAR) or DEFAULT_RPC_URL


def positive_int(value: str) -> int:
    """argparse type for integers >= 1."""
    number = int(value)
    if number < 1:
        raise argparse.ArgumentTypeError(f"must be at least 1, got {value}")
    return number


async def run_scan(scanner: CounterpartyScanner, rpc_url: str, wallet: str) -> ScanResult:
    """
    Run a scan, cancelling it cooperatively on Ctrl-C.

    Args:
        scanner: Configured scanner
        rpc_url: JSON-RPC endpoint
        wallet: Address to scan

    Returns:
        The scan result
    """
    loop = asyncio.get_running_loop()
    # Windows event loops have no signal handlers; Ctrl-C aborts immediately there
    handle_sigint = sys.platform != "win32"
    if handle_sigint:
        loop.add_signal_handler(signal.SIGINT, scanner.cancel)

    try:
        return await scanner.start(rpc_url, wallet)
    finally:
        if handle_sigint:
            loop.remove_signal_handler(signal.SIGINT)


def log_summary(result: ScanResult) -> None:
    log(f"Scanned {result.signature_count} signatures")
    log(f"Found {len(result.entries)} counterparties")
    if result.skipped_transactions > 0:
        log(
            f"Skipped {result.skipped_transactions} transaction(s) "
            f"that failed or were not simple SOL transfers"
        )
    if result.entries:
        top = result.entries[0]
        log(f"Largest movement: {format_sol(top.total)} SOL with {top.address}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description=(
            "Scan a Solana wallet's transaction history and report the net SOL "
            "moved to and from every counterparty."
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Scan a wallet, output to stdout
  %(prog)s --wallet GKvqsuNcnwWqPzzuhLmGi4rzzh55FhJtGizkhHaEJqiV

  # Use a private RPC endpoint and save the summary plus per-transaction breakdown
  %(prog)s --wallet GKvq... --rpc-url https://my-rpc.example.com \\
    --output counterparties.csv --include-transactions
        """,
    )

    parser.add_argument(
        "--wallet",
        required=True,
        help="Wallet address to scan",
    )
    parser.add_argument(
        "--rpc-url",
        default=None,
        help=f"Solana RPC endpoint (default: ${RPC_URL_ENV_VAR} or {DEFAULT_RPC_URL})",
    )
    parser.add_argument(
        "--batch-size",
        type=positive_int,
        default=DEFAULT_BATCH_SIZE,
        help=f"Transactions fetched concurrently per batch (default: {DEFAULT_BATCH_SIZE})",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_REQUEST_TIMEOUT,
        help=f"Per-request timeout in seconds (default: {DEFAULT_REQUEST_TIMEOUT})",
    )
    parser.add_argument(
        "--output",
        help="Output file path (timestamp auto-appended). If not specified, outputs to stdout.",
    )
    parser.add_argument(
        "--include-transactions",
        action="store_true",
        help="Also write every transaction behind each counterparty total",
    )
    parser.add_argument(
        "--all-transactions",
        action="store_true",
        help="Consider every transaction, not only simple SOL transfers",
    )

    return parser


def main(args: Optional[List[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        args: Command line arguments (uses sys.argv if None)

    Returns:
        Exit code (0 for success, 1 for error, 130 if cancelled)
    """
    parsed_args = build_parser().parse_args(args)

    config = ScanConfig(
        batch_size=parsed_args.batch_size,
        request_timeout=parsed_args.timeout,
        simple_transfers_only=not parsed_args.all_transactions,
    )
    progress = ProgressReporter()
    progress.subscribe(log)
    scanner = CounterpartyScanner(config=config, progress=progress)

    rpc_url = parsed_args.rpc_url or default_rpc_url()
    wallet = parsed_args.wallet.strip()

    try:
        result = asyncio.run(run_scan(scanner, rpc_url, wallet))
    except InvalidInputError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_ERROR

    if result.cancelled:
        return EXIT_CANCELLED

    log_summary(result)

    summary_file, transactions_file = write_csv(
        result.entries,
        parsed_args.output,
        include_transactions=parsed_args.include_transactions,
    )

    if summary_file:
        print(f"\nResults written to: {summary_file}", file=sys.stderr)
        if transactions_file:
            print(f"Transactions written to: {transactions_file}", file=sys.stderr)

    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
