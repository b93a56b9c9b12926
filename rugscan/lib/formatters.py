"""
Output formatters for counterparty movement reports.

This module handles lamport-to-SOL formatting, CSV generation for the
per-counterparty summary and the per-transaction breakdown, and
timestamp-based filenames.
"""

import csv
import sys
from datetime import datetime
from decimal import Decimal
from pathlib import Path
from typing import List, Optional, TextIO, Tuple

from .models import SUMMARY_COLUMNS, TRANSACTION_COLUMNS, LedgerEntry

SOL_DECIMALS = 9
EXPLORER_TX_URL = "https://solscan.io/tx/{signature}"


def format_quantity(raw_balance: int, decimals: int) -> str:
    """
    Format a signed amount with full precision, trimming trailing zeros.

    Args:
        raw_balance: Raw amount (in smallest unit), may be negative
        decimals: Number of decimal places

    Returns:
        Formatted amount string with trailing zeros trimmed

    Examples:
        format_quantity(1500000000, 9) -> "1.5"
        format_quantity(-5000, 9) -> "-0.000005"
    """
    if raw_balance == 0:
        return "0"

    if decimals == 0:
        return str(raw_balance)

    # Use Decimal for precise arithmetic
    amount = Decimal(raw_balance) / Decimal(10**decimals)

    formatted = format(amount, "f")

    # Remove trailing zeros after decimal point
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")

    return formatted


def format_sol(lamports: int) -> str:
    """Format a lamport amount as SOL."""
    return format_quantity(lamports, SOL_DECIMALS)


def explorer_url(signature: str) -> str:
    return EXPLORER_TX_URL.format(signature=signature)


def generate_timestamp() -> str:
    """
    Generate a timestamp string for filenames.

    Returns:
        Timestamp in YYYYMMDD_HHMMSS format
    """
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def generate_filenames(base_path: str, timestamp: Optional[str] = None) -> Tuple[str, str]:
    """
    Generate timestamped filenames for the summary and transactions CSV files.

    Args:
        base_path: Base output path (e.g., "counterparties.csv")
        timestamp: Optional timestamp to use (generates new one if not provided)

    Returns:
        Tuple of (summary_file_path, transactions_file_path)

    Examples:
        generate_filenames("counterparties.csv", "20241214_153022")
        -> ("counterparties_20241214_153022.csv",
            "counterparties_20241214_153022_transactions.csv")
    """
    if timestamp is None:
        timestamp = generate_timestamp()

    path = Path(base_path)
    stem = path.stem
    suffix = path.suffix or ".csv"
    parent = path.parent

    summary_file = parent / f"{stem}_{timestamp}{suffix}"
    transactions_file = parent / f"{stem}_{timestamp}_transactions{suffix}"

    return str(summary_file), str(transactions_file)


def summary_row(entry: LedgerEntry) -> List[str]:
    return [
        entry.address,
        str(entry.total),
        format_sol(entry.total),
        str(entry.transaction_count),
    ]


def transaction_rows(entry: LedgerEntry) -> List[List[str]]:
    return [
        [
            entry.address,
            tx.signature,
            str(tx.amount),
            format_sol(tx.amount),
            explorer_url(tx.signature),
        ]
        for tx in entry.transactions
    ]


def write_summary_to_stream(entries: List[LedgerEntry], stream: TextIO) -> None:
    """
    Write one row per counterparty to a CSV stream.

    Args:
        entries: Ledger entries, in display order
        stream: File-like object to write to
    """
    writer = csv.writer(stream)
    writer.writerow(SUMMARY_COLUMNS)

    for entry in entries:
        writer.writerow(summary_row(entry))


def write_transactions_to_stream(entries: List[LedgerEntry], stream: TextIO) -> None:
    """Write one row per (counterparty, transaction) pair to a CSV stream."""
    writer = csv.writer(stream)
    writer.writerow(TRANSACTION_COLUMNS)

    for entry in entries:
        writer.writerows(transaction_rows(entry))


def write_csv(
    entries: List[LedgerEntry],
    output_path: Optional[str] = None,
    include_transactions: bool = False,
) -> Tuple[Optional[str], Optional[str]]:
    """
    Write ledger entries to CSV files or stdout.

    Args:
        entries: Ledger entries, in display order
        output_path: Base output path. If None, writes to stdout.
        include_transactions: Also write the per-transaction breakdown

    Returns:
        Tuple of (summary_file_path, transactions_file_path) if output_path
        provided, otherwise (None, None). The second path is None unless
        include_transactions is set.
    """
    if output_path is None:
        write_summary_to_stream(entries, sys.stdout)
        if include_transactions:
            sys.stdout.write("\n")
            write_transactions_to_stream(entries, sys.stdout)
        return None, None

    summary_file, transactions_file = generate_filenames(output_path)

    with open(summary_file, "w", newline="", encoding="utf-8") as f:
        write_summary_to_stream(entries, f)

    if include_transactions:
        with open(transactions_file, "w", newline="", encoding="utf-8") as f:
            write_transactions_to_stream(entries, f)
        return summary_file, transactions_file

    return summary_file, None
