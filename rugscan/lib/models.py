"""
Data models for counterparty scans.

This module defines the transaction records fetched from the chain, the
per-counterparty deltas extracted from them, and the ledger entries and
scan results built by aggregating those deltas.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Tuple


# Both are plain base58 strings; equality is string equality.
Address = str
Signature = str

# CSV column order for the summary report
SUMMARY_COLUMNS = [
    "address",
    "total_lamports",
    "total_sol",
    "transaction_count",
]

# CSV column order for the per-transaction report
TRANSACTION_COLUMNS = [
    "address",
    "signature",
    "amount_lamports",
    "amount_sol",
    "explorer_url",
]


@dataclass(frozen=True)
class TransactionDetail:
    """
    A fetched transaction, reduced to what balance extraction needs.

    Balances are in lamports and aligned by position with account_keys.
    """

    signature: Signature
    account_keys: Tuple[Address, ...]
    pre_balances: Tuple[int, ...]
    post_balances: Tuple[int, ...]
    err: Any = None  # None on success, RPC error object on failure
    has_meta: bool = True

    @property
    def failed(self) -> bool:
        return self.err is not None


@dataclass(frozen=True)
class Delta:
    """
    One balance change of a counterparty within one transaction.

    A positive amount means the counterparty gained lamports.
    """

    counterparty: Address
    amount: int
    signature: Signature


@dataclass(frozen=True)
class LedgerTransaction:
    """A single transaction contributing to a ledger entry."""

    signature: Signature
    amount: int


@dataclass
class LedgerEntry:
    """
    Aggregated movement between the owner and one counterparty.

    total is kept equal to the sum of the transaction amounts; only add()
    should be used to change either.
    """

    address: Address
    total: int = 0
    transactions: List[LedgerTransaction] = field(default_factory=list)

    def add(self, signature: Signature, amount: int) -> None:
        """Record one transaction and update the running total."""
        self.transactions.append(LedgerTransaction(signature=signature, amount=amount))
        self.total += amount

    @property
    def transaction_count(self) -> int:
        return len(self.transactions)


class ScanStatus(str, Enum):
    """Lifecycle of a CounterpartyScanner."""

    IDLE = "idle"
    SCANNING = "scanning"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


@dataclass
class ScanResult:
    """
    Result of scanning one address.

    entries is sorted by descending absolute total. A cancelled scan
    carries no entries.
    """

    address: Address
    status: ScanStatus
    entries: List[LedgerEntry] = field(default_factory=list)
    signature_count: int = 0
    skipped_transactions: int = 0  # Absent, failed or out-of-scope transactions

    @property
    def cancelled(self) -> bool:
        return self.status == ScanStatus.CANCELLED
