"""
Pytest configuration and shared fixtures for rug-scene-investigation tests.
"""

import threading
from typing import Dict, List, Optional

import pytest

from rugscan.lib.config import RetryPolicy
from rugscan.lib.models import TransactionDetail
from rugscan.lib.progress import CancellationToken, ProgressReporter
from rugscan.lib.solana_rpc import SYSTEM_PROGRAM_ID, SolanaRPCClient, SolanaRPCError

OWNER = "GKvqsuNcnwWqPzzuhLmGi4rzzh55FhJtGizkhHaEJqiV"
ALICE = "9WzDXwBbmkg8ZTbNMqUxvQRAyrZzDsGYdLVL9zYtAWWM"
BOB = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"


def make_transfer(signature, sender, recipient, lamports, fee=5000, err=None):
    """Build a simple SOL transfer from sender to recipient."""
    return TransactionDetail(
        signature=signature,
        account_keys=(sender, recipient, SYSTEM_PROGRAM_ID),
        pre_balances=(10_000_000_000, 1_000_000_000, 1),
        post_balances=(10_000_000_000 - lamports - fee, 1_000_000_000 + lamports, 1),
        err=err,
    )


class FakeChainClient:
    """
    In-memory stand-in for SolanaRPCClient.

    Pages are served in order regardless of cursor; the cursors received are
    recorded. `page_failures` and `detail_failures` make the first N calls fail.
    """

    def __init__(
        self,
        pages: Optional[List[List[str]]] = None,
        details: Optional[Dict[str, TransactionDetail]] = None,
        page_failures: int = 0,
        detail_failures: Optional[Dict[str, int]] = None,
    ):
        self.pages = list(pages or [[]])
        self.details = dict(details or {})
        self.page_failures = page_failures
        self.detail_failures = dict(detail_failures or {})
        self.cursors: List[Optional[str]] = []
        self.detail_calls: List[str] = []
        self.closed = False
        self._lock = threading.Lock()

    def parse_address(self, address):
        return SolanaRPCClient.parse_address(address)

    def get_signatures_for_address(self, address, before=None, limit=1000):
        if self.page_failures > 0:
            self.page_failures -= 1
            raise SolanaRPCError("connection reset")
        self.cursors.append(before)
        if not self.pages:
            return []
        return self.pages.pop(0)

    def get_transaction(self, signature):
        with self._lock:
            self.detail_calls.append(signature)
            remaining = self.detail_failures.get(signature, 0)
            if remaining > 0:
                self.detail_failures[signature] = remaining - 1
                raise SolanaRPCError("node is behind")
        return self.details.get(signature)

    def close(self):
        self.closed = True


@pytest.fixture
def sample_solana_address():
    """Sample Solana wallet address for testing."""
    return OWNER


@pytest.fixture
def rpc_url():
    """Mock RPC endpoint for testing."""
    return "https://rpc.example.com/"


@pytest.fixture
def no_wait_policy():
    """Unbounded retry policy without backoff delay."""
    return RetryPolicy(backoff_seconds=0)


@pytest.fixture
def token():
    return CancellationToken()


@pytest.fixture
def progress():
    """ProgressReporter that records every message in `progress.history`."""
    reporter = ProgressReporter()
    reporter.history = []
    reporter.subscribe(reporter.history.append)
    return reporter
