"""
Configuration for counterparty scans.

Defaults: batches of 20 concurrent detail fetches and a fixed one second
wait between retries, retrying forever until the user cancels.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional


DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_BATCH_SIZE = 20
DEFAULT_PAGE_LIMIT = 1000  # getSignaturesForAddress maximum
DEFAULT_REQUEST_TIMEOUT = 60  # seconds
DEFAULT_RETRY_BACKOFF = 1.0  # seconds


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry settings for page and transaction fetches.

    A max_retries of None retries indefinitely.
    """

    backoff_seconds: float = DEFAULT_RETRY_BACKOFF
    max_retries: Optional[int] = None

    def should_retry(self, attempt: int) -> bool:
        """Return True if another attempt is allowed after `attempt` failures."""
        return self.max_retries is None or attempt <= self.max_retries

    async def wait(self) -> None:
        await asyncio.sleep(self.backoff_seconds)

    def describe(self) -> str:
        """Human-readable retry notice, e.g. 'retrying in 1 second...'."""
        unit = "second" if self.backoff_seconds == 1 else "seconds"
        return f"retrying in {self.backoff_seconds:g} {unit}..."


@dataclass(frozen=True)
class ScanConfig:
    """Settings for one CounterpartyScanner."""

    batch_size: int = DEFAULT_BATCH_SIZE
    page_limit: int = DEFAULT_PAGE_LIMIT
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT
    retry_policy: RetryPolicy = field(default_factory=RetryPolicy)
    simple_transfers_only: bool = True

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {self.batch_size}")
        if self.page_limit < 1:
            raise ValueError(f"page_limit must be at least 1, got {self.page_limit}")
