"""
Batched, bounded-concurrency fetching of transaction details.

Signatures are fetched in consecutive batches. All fetches of a batch run
concurrently, and the next batch only starts once every fetch of the
current one has settled, so at most `batch_size` requests are in flight.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional, Sequence

from .config import DEFAULT_BATCH_SIZE, RetryPolicy
from .errors import TransientFetchError
from .models import Address, Delta, Signature, TransactionDetail
from .progress import CancellationToken, ProgressReporter
from .transfers import extract_deltas

DetailFetch = Callable[[Signature], Awaitable[Optional[TransactionDetail]]]
DeltaSink = Callable[[List[Delta]], object]


@dataclass
class BatchFetchResult:
    """
    Outcome of fetching all batches.

    deltas is only filled when no per-batch sink consumes them.
    """

    deltas: List[Delta] = field(default_factory=list)
    fetched: int = 0
    skipped: int = 0  # Unusable transactions, including fetches abandoned on cancel


def partition(signatures: Sequence[Signature], batch_size: int) -> List[List[Signature]]:
    """
    Split signatures into consecutive batches.

    Examples:
        45 signatures with batch_size 20 -> batches of 20, 20 and 5
    """
    if batch_size < 1:
        raise ValueError(f"batch_size must be at least 1, got {batch_size}")
    return [list(signatures[i : i + batch_size]) for i in range(0, len(signatures), batch_size)]


async def fetch_deltas(
    signature: Signature,
    position: int,
    total: int,
    detail_fetch: DetailFetch,
    owner: Address,
    token: CancellationToken,
    progress: ProgressReporter,
    retry_policy: RetryPolicy = RetryPolicy(),
    simple_transfers_only: bool = True,
) -> Optional[List[Delta]]:
    """
    Fetch one transaction, retrying until it succeeds, and extract its deltas.

    Args:
        signature: Transaction to fetch
        position: 1-based position of the signature in the whole scan
        total: Number of signatures in the whole scan

    Returns:
        Deltas of the transaction, or None if it was unusable or the scan was
        cancelled while retrying
    """
    failures = 0

    while True:
        if token.cancelled:
            return None

        progress.update(f"Collecting transaction {position} of {total}...")
        try:
            detail = await detail_fetch(signature)
        except TransientFetchError as e:
            failures += 1
            if not retry_policy.should_retry(failures):
                raise
            progress.update(
                f"Error fetching transaction {signature}: {e}, {retry_policy.describe()}"
            )
            await retry_policy.wait()
            continue

        return extract_deltas(detail, owner, simple_transfers_only=simple_transfers_only)


async def fetch_all(
    signatures: Sequence[Signature],
    detail_fetch: DetailFetch,
    owner: Address,
    token: CancellationToken,
    progress: ProgressReporter,
    batch_size: int = DEFAULT_BATCH_SIZE,
    retry_policy: RetryPolicy = RetryPolicy(),
    simple_transfers_only: bool = True,
    on_batch: Optional[DeltaSink] = None,
) -> BatchFetchResult:
    """
    Fetch every signature's detail in batches and collect the extracted deltas.

    Cancellation is checked before each batch; a batch already started is
    allowed to settle. If a fetch fails for good, the rest of its batch still
    settles before the error is raised.

    Args:
        signatures: All signatures of the scan, newest first
        detail_fetch: Coroutine function returning a transaction's detail
        owner: Address being scanned
        token: Cancellation token for the scan
        progress: Progress channel for status messages
        batch_size: Number of concurrent fetches per batch
        retry_policy: Backoff and retry limit for failed fetches
        simple_transfers_only: Skip anything that is not a plain SOL transfer
        on_batch: Called with the deltas of each batch once it has settled;
            when given, deltas are not also kept in the result

    Returns:
        BatchFetchResult with deltas in batch order

    Raises:
        TransientFetchError: Only when a bounded retry policy is exhausted
    """
    result = BatchFetchResult()
    total = len(signatures)

    for batch_index, batch in enumerate(partition(signatures, batch_size)):
        if token.cancelled:
            break

        offset = batch_index * batch_size
        outcomes = await asyncio.gather(
            *(
                fetch_deltas(
                    signature,
                    offset + i + 1,
                    total,
                    detail_fetch,
                    owner,
                    token,
                    progress,
                    retry_policy=retry_policy,
                    simple_transfers_only=simple_transfers_only,
                )
                for i, signature in enumerate(batch)
            ),
            return_exceptions=True,
        )

        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome

        batch_deltas: List[Delta] = []
        for deltas in outcomes:
            result.fetched += 1
            if deltas is None:
                result.skipped += 1
                continue
            batch_deltas.extend(deltas)

        if on_batch is not None:
            on_batch(batch_deltas)
        else:
            result.deltas.extend(batch_deltas)

    return result
