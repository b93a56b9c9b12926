"""
Collection of the full signature history of an address.

Pages are requested one at a time, newest first, using the last signature
of each page as the cursor for the next. An empty page ends the history.
"""

from typing import Awaitable, Callable, List, Optional

from .config import RetryPolicy
from .errors import TransientFetchError
from .models import Signature
from .progress import CancellationToken, ProgressReporter

PageRequest = Callable[[Optional[Signature]], Awaitable[List[Signature]]]


async def collect_signatures(
    page_request: PageRequest,
    token: CancellationToken,
    progress: ProgressReporter,
    retry_policy: RetryPolicy = RetryPolicy(),
) -> List[Signature]:
    """
    Collect every signature returned by successive page requests.

    Failed page requests are retried with the same cursor after the policy's
    backoff. Cancellation is checked before every request.

    Args:
        page_request: Coroutine function returning the page older than the given cursor
        token: Cancellation token for the scan
        progress: Progress channel for status messages
        retry_policy: Backoff and retry limit for failed requests

    Returns:
        Signatures in the order received. If cancelled, whatever was collected so far.

    Raises:
        TransientFetchError: Only when a bounded retry policy is exhausted
    """
    signatures: List[Signature] = []
    before: Optional[Signature] = None
    failures = 0

    while True:
        if token.cancelled:
            return signatures

        try:
            page = await page_request(before)
        except TransientFetchError as e:
            failures += 1
            if not retry_policy.should_retry(failures):
                raise
            progress.update(f"Failed to collect signatures: {e}, {retry_policy.describe()}")
            await retry_policy.wait()
            continue

        failures = 0

        if not page:
            progress.update(f"Finished collecting {len(signatures)} signatures.")
            return signatures

        signatures.extend(page)
        before = page[-1]
        progress.update(f"Collected {len(signatures)} signatures...")
