"""
Scan controller tying signature collection, batched fetching and
aggregation into one cancellable operation.

The chain client is synchronous; its calls run in a per-scan thread pool
sized to the batch size, so the pool itself caps in-flight requests.
"""

import asyncio
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from .batching import fetch_all
from .config import ScanConfig
from .errors import InvalidInputError
from .ledger import Ledger
from .models import Address, ScanResult, ScanStatus, Signature
from .pagination import collect_signatures
from .progress import CancellationToken, ProgressReporter
from .solana_rpc import SolanaRPCClient

ClientFactory = Callable[..., SolanaRPCClient]


@dataclass
class ScanState:
    """Mutable state of one scan, owned by the scanner that started it."""

    address: Address
    token: CancellationToken = field(default_factory=CancellationToken)
    signatures: List[Signature] = field(default_factory=list)
    ledger: Ledger = field(default_factory=Ledger)
    skipped: int = 0

    @property
    def cancelled(self) -> bool:
        return self.token.cancelled


class CounterpartyScanner:
    """
    Scans an address's history and aggregates SOL movement per counterparty.

    Only one scan is current at a time. Starting a new scan cancels the
    previous one, which stops at its next checkpoint and never touches the
    new scan's state.
    """

    def __init__(
        self,
        config: Optional[ScanConfig] = None,
        client_factory: ClientFactory = SolanaRPCClient,
        progress: Optional[ProgressReporter] = None,
    ):
        """
        Initialize the scanner.

        Args:
            config: Scan settings (defaults to ScanConfig())
            client_factory: Called as client_factory(rpc_url, timeout=...) to build a chain client
            progress: Progress channel; a private one is created if omitted
        """
        self.config = config or ScanConfig()
        self.client_factory = client_factory
        self.progress = progress or ProgressReporter()
        self._state: Optional[ScanState] = None
        self._status = ScanStatus.IDLE
        self._result: Optional[ScanResult] = None

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def state(self) -> Optional[ScanState]:
        return self._state

    @property
    def result(self) -> Optional[ScanResult]:
        """The last completed scan result, if any."""
        return self._result

    def cancel(self) -> None:
        """Ask the current scan to stop at its next checkpoint."""
        if self._state is None or self._state.cancelled:
            return
        self._state.token.cancel()
        if self._status == ScanStatus.SCANNING:
            self.progress.update("Cancelled.")

    async def start(self, rpc_url: str, address: Address) -> ScanResult:
        """
        Run a full scan of an address.

        Args:
            rpc_url: JSON-RPC endpoint to query
            address: Base58 address to scan

        Returns:
            ScanResult with entries sorted by descending absolute total, or
            a CANCELLED result without entries

        Raises:
            InvalidInputError: If the address is empty or malformed
        """
        client = self.client_factory(rpc_url, timeout=self.config.request_timeout)
        try:
            try:
                client.parse_address(address)
            except ValueError as e:
                self.progress.update(str(e))
                raise InvalidInputError(str(e)) from e

            if self._state is not None:
                self._state.token.cancel()

            state = ScanState(address=address)
            self._state = state
            self._status = ScanStatus.SCANNING
            self.progress.update("Finding transactions...")

            try:
                await self._run(client, state)
            except BaseException:
                if self._state is state:
                    self._status = ScanStatus.IDLE
                raise
        finally:
            client.close()

        return self._finish(state)

    async def _run(self, client: SolanaRPCClient, state: ScanState) -> None:
        config = self.config
        loop = asyncio.get_running_loop()

        executor = ThreadPoolExecutor(max_workers=config.batch_size)
        try:
            async def page_request(before: Optional[Signature]) -> List[Signature]:
                return await loop.run_in_executor(
                    executor,
                    client.get_signatures_for_address,
                    state.address,
                    before,
                    config.page_limit,
                )

            async def detail_fetch(signature: Signature):
                return await loop.run_in_executor(executor, client.get_transaction, signature)

            state.signatures = await collect_signatures(
                page_request,
                state.token,
                self.progress,
                retry_policy=config.retry_policy,
            )
            if state.cancelled:
                return

            fetched = await fetch_all(
                state.signatures,
                detail_fetch,
                state.address,
                state.token,
                self.progress,
                batch_size=config.batch_size,
                retry_policy=config.retry_policy,
                simple_transfers_only=config.simple_transfers_only,
                on_batch=state.ledger.fold,
            )
            state.skipped = fetched.skipped
        finally:
            # Workers may still be blocked in a request; never wait for them on the loop
            executor.shutdown(wait=False, cancel_futures=True)

    def _finish(self, state: ScanState) -> ScanResult:
        current = self._state is state

        if state.cancelled:
            if current:
                self._status = ScanStatus.CANCELLED
            # Partial results of a cancelled scan are discarded
            return ScanResult(address=state.address, status=ScanStatus.CANCELLED)

        result = ScanResult(
            address=state.address,
            status=ScanStatus.COMPLETED,
            entries=state.ledger.sorted_entries(),
            signature_count=len(state.signatures),
            skipped_transactions=state.skipped,
        )
        if current:
            self._status = ScanStatus.COMPLETED
            self._result = result
            self.progress.update("Finished fetching transactions.")
        return result
