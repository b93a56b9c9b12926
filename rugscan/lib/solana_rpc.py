"""
Solana JSON-RPC client with automatic rate limit handling and retry logic.

This module provides the chain client used by counterparty scans: address
parsing, paginated signature listing and transaction detail lookup, with
429 and server error retries handled at the transport level.
"""

import random
import threading
import time
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlsplit

import requests
from solders.pubkey import Pubkey

from .config import DEFAULT_PAGE_LIMIT, DEFAULT_REQUEST_TIMEOUT, DEFAULT_RPC_URL
from .errors import TransientFetchError
from .models import Signature, TransactionDetail

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"

# Transport retry configuration
DEFAULT_INITIAL_DELAY = 1.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0
DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_DELAY = 32.0  # seconds
DEFAULT_JITTER = 0.1  # ±10%


class SolanaRPCError(TransientFetchError):
    """Exception raised for Solana RPC errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SolanaRateLimitError(SolanaRPCError):
    """Exception raised when rate limit is exceeded and retries are exhausted."""

    pass


class SolanaRPCClient:
    """
    Solana JSON-RPC client with automatic 429 retry handling.

    All chain interactions for a scan go through this class, which handles:
    - Address parsing and validation
    - HTTP 429 rate limit and 5xx retries with exponential backoff
    - Request/response serialization
    - Conversion of getTransaction results into TransactionDetail
    """

    def __init__(
        self,
        endpoint: str = DEFAULT_RPC_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        initial_delay: float = DEFAULT_INITIAL_DELAY,
        backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER,
        max_retries: int = DEFAULT_MAX_RETRIES,
        max_delay: float = DEFAULT_MAX_DELAY,
        jitter: float = DEFAULT_JITTER,
    ):
        """
        Initialize the Solana RPC client.

        Args:
            endpoint: JSON-RPC endpoint URL (may carry an API key in its query string)
            timeout: Per-request timeout in seconds
            initial_delay: Initial delay in seconds for retry backoff
            backoff_multiplier: Multiplier for exponential backoff
            max_retries: Maximum number of transport-level retry attempts
            max_delay: Maximum delay cap in seconds
            jitter: Jitter factor (±percentage) to randomize delays
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.initial_delay = initial_delay
        self.backoff_multiplier = backoff_multiplier
        self.max_retries = max_retries
        self.max_delay = max_delay
        self.jitter = jitter
        self.session = requests.Session()
        self._request_id = 0
        self._id_lock = threading.Lock()

    def close(self) -> None:
        self.session.close()

    def _sanitize_error_message(self, message: str) -> str:
        """Remove the endpoint's query string from error messages to prevent credential leakage."""
        query = urlsplit(self.endpoint).query
        if not query:
            return message
        return message.replace(query, "[REDACTED]")

    def _apply_jitter(self, delay: float) -> float:
        """Apply random jitter to a delay value."""
        jitter_range = delay * self.jitter
        return delay + random.uniform(-jitter_range, jitter_range)

    def _execute_with_retry(
        self,
        request_func: Callable[[], requests.Response],
    ) -> requests.Response:
        """
        Execute a request function with retry logic for rate limits and server errors.

        Args:
            request_func: A callable that returns a requests.Response

        Returns:
            The successful response

        Raises:
            SolanaRPCError: For HTTP or transport errors after retries exhausted
            SolanaRateLimitError: When rate limit retries are exhausted
        """
        delay = self.initial_delay

        for attempt in range(self.max_retries + 1):
            try:
                response = request_func()

                if response.status_code == 429:
                    if attempt < self.max_retries:
                        time.sleep(self._apply_jitter(min(delay, self.max_delay)))
                        delay *= self.backoff_multiplier
                        continue
                    raise SolanaRateLimitError(
                        "Rate limit exceeded and max retries reached",
                        status_code=429,
                    )

                if response.status_code >= 500:
                    if attempt < self.max_retries:
                        time.sleep(self._apply_jitter(min(delay, self.max_delay)))
                        delay *= self.backoff_multiplier
                        continue
                    raise SolanaRPCError(
                        f"Server error: {response.status_code}",
                        status_code=response.status_code,
                    )

                response.raise_for_status()
                return response

            except requests.RequestException as e:
                if attempt < self.max_retries:
                    time.sleep(self._apply_jitter(min(delay, self.max_delay)))
                    delay *= self.backoff_multiplier
                    continue
                sanitized_msg = self._sanitize_error_message(str(e))
                raise SolanaRPCError(f"Request failed: {sanitized_msg}") from e

        raise SolanaRPCError("Max retries exceeded")

    def _next_id(self) -> int:
        # Called from the scanner's worker threads
        with self._id_lock:
            self._request_id += 1
            return self._request_id

    def _request(self, method: str, params: List[Any]) -> Any:
        """
        Make a JSON-RPC request with automatic 429 retry and exponential backoff.

        Args:
            method: JSON-RPC method name
            params: Method parameters

        Returns:
            The 'result' field from the JSON-RPC response (may be None)

        Raises:
            SolanaRPCError: For RPC errors
            SolanaRateLimitError: When rate limit retries are exhausted
        """
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._next_id(),
        }

        response = self._execute_with_retry(
            lambda: self.session.post(self.endpoint, json=payload, timeout=self.timeout)
        )

        try:
            data = response.json()
        except ValueError as e:
            raise SolanaRPCError(f"Invalid JSON response for {method}") from e

        if "error" in data:
            error = data["error"]
            raise SolanaRPCError(
                f"RPC error: {error.get('message', str(error))}",
                status_code=error.get("code"),
            )

        return data.get("result")

    @staticmethod
    def parse_address(address: str) -> Pubkey:
        """
        Parse a base58 Solana address.

        Args:
            address: Address string

        Returns:
            The parsed Pubkey

        Raises:
            ValueError: If the address is empty or not a valid public key
        """
        if not address:
            raise ValueError("No address given")
        try:
            return Pubkey.from_string(address)
        except ValueError as e:
            raise ValueError(f"Invalid Solana address: {address}") from e

    def get_signatures_for_address(
        self,
        address: str,
        before: Optional[Signature] = None,
        limit: int = DEFAULT_PAGE_LIMIT,
    ) -> List[Signature]:
        """
        Get one page of transaction signatures for an address.

        Args:
            address: Address whose history is listed
            before: Only return signatures older than this one
            limit: Maximum page size (1000 at most)

        Returns:
            Signatures ordered newest first; an empty list when history is exhausted
        """
        options: Dict[str, Any] = {"limit": limit}
        if before:
            options["before"] = before

        result = self._request("getSignaturesForAddress", [address, options])
        return [item["signature"] for item in result or []]

    def get_transaction(self, signature: Signature) -> Optional[TransactionDetail]:
        """
        Get the balance-relevant detail of a confirmed transaction.

        Args:
            signature: Transaction signature

        Returns:
            TransactionDetail, or None if the transaction is not found or not yet confirmed
        """
        result = self._request(
            "getTransaction",
            [
                signature,
                {
                    "commitment": "confirmed",
                    "encoding": "json",
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

        if not result:
            return None

        message = result.get("transaction", {}).get("message", {})
        account_keys = list(message.get("accountKeys", []))
        meta = result.get("meta")

        if not meta:
            return TransactionDetail(
                signature=signature,
                account_keys=tuple(account_keys),
                pre_balances=(),
                post_balances=(),
                has_meta=False,
            )

        # Versioned transactions list lookup-table accounts after the static keys
        loaded = meta.get("loadedAddresses") or {}
        account_keys.extend(loaded.get("writable", []))
        account_keys.extend(loaded.get("readonly", []))

        return TransactionDetail(
            signature=signature,
            account_keys=tuple(account_keys),
            pre_balances=tuple(meta.get("preBalances", [])),
            post_balances=tuple(meta.get("postBalances", [])),
            err=meta.get("err"),
        )
