"""
Exception hierarchy for counterparty scans.

Only InvalidInputError ever reaches a caller of a scan. TransientFetchError
is raised by the chain client and absorbed by the retry loops in the
paginator and the batch scheduler.
"""


class ScanError(Exception):
    """Base class for scan errors."""


class InvalidInputError(ScanError, ValueError):
    """Raised when the target address is missing or malformed."""


class TransientFetchError(ScanError):
    """
    Raised for any failure while fetching chain data.

    Network errors, RPC errors and timeouts all count as transient: the
    pipeline waits and retries instead of failing the scan.
    """
