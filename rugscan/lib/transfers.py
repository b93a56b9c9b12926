"""
Extraction of counterparty balance deltas from a single transaction.

Amounts are counterparty-relative: a positive delta means the counterparty
gained lamports in the transaction, a negative one means it lost them.
The owner's own balance change is never reported, as it is the mirror
image of the counterparty deltas.
"""

from typing import List, Optional

from .models import Address, Delta, TransactionDetail
from .solana_rpc import SYSTEM_PROGRAM_ID

# payer, recipient, system program
SIMPLE_TRANSFER_KEY_COUNT = 3


def is_simple_transfer(detail: TransactionDetail) -> bool:
    """
    Check whether a transaction has the shape of a plain SOL transfer.

    Args:
        detail: Fetched transaction

    Returns:
        True if the transaction touches exactly a payer, a recipient and the
        System Program
    """
    keys = detail.account_keys
    return len(keys) == SIMPLE_TRANSFER_KEY_COUNT and keys[2] == SYSTEM_PROGRAM_ID


def extract_deltas(
    detail: Optional[TransactionDetail],
    owner: Address,
    simple_transfers_only: bool = True,
) -> Optional[List[Delta]]:
    """
    Derive the counterparty balance deltas of one transaction.

    Args:
        detail: Fetched transaction, or None if it could not be found
        owner: Address being scanned
        simple_transfers_only: Skip anything that is not a plain SOL transfer

    Returns:
        List of Delta (possibly empty), or None if the transaction is unusable:
        absent, without metadata, failed on chain, or out of scope

    Examples:
        A transfer of 5000 lamports from the owner to B yields
        [Delta(counterparty=B, amount=5000, signature=...)]
    """
    if detail is None or not detail.has_meta or detail.failed:
        return None

    if simple_transfers_only and not is_simple_transfer(detail):
        return None

    keys = detail.account_keys
    if len(detail.pre_balances) < len(keys) or len(detail.post_balances) < len(keys):
        return None

    deltas: List[Delta] = []
    for key, before, after in zip(keys, detail.pre_balances, detail.post_balances):
        if key == owner or before == after:
            continue

        deltas.append(Delta(counterparty=key, amount=after - before, signature=detail.signature))

    return deltas
