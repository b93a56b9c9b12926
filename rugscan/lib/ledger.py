"""
Aggregation of counterparty deltas into a per-address ledger.
"""

from typing import Dict, Iterable, Iterator, List, Optional

from .models import Address, Delta, LedgerEntry


class Ledger:
    """
    Running per-counterparty totals for one scan.

    Entries are keyed by counterparty address and kept in first-seen order,
    which breaks ties when sorting.
    """

    def __init__(self):
        self._entries: Dict[Address, LedgerEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[LedgerEntry]:
        return iter(self._entries.values())

    def __contains__(self, address: object) -> bool:
        return address in self._entries

    def get(self, address: Address) -> Optional[LedgerEntry]:
        return self._entries.get(address)

    def add(self, delta: Delta) -> LedgerEntry:
        """Fold a single delta into its counterparty's entry."""
        entry = self._entries.get(delta.counterparty)
        if entry is None:
            entry = LedgerEntry(address=delta.counterparty)
            self._entries[delta.counterparty] = entry
        entry.add(delta.signature, delta.amount)
        return entry

    def fold(self, deltas: Iterable[Delta]) -> "Ledger":
        for delta in deltas:
            self.add(delta)
        return self

    def sorted_entries(self) -> List[LedgerEntry]:
        """Entries ordered by descending absolute total; ties keep first-seen order."""
        return sorted(self._entries.values(), key=lambda entry: abs(entry.total), reverse=True)


def fold(deltas: Iterable[Delta]) -> Ledger:
    """Build a fresh ledger from a sequence of deltas."""
    return Ledger().fold(deltas)
