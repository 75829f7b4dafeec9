"""
Frequent-Price Ledger - per-user memory of the last pricing used per book.

The ledger here is the in-process view of the user's ``frequent_book_data``
collection. It is read at import time to pre-fill rows and updated from the
write-through commands the mutation engine emits.
"""
from typing import Iterable, Optional

from .models import LedgerEntry


class FrequentPriceLedger:
    """Mapping of identity → LedgerEntry with last-write-wins semantics."""
    
    def __init__(self, entries: Optional[dict[str, LedgerEntry]] = None):
        self._entries: dict[str, LedgerEntry] = {}
        for identity, entry in (entries or {}).items():
            self.upsert(identity, entry)
    
    def __len__(self) -> int:
        return len(self._entries)
    
    def __contains__(self, identity: str) -> bool:
        return identity in self._entries
    
    def get(self, identity: str) -> Optional[LedgerEntry]:
        """Get the entry for an identity, or None when it is not known."""
        return self._entries.get(identity)
    
    def upsert(self, identity: str, entry: LedgerEntry) -> bool:
        """
        Create or overwrite the entry for an identity.
        
        Returns False (and writes nothing) for an empty identity.
        """
        if not identity:
            return False
        self._entries[identity] = entry
        return True
    
    def bulk_upsert(self, entries: Iterable[tuple[str, LedgerEntry]]) -> dict[str, LedgerEntry]:
        """
        Upsert many entries at once.
        
        Entries sharing an identity collapse to the last one, so each
        identity is written exactly once. Returns the writes performed.
        """
        batch = dedupe_entries(entries)
        for identity, entry in batch.items():
            self._entries[identity] = entry
        return batch
    
    def clear(self):
        self._entries.clear()
    
    def items(self) -> list[tuple[str, LedgerEntry]]:
        return list(self._entries.items())


def dedupe_entries(entries: Iterable[tuple[str, LedgerEntry]]) -> dict[str, LedgerEntry]:
    """Collapse (identity, entry) pairs to one per non-empty identity, last one wins."""
    batch: dict[str, LedgerEntry] = {}
    for identity, entry in entries:
        if not identity:
            continue
        # Re-insert so the surviving write keeps the position of the last one
        batch.pop(identity, None)
        batch[identity] = entry
    return batch
