"""
List Reconciler - turns raw rows into priced working lists.

Resolution order for every row:
1. Assign the record id (row id column, else position + 1; never repeated)
2. Derive the identity
3. Ledger entry found → take price, discount, tax and pages from the ledger
4. No ledger entry → keep imported price/pages, apply the category defaults
5. Compute the final price and stamp upload id and type
"""
from dataclasses import dataclass
from typing import Optional, Sequence

from .identity import derive_identity
from .ledger import FrequentPriceLedger
from .models import BookRecord, RawRow, RecordId, UploadMeta, TEXTBOOK, NOTEBOOK
from .pricing import final_price


@dataclass
class ReconcileResult:
    """Outcome of reconciling one import."""
    textbooks: list[BookRecord]
    notebooks: list[BookRecord]
    upload_id: str
    ledger_hits: int = 0


def assign_ids(rows: Sequence[RawRow]) -> list[RecordId]:
    """
    Record ids for one list, unique within it.
    
    A row keeps its own id unless an earlier row already claimed it. Rows
    without an id, or with a repeated one, take position + 1 when that is
    free and otherwise the lowest unused integer.
    """
    claimed = set()
    explicit = []
    for row in rows:
        own = row.row_id if row.row_id not in (None, "") and row.row_id not in claimed else None
        if own is not None:
            claimed.add(own)
        explicit.append(own)
    
    ids = []
    next_free = 1
    for position, own in enumerate(explicit):
        if own is None:
            own = position + 1
            if own in claimed:
                while next_free in claimed:
                    next_free += 1
                own = next_free
            claimed.add(own)
        ids.append(own)
    return ids


def reconcile_row(
    row: RawRow,
    record_id: RecordId,
    book_type: str,
    meta: UploadMeta,
    ledger: Optional[FrequentPriceLedger],
    upload_id: str = "",
) -> tuple[BookRecord, bool]:
    """
    Price a single raw row.
    
    Returns (record, ledger_hit).
    """
    pages = row.pages if book_type == NOTEBOOK else None
    
    identity = derive_identity(row.book_name, row.publisher, book_type, pages)
    entry = ledger.get(identity) if (ledger is not None and identity) else None
    
    if entry is not None:
        price, discount, tax = entry.price, entry.discount, entry.tax
        if book_type == NOTEBOOK and entry.pages is not None:
            pages = entry.pages
    else:
        discount, tax = meta.defaults_for(book_type)
        price = row.price
    
    record = BookRecord(
        id=record_id,
        book_name=row.book_name,
        subject=row.subject,
        publisher=row.publisher,
        price=price,
        discount=discount,
        tax=tax,
        final_price=final_price(price, discount, tax),
        pages=pages,
        upload_id=upload_id,
        type=book_type,
    )
    return record, entry is not None


def reconcile_list(
    rows: Sequence[RawRow],
    book_type: str,
    meta: UploadMeta,
    ledger: Optional[FrequentPriceLedger],
    upload_id: str = "",
) -> tuple[list[BookRecord], int]:
    """Reconcile one category. Returns (records, ledger_hits)."""
    records = []
    hits = 0
    for row, record_id in zip(rows, assign_ids(rows)):
        record, hit = reconcile_row(row, record_id, book_type, meta, ledger, upload_id)
        records.append(record)
        hits += int(hit)
    return records, hits


def reconcile(
    raw_textbooks: Sequence[RawRow],
    raw_notebooks: Sequence[RawRow],
    meta: UploadMeta,
    ledger: Optional[FrequentPriceLedger] = None,
    upload_id: str = "",
) -> ReconcileResult:
    """
    Merge imported rows with ledger overrides and compute final prices.
    
    An absent or empty ledger falls back to the category defaults for
    every row.
    """
    textbooks, tb_hits = reconcile_list(raw_textbooks, TEXTBOOK, meta, ledger, upload_id)
    notebooks, nb_hits = reconcile_list(raw_notebooks, NOTEBOOK, meta, ledger, upload_id)
    return ReconcileResult(
        textbooks=textbooks,
        notebooks=notebooks,
        upload_id=upload_id,
        ledger_hits=tb_hits + nb_hits,
    )
