"""Engine subpackage - core pricing, reconciliation and mutation logic."""
from .models import (
    BookRecord, LedgerEntry, RawRow, UploadMeta, UploadSession, BookFilters,
    DenormalizedBook, Notice, CalculatorSession, TEXTBOOK, NOTEBOOK, BOOK_TYPES,
)
from .identity import derive_identity, identity_of
from .pricing import final_price, reprice
from .ledger import FrequentPriceLedger
from .reconciler import reconcile, ReconcileResult
from .mutations import (
    update_field, apply_to_all, apply_publisher_discount, bulk_edit_by_name,
    apply_command, LedgerUpsert, MutationResult,
)
from .aggregate import apply_filters, compute_totals, compute_summary, group_and_sum

__all__ = [
    'BookRecord', 'LedgerEntry', 'RawRow', 'UploadMeta', 'UploadSession', 'BookFilters',
    'DenormalizedBook', 'Notice', 'CalculatorSession', 'TEXTBOOK', 'NOTEBOOK', 'BOOK_TYPES',
    'derive_identity', 'identity_of', 'final_price', 'reprice', 'FrequentPriceLedger',
    'reconcile', 'ReconcileResult', 'update_field', 'apply_to_all', 'apply_publisher_discount',
    'bulk_edit_by_name', 'apply_command', 'LedgerUpsert', 'MutationResult',
    'apply_filters', 'compute_totals', 'compute_summary', 'group_and_sum',
]
