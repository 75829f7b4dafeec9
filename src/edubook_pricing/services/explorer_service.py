"""
Explorer Service - browse saved snapshots and the frequent-price ledger.

Reads only. Snapshots are flattened into DenormalizedBook rows carrying
the class, course and timestamp of the upload they were saved under.
"""
import logging
from typing import Optional

import pandas as pd

from ..engine.aggregate import GroupTotal, Summary, compute_summary, distinct_values, group_and_sum
from ..engine.models import DenormalizedBook, LedgerEntry
from .store import DocumentStore

logger = logging.getLogger(__name__)

GROUP_KEYS = {
    'class': lambda b: b.upload_class,
    'publisher': lambda b: b.publisher,
    'course': lambda b: b.upload_course,
    'type': lambda b: b.record.type,
}


class ExplorerService:
    """Data explorer for one signed-in user."""
    
    def __init__(self, store: DocumentStore, user_id: Optional[str]):
        self.store = store
        self.user_id = user_id
    
    def snapshots(self, class_filter: str = "all", publisher_filter: str = "") -> list[DenormalizedBook]:
        """
        Saved books, optionally limited to one class and to publishers
        containing ``publisher_filter`` (case-insensitive).
        """
        class_name = None if class_filter in (None, "", "all") else str(class_filter)
        books = self.store.query_all_snapshots(self.user_id, class_name=class_name)
        logger.debug(f"Explorer loaded {len(books)} saved books for user {self.user_id}")
        if publisher_filter:
            needle = publisher_filter.lower()
            books = [b for b in books if needle in b.publisher.lower()]
        return books
    
    def summary(self, books: list[DenormalizedBook]) -> Summary:
        return compute_summary(books)
    
    def groups(self, books: list[DenormalizedBook], by: str = 'class') -> list[GroupTotal]:
        """Total final price per class, publisher, course or type."""
        if by not in GROUP_KEYS:
            raise ValueError(f"Cannot group by '{by}'. Choose one of {', '.join(GROUP_KEYS)}")
        return group_and_sum(books, GROUP_KEYS[by])
    
    def classes(self) -> list[str]:
        """Classes that have at least one upload, in numeric order."""
        return distinct_values((u.meta.class_name for u in self.store.list_uploads(self.user_id)), numeric=True)
    
    def ledger_entries(self, publisher_filter: str = "") -> list[tuple[str, LedgerEntry]]:
        entries = sorted(self.store.get_ledger(self.user_id).items(), key=lambda kv: kv[1].book_name.lower())
        if publisher_filter:
            needle = publisher_filter.lower()
            entries = [(k, e) for k, e in entries if needle in e.publisher.lower()]
        return entries
    
    def publishers(self) -> list[str]:
        """Every publisher seen in the ledger, sorted."""
        return distinct_values(e.publisher for e in self.store.get_ledger(self.user_id).values())
    
    def to_frame(self, books: list[DenormalizedBook]) -> pd.DataFrame:
        """Tabular view used by the UI and CSV downloads."""
        return pd.DataFrame(
            [b.to_dict() for b in books],
            columns=['uploadClass', 'uploadCourse', 'uploadTimestamp', 'bookName', 'type', 'subject',
                     'publisher', 'pages', 'price', 'discount', 'tax', 'finalPrice'],
        )
