"""
Identity Deriver - builds the ledger key for a book.

The key format is shared with data already saved in the store, so the
concatenation order and the stripped character set must not change.
"""
import re
from typing import Optional

from .models import NOTEBOOK

_STRIP_PATTERN = re.compile(r'[^A-Za-z0-9-]')


def derive_identity(book_name: str, publisher: str, book_type: str, pages: Optional[int] = None) -> str:
    """
    Build the identity for a book.
    
    ``pages`` only participates for notebooks, and only when it is truthy.
    The result may be empty; callers must not write ledger entries under an
    empty identity.
    """
    key = f"{book_name}-{publisher}-{book_type}"
    if book_type == NOTEBOOK and pages:
        key += f"-{pages}"
    return _STRIP_PATTERN.sub('', key)


def identity_of(record) -> str:
    """Identity of anything carrying book_name, publisher, type and pages."""
    return derive_identity(record.book_name, record.publisher, record.type, record.pages)
