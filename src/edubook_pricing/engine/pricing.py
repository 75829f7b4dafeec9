"""Price Calculator - discount first, then tax."""
from dataclasses import replace

from .models import BookRecord


def final_price(price: float, discount: float, tax: float) -> float:
    """
    Compute the final price for a book.
    
    No rounding and no clamping: discounts above 100 or negative taxes are
    applied as given. Input sanity belongs to the caller.
    """
    price_after_discount = price * (1 - discount / 100)
    return price_after_discount * (1 + tax / 100)


def reprice(record: BookRecord) -> BookRecord:
    """Return the record with final_price recomputed from its current fields."""
    return replace(record, final_price=final_price(record.price, record.discount, record.tax))
