"""
Filter & Aggregate Engine - read-only views over working lists.

Filters affect what is displayed and exported. They never feed back into
the ledger or into saved snapshots.
"""
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

import pandas as pd

from .models import BookFilters


@dataclass(frozen=True)
class Totals:
    textbook_total: float
    notebook_total: float
    grand_total: float


@dataclass(frozen=True)
class Summary:
    count: int
    total_value: float
    avg_discount: float
    avg_tax: float


@dataclass(frozen=True)
class GroupTotal:
    key: Any
    total_final_price: float
    count: int = 0


def _contains(value: str, pattern: str) -> bool:
    return pattern.lower() in str(value or "").lower()


def apply_filters(records: Sequence, filters: BookFilters = None) -> list:
    """Keep records where every non-empty filter is a substring of its column."""
    if filters is None or filters.is_empty:
        return list(records)
    
    return [
        r for r in records
        if (not filters.book_name or _contains(r.book_name, filters.book_name))
        and (not filters.subject or _contains(r.subject, filters.subject))
        and (not filters.publisher or _contains(r.publisher, filters.publisher))
    ]


def compute_totals(textbooks: Iterable, notebooks: Iterable) -> Totals:
    """Sum of final prices per list, plus the grand total."""
    textbook_total = sum(r.final_price for r in textbooks)
    notebook_total = sum(r.final_price for r in notebooks)
    return Totals(
        textbook_total=textbook_total,
        notebook_total=notebook_total,
        grand_total=textbook_total + notebook_total,
    )


def compute_summary(records: Sequence) -> Summary:
    """Count, total value and mean discount/tax (0 for an empty list)."""
    count = len(records)
    if count == 0:
        return Summary(count=0, total_value=0.0, avg_discount=0.0, avg_tax=0.0)
    
    return Summary(
        count=count,
        total_value=sum(r.final_price for r in records),
        avg_discount=sum(r.discount for r in records) / count,
        avg_tax=sum(r.tax for r in records) / count,
    )


def group_and_sum(records: Sequence, key_fn: Callable[[Any], Any]) -> list[GroupTotal]:
    """
    Group records by ``key_fn(record)`` and sum final prices per group.
    
    Groups come back in order of first appearance.
    """
    if not records:
        return []
    
    df = pd.DataFrame({
        'key': [key_fn(r) for r in records],
        'final_price': [float(r.final_price) for r in records],
    })
    grouped = df.groupby('key', sort=False, dropna=False)['final_price'].agg(['sum', 'count'])
    
    return [
        GroupTotal(key=key, total_final_price=float(row['sum']), count=int(row['count']))
        for key, row in grouped.iterrows()
    ]


def distinct_values(values: Iterable[str], numeric: bool = False) -> list[str]:
    """Distinct non-empty values, sorted (numerically when ``numeric`` and possible)."""
    unique = {str(v).strip() for v in values if v is not None and str(v).strip()}
    if numeric:
        def sort_key(v):
            try:
                return (0, float(v), v)
            except ValueError:
                return (1, 0.0, v)
        return sorted(unique, key=sort_key)
    return sorted(unique)


def format_currency(value: float, currency: str = "INR") -> str:
    """Format an amount the way the calculator displays it (en-IN grouping)."""
    symbol = "₹" if currency == "INR" else f"{currency} "
    sign = "-" if value < 0 else ""
    whole, fraction = f"{abs(value):.2f}".split('.')
    
    # Indian grouping: last three digits, then groups of two
    if len(whole) > 3:
        head, tail = whole[:-3], whole[-3:]
        groups = []
        while len(head) > 2:
            groups.insert(0, head[-2:])
            head = head[:-2]
        if head:
            groups.insert(0, head)
        whole = ",".join(groups + [tail])
    
    return f"{sign}{symbol}{whole}.{fraction}"
