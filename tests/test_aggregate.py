"""
Filters, totals, summaries and grouping.
"""
import pytest

from edubook_pricing.engine.aggregate import (
    apply_filters, compute_summary, compute_totals, distinct_values, format_currency, group_and_sum,
)
from edubook_pricing.engine.models import BookFilters, BookRecord


def book(id, name, final, subject="N/A", publisher="N/A", discount=0, tax=0):
    return BookRecord(id=id, book_name=name, subject=subject, publisher=publisher,
                      price=final, discount=discount, tax=tax, final_price=final)


def test_filter_by_name_case_insensitive():
    records = [book(1, "Physics Part 1", 150), book(2, "Chemistry Part 1", 160)]
    
    assert [r.id for r in apply_filters(records, BookFilters(book_name="phys"))] == [1]
    assert [r.id for r in apply_filters(records, BookFilters(book_name="PHYS"))] == [1]


def test_empty_filters_pass_everything():
    records = [book(1, "A", 1), book(2, "B", 2)]
    assert apply_filters(records, BookFilters()) == records
    assert apply_filters(records, None) == records


def test_all_non_empty_filters_must_match():
    records = [
        book(1, "Physics Part 1", 150, subject="Physics", publisher="NCERT"),
        book(2, "Physics Part 2", 150, subject="Physics", publisher="Arihant"),
    ]
    filters = BookFilters(book_name="physics", subject="PHY", publisher="ncert")
    assert [r.id for r in apply_filters(records, filters)] == [1]


def test_totals():
    totals = compute_totals([book(1, "A", 150), book(2, "B", 160)], [book(1, "C", 40)])
    assert totals.textbook_total == 310
    assert totals.notebook_total == 40
    assert totals.grand_total == 350


def test_totals_empty():
    totals = compute_totals([], [])
    assert (totals.textbook_total, totals.notebook_total, totals.grand_total) == (0, 0, 0)


def test_summary():
    summary = compute_summary([book(1, "A", 100, discount=10, tax=5), book(2, "B", 50, discount=20, tax=0)])
    assert summary.count == 2
    assert summary.total_value == 150
    assert summary.avg_discount == 15
    assert summary.avg_tax == 2.5


def test_summary_empty_list_has_zero_averages():
    summary = compute_summary([])
    assert (summary.count, summary.total_value, summary.avg_discount, summary.avg_tax) == (0, 0, 0, 0)


def test_group_and_sum_by_publisher():
    records = [
        book(1, "A", 100, publisher="NCERT"),
        book(2, "B", 50, publisher="Arihant"),
        book(3, "C", 25.5, publisher="NCERT"),
    ]
    groups = group_and_sum(records, lambda r: r.publisher)
    
    assert [g.key for g in groups] == ["NCERT", "Arihant"]
    assert groups[0].total_final_price == pytest.approx(125.5)
    assert groups[0].count == 2
    assert groups[1].total_final_price == pytest.approx(50)


def test_group_and_sum_empty():
    assert group_and_sum([], lambda r: r.publisher) == []


def test_distinct_values_numeric_sort():
    assert distinct_values(["10", "2", "", "2", None, "12"], numeric=True) == ["2", "10", "12"]
    assert distinct_values(["b", "a", "b"]) == ["a", "b"]


@pytest.mark.parametrize("value,expected", [
    (0, "₹0.00"),
    (704.5, "₹704.50"),
    (1234567.5, "₹12,34,567.50"),
    (-1500, "-₹1,500.00"),
])
def test_format_currency(value, expected):
    assert format_currency(value) == expected
