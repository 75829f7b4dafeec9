"""
Ledger and reconciliation: ledger > imported value > category default.
"""
import pytest

from edubook_pricing.engine.identity import derive_identity
from edubook_pricing.engine.ledger import FrequentPriceLedger
from edubook_pricing.engine.models import LedgerEntry, RawRow, UploadMeta, NOTEBOOK, TEXTBOOK
from edubook_pricing.engine.mutations import update_field
from edubook_pricing.engine.reconciler import reconcile


def test_ledger_overrides_imported_values(meta):
    """Raw price 100 + ledger 80/10/5 → 80/10/5 and 75.6."""
    row = RawRow(book_name="Physics Part 1", subject="Physics", publisher="NCERT", price=100)
    identity = derive_identity("Physics Part 1", "NCERT", TEXTBOOK)
    ledger = FrequentPriceLedger({
        identity: LedgerEntry("Physics Part 1", "NCERT", price=80, discount=10, tax=5, type=TEXTBOOK),
    })
    
    result = reconcile([row], [], meta, ledger, upload_id="up-1")
    record = result.textbooks[0]
    
    assert (record.price, record.discount, record.tax) == (80, 10, 5)
    assert record.final_price == pytest.approx(75.6)
    assert record.upload_id == "up-1"
    assert record.type == TEXTBOOK
    assert result.ledger_hits == 1


def test_defaults_without_ledger_entry(meta):
    row = RawRow(book_name="Mathematics", price=180)
    result = reconcile([row], [RawRow(book_name="Graph Book", price=35)], meta, FrequentPriceLedger())
    
    textbook, notebook = result.textbooks[0], result.notebooks[0]
    assert (textbook.price, textbook.discount, textbook.tax) == (180, 10, 5)
    assert (notebook.price, notebook.discount, notebook.tax) == (35, 15, 5)
    assert notebook.final_price == pytest.approx(35 * 0.85 * 1.05)
    assert result.ledger_hits == 0


def test_absent_ledger_falls_back_to_defaults(meta):
    """No signed-in user: no ledger at all, never raises."""
    result = reconcile([RawRow(book_name="English Reader", price=120)], [], meta, None)
    assert result.textbooks[0].discount == 10
    assert result.textbooks[0].upload_id == ""


def test_ledger_entry_for_other_type_is_ignored(meta):
    identity = derive_identity("Graph Book", "N/A", TEXTBOOK)
    ledger = FrequentPriceLedger({identity: LedgerEntry("Graph Book", "N/A", 1, 1, 1, TEXTBOOK)})
    
    result = reconcile([], [RawRow(book_name="Graph Book", price=35)], meta, ledger)
    assert result.notebooks[0].price == 35


def test_notebook_pages_come_from_ledger(meta):
    identity = derive_identity("Practical Journal", "Classmate", NOTEBOOK, 200)
    ledger = FrequentPriceLedger({
        identity: LedgerEntry("Practical Journal", "Classmate", 60, 0, 12, NOTEBOOK, pages=200),
    })
    row = RawRow(book_name="Practical Journal", publisher="Classmate", price=55, pages=200)
    
    record = reconcile([], [row], meta, ledger).notebooks[0]
    assert record.pages == 200
    assert (record.price, record.discount, record.tax) == (60, 0, 12)


def test_textbook_pages_are_dropped(meta):
    record = reconcile([RawRow(book_name="Atlas", price=300, pages=90)], [], meta).textbooks[0]
    assert record.pages is None


def test_ids_from_row_or_position(meta):
    rows = [RawRow(book_name="A", row_id=42), RawRow(book_name="B"), RawRow(book_name="C", row_id="")]
    ids = [r.id for r in reconcile(rows, [], meta).textbooks]
    assert ids == [42, 2, 3]


def test_ids_stay_unique_when_row_ids_collide(meta):
    rows = [RawRow(book_name="A", price=10, row_id=2), RawRow(book_name="B", price=20)]
    records = reconcile(rows, [], meta).textbooks
    assert [r.id for r in records] == [2, 1]
    
    result = update_field(records, 2, "price", 99)
    assert result.updated_count == 1
    assert [r.price for r in result.records] == [99, 20]


def test_repeated_row_ids_are_reassigned(meta):
    rows = [RawRow(book_name="A", row_id=5), RawRow(book_name="B", row_id=5), RawRow(book_name="C")]
    assert [r.id for r in reconcile(rows, [], meta).textbooks] == [5, 2, 3]


def test_mock_lists_are_priced_with_defaults(mock_lists):
    assert [r.book_name for r in mock_lists.textbooks][:2] == ["Physics Part 1", "Chemistry Part 1"]
    assert len(mock_lists.textbooks) == 5
    assert len(mock_lists.notebooks) == 4
    assert all(r.publisher == "N/A" for r in mock_lists.textbooks)
    assert mock_lists.textbooks[0].final_price == pytest.approx(150 * 0.9 * 1.05)


def test_ledger_skips_empty_identity():
    ledger = FrequentPriceLedger()
    assert ledger.upsert("", LedgerEntry("", "", 1, 1, 1, TEXTBOOK)) is False
    assert len(ledger) == 0


def test_ledger_bulk_upsert_last_write_wins():
    ledger = FrequentPriceLedger()
    first = LedgerEntry("Mathematics", "NCERT", 180, 10, 5, TEXTBOOK)
    second = LedgerEntry("Mathematics", "NCERT", 175, 12, 5, TEXTBOOK)
    other = LedgerEntry("Graph Book", "N/A", 35, 15, 5, NOTEBOOK)
    
    written = ledger.bulk_upsert([("k1", first), ("k2", other), ("k1", second), ("", other)])
    
    assert list(written) == ["k2", "k1"]
    assert ledger.get("k1") == second
    assert len(ledger) == 2


def test_meta_defaults_for_category():
    meta = UploadMeta(textbook_discount=1, textbook_tax=2, notebook_discount=3, notebook_tax=4)
    assert meta.defaults_for(TEXTBOOK) == (1, 2)
    assert meta.defaults_for(NOTEBOOK) == (3, 4)
