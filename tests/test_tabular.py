"""
Workbook import/export.
"""
import io
from dataclasses import replace

import pandas as pd
import pytest

from edubook_pricing.data.tabular import export_filename, export_workbook, import_workbook
from edubook_pricing.engine.errors import InvalidFileFormat
from edubook_pricing.engine.models import UploadMeta
from edubook_pricing.engine.reconciler import reconcile


def write_workbook(path, sheets: dict):
    with pd.ExcelWriter(path, engine='openpyxl') as writer:
        for name, rows in sheets.items():
            pd.DataFrame(rows).to_excel(writer, sheet_name=name, index=False)
    return path


def test_import_machine_headers_with_defaults(tmp_path):
    path = write_workbook(tmp_path / "list.xlsx", {
        "Textbooks": [
            {"bookName": "Physics Part 1", "subject": "Physics", "publisher": "NCERT", "price": 150},
            {"bookName": "Mathematics", "subject": None, "publisher": None, "price": None},
        ],
        "Notebooks": [
            {"bookName": "Graph Book", "subject": "Math", "publisher": "Classmate", "price": 35, "pages": 120},
            {"bookName": "Journal", "subject": "Science", "publisher": "Classmate", "price": "free", "pages": "many"},
        ],
    })
    
    result = import_workbook(path)
    
    physics, maths = result.textbooks
    assert (physics.book_name, physics.subject, physics.publisher, physics.price) == ("Physics Part 1", "Physics", "NCERT", 150)
    assert (maths.subject, maths.publisher, maths.price) == ("N/A", "N/A", 0)
    assert physics.pages is None
    
    graph, journal = result.notebooks
    assert graph.pages == 120
    assert journal.price == 0
    assert journal.pages is None
    
    # Unparseable values are reported, not fatal
    assert {(w.sheet, w.field) for w in result.warnings} == {("Notebooks", "price"), ("Notebooks", "pages")}


def test_import_non_finite_numbers_fall_back_with_warnings(tmp_path):
    path = write_workbook(tmp_path / "list.xlsx", {
        "Textbooks": [
            {"bookName": "A", "price": "inf"},
            {"bookName": "B", "price": "nan"},
            {"bookName": "C", "price": "-Infinity"},
        ],
        "Notebooks": [
            {"bookName": "Pad", "price": 20, "pages": "inf"},
        ],
    })
    
    result = import_workbook(path)
    
    assert [row.price for row in result.textbooks] == [0, 0, 0]
    assert result.notebooks[0].price == 20
    assert result.notebooks[0].pages is None
    assert [(w.sheet, w.row, w.field) for w in result.warnings] == [
        ("Textbooks", 2, "price"),
        ("Textbooks", 3, "price"),
        ("Textbooks", 4, "price"),
        ("Notebooks", 2, "pages"),
    ]
    
    priced = reconcile(result.textbooks, result.notebooks, UploadMeta())
    assert all(record.final_price == 0 for record in priced.textbooks)


def test_import_single_sheet(tmp_path):
    path = write_workbook(tmp_path / "list.xlsx", {"Notebooks": [{"bookName": "Graph Book", "price": 35}]})
    result = import_workbook(path.read_bytes())
    assert result.textbooks == []
    assert len(result.notebooks) == 1


def test_import_without_known_sheets(tmp_path):
    path = write_workbook(tmp_path / "list.xlsx", {"Sheet1": [{"bookName": "Physics", "price": 1}]})
    with pytest.raises(InvalidFileFormat):
        import_workbook(path)


def test_import_rejects_non_workbook():
    with pytest.raises(InvalidFileFormat):
        import_workbook(b"this is not a spreadsheet")


def test_export_headers_and_filename(mock_lists):
    data = export_workbook(mock_lists.textbooks, mock_lists.notebooks)
    sheets = pd.read_excel(io.BytesIO(data), sheet_name=None, engine='openpyxl')
    
    assert list(sheets["Textbooks"].columns) == [
        "Book Name", "Subject", "Publisher", "Price", "Discount (%)", "Tax (%)", "Final Price",
    ]
    assert list(sheets["Notebooks"].columns) == [
        "Book Name", "Subject", "Publisher", "Pages", "Price", "Discount (%)", "Tax (%)", "Final Price",
    ]
    assert export_filename("12", "Science") == "12_Science_EduBook_Calculated.xlsx"


def test_export_writes_destination(tmp_path, mock_lists):
    target = tmp_path / "out.xlsx"
    data = export_workbook(mock_lists.textbooks, [], destination=target)
    assert target.read_bytes() == data


@pytest.mark.parametrize("headers", ["human", "machine"])
def test_round_trip_keeps_name_publisher_price(mock_lists, headers):
    """
    Export then re-import keeps name, publisher and price. Discount and tax
    are not imported: they come back as the new category defaults.
    """
    edited = [replace(r, discount=33, tax=1) for r in mock_lists.textbooks]
    data = export_workbook(edited, mock_lists.notebooks, headers=headers)
    
    imported = import_workbook(data)
    new_meta = UploadMeta(textbook_discount=0, textbook_tax=0, notebook_discount=0, notebook_tax=0)
    again = reconcile(imported.textbooks, imported.notebooks, new_meta)
    
    for before, after in zip(edited + mock_lists.notebooks, again.textbooks + again.notebooks):
        assert (after.book_name, after.publisher, after.price) == (before.book_name, before.publisher, before.price)
    
    assert len(again.textbooks) == len(edited)
    # Asymmetry: exported discount/tax are not carried back in
    assert all(r.discount == 0 and r.tax == 0 for r in again.textbooks)
    assert all(r.final_price == r.price for r in again.textbooks)
