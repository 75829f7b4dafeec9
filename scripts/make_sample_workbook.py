#!/usr/bin/env python
"""
Write a sample upload workbook built from the mock book lists.

Usage:
    python scripts/make_sample_workbook.py [output.xlsx]
"""
import sys
from pathlib import Path

# Add src to path
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from edubook_pricing.data.mock_data import NOTEBOOKS_MOCK, TEXTBOOKS_MOCK
from edubook_pricing.data.tabular import export_workbook
from edubook_pricing.engine.models import UploadMeta
from edubook_pricing.engine.reconciler import reconcile


def main():
    output = Path(sys.argv[1]) if len(sys.argv) > 1 else Path('sample_book_list.xlsx')
    
    print("=" * 60)
    print("EDUBOOK SAMPLE WORKBOOK")
    print("=" * 60)
    
    # Zero defaults so the sheet carries the list prices untouched
    result = reconcile(TEXTBOOKS_MOCK, NOTEBOOKS_MOCK, UploadMeta(
        textbook_discount=0, textbook_tax=0, notebook_discount=0, notebook_tax=0,
    ))
    export_workbook(result.textbooks, result.notebooks, destination=output, headers='machine')
    
    print(f"  Textbooks: {len(result.textbooks)}")
    print(f"  Notebooks: {len(result.notebooks)}")
    print(f"✅ Written to {output}")


if __name__ == "__main__":
    main()
