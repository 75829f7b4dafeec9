"""
Tabular Importer / Exporter - Excel workbooks in and out.

Import reads the 'Textbooks' and 'Notebooks' sheets into RawRow lists.
Machine headers (bookName, subject, publisher, price, pages) are the primary
format; the export's human headers are accepted too so a downloaded file can
be uploaded again.
"""
import io
import logging
import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Optional, Sequence, Union
from zipfile import BadZipFile

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter
from openpyxl.utils.exceptions import InvalidFileException

from ..engine.errors import InvalidFileFormat, ParseWarning
from ..engine.models import BookRecord, RawRow, NOTEBOOK, TEXTBOOK
from ..engine.mutations import parse_finite

logger = logging.getLogger(__name__)

TEXTBOOK_SHEET = 'Textbooks'
NOTEBOOK_SHEET = 'Notebooks'

# field → (machine header, human header)
COLUMN_HEADERS = {
    'book_name': ('bookName', 'Book Name'),
    'subject': ('subject', 'Subject'),
    'publisher': ('publisher', 'Publisher'),
    'pages': ('pages', 'Pages'),
    'price': ('price', 'Price'),
    'discount': ('discount', 'Discount (%)'),
    'tax': ('tax', 'Tax (%)'),
    'final_price': ('finalPrice', 'Final Price'),
}

TEXTBOOK_COLUMNS = ['book_name', 'subject', 'publisher', 'price', 'discount', 'tax', 'final_price']
NOTEBOOK_COLUMNS = ['book_name', 'subject', 'publisher', 'pages', 'price', 'discount', 'tax', 'final_price']

Source = Union[str, Path, bytes, BinaryIO]


@dataclass
class ImportResult:
    """Raw rows read from a workbook plus any field-level parse warnings."""
    textbooks: list[RawRow] = field(default_factory=list)
    notebooks: list[RawRow] = field(default_factory=list)
    warnings: list[ParseWarning] = field(default_factory=list)


# ============================================================================
# IMPORT
# ============================================================================

def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _cell(row: dict, field_name: str) -> Any:
    """Read a field by machine header, falling back to the human header."""
    machine, human = COLUMN_HEADERS[field_name]
    value = row.get(machine)
    if _is_blank(value):
        value = row.get(human)
    return None if _is_blank(value) else value


def _text(value: Any, default: str) -> str:
    if value is None:
        return default
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip() or default


def _parse_sheet(df: pd.DataFrame, sheet: str, warnings: list[ParseWarning]) -> list[RawRow]:
    """Convert one sheet's DataFrame to RawRows, substituting documented defaults."""
    rows = []
    is_notebook = sheet == NOTEBOOK_SHEET
    
    for index, row in enumerate(df.to_dict(orient='records')):
        if all(_is_blank(v) for v in row.values()):
            continue
        
        raw_price = _cell(row, 'price')
        price = 0.0
        if raw_price is not None:
            parsed = parse_finite(raw_price)
            if parsed is None:
                warnings.append(ParseWarning(sheet, index + 2, 'price', raw_price, 0))
            else:
                price = parsed
        
        pages = None
        if is_notebook:
            raw_pages = _cell(row, 'pages')
            if raw_pages is not None:
                parsed = parse_finite(raw_pages)
                if parsed is None:
                    warnings.append(ParseWarning(sheet, index + 2, 'pages', raw_pages, None))
                else:
                    pages = int(parsed)
        
        row_id = row.get('id')
        if _is_blank(row_id):
            row_id = None
        elif isinstance(row_id, float) and row_id.is_integer():
            row_id = int(row_id)
        
        rows.append(RawRow(
            book_name=_text(_cell(row, 'book_name'), ''),
            subject=_text(_cell(row, 'subject'), 'N/A'),
            publisher=_text(_cell(row, 'publisher'), 'N/A'),
            price=price,
            pages=pages,
            row_id=row_id,
        ))
    
    return rows


def import_workbook(source: Source) -> ImportResult:
    """
    Read a workbook into raw textbook and notebook rows.
    
    Raises InvalidFileFormat when the file cannot be read as a workbook or
    has neither a 'Textbooks' nor a 'Notebooks' sheet.
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    
    try:
        sheets = pd.read_excel(source, sheet_name=None, dtype=object, keep_default_na=False, engine='openpyxl')
    except (BadZipFile, InvalidFileException, ValueError, KeyError, OSError) as e:
        raise InvalidFileFormat(f"Could not read the uploaded file as an Excel workbook: {e}") from e
    
    if TEXTBOOK_SHEET not in sheets and NOTEBOOK_SHEET not in sheets:
        raise InvalidFileFormat(
            f"Excel file must contain '{TEXTBOOK_SHEET}' and/or '{NOTEBOOK_SHEET}' sheets."
        )
    
    result = ImportResult()
    if TEXTBOOK_SHEET in sheets:
        result.textbooks = _parse_sheet(sheets[TEXTBOOK_SHEET], TEXTBOOK_SHEET, result.warnings)
    if NOTEBOOK_SHEET in sheets:
        result.notebooks = _parse_sheet(sheets[NOTEBOOK_SHEET], NOTEBOOK_SHEET, result.warnings)
    
    for warning in result.warnings:
        logger.warning(str(warning))
    logger.info(f"Imported {len(result.textbooks)} textbooks and {len(result.notebooks)} notebooks")
    return result


# ============================================================================
# EXPORT
# ============================================================================

def export_filename(class_name: str, course: str) -> str:
    """Deterministic download name for a class/course."""
    return f"{class_name}_{course}_EduBook_Calculated.xlsx"


def records_to_frame(records: Sequence[BookRecord], book_type: str, headers: str = 'human') -> pd.DataFrame:
    """Build the sheet DataFrame for one working list."""
    columns = NOTEBOOK_COLUMNS if book_type == NOTEBOOK else TEXTBOOK_COLUMNS
    position = 1 if headers == 'human' else 0
    
    data = []
    for record in records:
        data.append({
            COLUMN_HEADERS[col][position]: getattr(record, col) for col in columns
        })
    
    return pd.DataFrame(data, columns=[COLUMN_HEADERS[col][position] for col in columns])


def _style_header(ws, row=1):
    """Apply header styling to worksheet row"""
    header_font = Font(bold=True, color="FFFFFF")
    fill = PatternFill("solid", fgColor="4F81BD")
    align = Alignment(horizontal="center", vertical="center")
    thin = Side(style="thin", color="A0A0A0")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    for cell in ws[row]:
        cell.font = header_font
        cell.fill = fill
        cell.alignment = align
        cell.border = border


def _autosize_columns(ws, min_width=10, max_width=45):
    """Size columns to their longest value"""
    for col in range(1, ws.max_column + 1):
        letter = get_column_letter(col)
        max_len = max((len(str(c.value)) for c in ws[letter] if c.value is not None), default=0)
        ws.column_dimensions[letter].width = max(min_width, min(max_width, max_len + 2))


def export_workbook(
    textbooks: Sequence[BookRecord],
    notebooks: Sequence[BookRecord],
    destination: Optional[Union[str, Path]] = None,
    headers: str = 'human',
) -> bytes:
    """
    Write the working lists to a two-sheet workbook.
    
    Args:
        textbooks: Textbook records (already filtered, if filters apply)
        notebooks: Notebook records
        destination: Optional file path to also write the workbook to
        headers: 'human' for display headers, 'machine' for import headers
        
    Returns:
        The workbook as bytes
    """
    buffer = io.BytesIO()
    with pd.ExcelWriter(buffer, engine='openpyxl') as writer:
        for sheet, records, book_type in (
            (TEXTBOOK_SHEET, textbooks, TEXTBOOK),
            (NOTEBOOK_SHEET, notebooks, NOTEBOOK),
        ):
            records_to_frame(records, book_type, headers).to_excel(writer, sheet_name=sheet, index=False)
            ws = writer.sheets[sheet]
            _style_header(ws)
            _autosize_columns(ws)
    
    data = buffer.getvalue()
    if destination is not None:
        Path(destination).write_bytes(data)
        logger.info(f"Workbook written to {destination}")
    return data
